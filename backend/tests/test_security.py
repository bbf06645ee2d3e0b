from datetime import datetime, timedelta

from bson import ObjectId

from tourship.core.rate_limit import RateLimiter
from tourship.core.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = hash_password("Sunset@Lake1")
    assert hashed != "Sunset@Lake1"
    assert verify_password("Sunset@Lake1", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("anything", None)
    assert not verify_password("anything", "not-a-hash")


def test_token_carries_identity():
    user = {"_id": ObjectId(), "email": "meera@example.com", "role": "guide"}
    payload = decode_access_token(create_access_token(user))
    assert payload["id"] == str(user["_id"])
    assert payload["role"] == "guide"
    assert decode_access_token("garbage.token.value") is None


def test_reset_token():
    now = datetime(2026, 2, 1, 10, 0, 0)
    raw, digest, expires = generate_reset_token(now)
    assert digest == hash_token(raw)
    assert digest != raw
    assert expires == now + timedelta(minutes=10)


def test_rate_limiter_window():
    clock = [0.0]
    limiter = RateLimiter(3, 60, clock=lambda: clock[0])
    assert [limiter.hit("1.2.3.4") for _ in range(4)] == [True, True, True, False]
    assert limiter.hit("5.6.7.8")

    clock[0] = 61.0
    assert limiter.hit("1.2.3.4")


def test_rate_limiter_forgets_expired_clients():
    clock = [0.0]
    limiter = RateLimiter(3, 60, clock=lambda: clock[0])
    for n in range(50):
        limiter.hit(f"10.0.0.{n}")
    assert limiter.tracked() == 50

    clock[0] = 30.0
    limiter.hit("10.0.0.1")
    assert limiter.tracked() == 50

    clock[0] = 75.0
    assert limiter.hit("192.168.1.1")
    assert limiter.tracked() == 1
