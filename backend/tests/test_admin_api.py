"""
Admin user management and the guide/organiser verification flow
"""

from conftest import auth_headers, make_user


def test_non_admin_is_forbidden(client, db):
    tourist = make_user(db, "tourist")
    response = client.get("/api/admin/users", headers=auth_headers(tourist))
    assert response.status_code == 403


def test_permission_is_checked(client, db):
    limited = make_user(db, "admin", adminProfile={"permissions": ["view_analytics"], "isSuperAdmin": False})
    headers = auth_headers(limited)
    assert client.get("/api/admin/users", headers=headers).status_code == 200

    guide = make_user(db, "guide", verified=False)
    response = client.put(f"/api/admin/verify/guide/{guide['_id']}", json={"action": "approve"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "You do not have permission to perform this action"


def test_guide_verification_flow(client, db):
    admin = make_user(db, "admin")
    guide = make_user(db, "guide", verified=False)

    submitted = client.post("/api/guide/me/submit-verification", headers=auth_headers(guide))
    assert submitted.status_code == 200
    assert submitted.json()["data"]["verificationStatus"] == "under_review"

    pending = client.get("/api/admin/verifications/pending", headers=auth_headers(admin))
    assert [u["id"] for u in pending.json()["data"]] == [str(guide["_id"])]

    approved = client.put(
        f"/api/admin/verify/guide/{guide['_id']}", json={"action": "approve"}, headers=auth_headers(admin)
    )
    assert approved.status_code == 200
    assert approved.json()["data"]["guideProfile"]["verifiedBy"] == str(admin["_id"])
    stored = db.users.docs[1]["guideProfile"]
    assert stored["isVerified"] is True
    assert stored["verificationStatus"] == "approved"
    assert stored["verifiedBy"] == admin["_id"]

    again = client.put(
        f"/api/admin/verify/guide/{guide['_id']}", json={"action": "approve"}, headers=auth_headers(admin)
    )
    assert again.status_code == 400


def test_organiser_rejection_returns_reason(client, db):
    admin = make_user(db, "admin")
    organiser = make_user(db, "organiser", verified=False)
    assert client.post("/api/organiser/me/submit-verification", headers=auth_headers(organiser)).status_code == 200

    rejected = client.put(
        f"/api/admin/verify/organiser/{organiser['_id']}",
        json={"action": "reject", "reason": "GST certificate unreadable"},
        headers=auth_headers(admin),
    )
    assert rejected.status_code == 200
    assert rejected.json()["message"] == "Organiser rejected successfully"
    profile = rejected.json()["data"]["organiserProfile"]
    assert profile["verificationStatus"] == "rejected"
    assert profile["rejectionReason"] == "GST certificate unreadable"
    assert profile["verifiedBy"] == str(admin["_id"])


def test_verify_wrong_role_and_bad_id(client, db):
    admin = make_user(db, "admin")
    organiser = make_user(db, "organiser", verified=False)
    headers = auth_headers(admin)

    wrong = client.put(f"/api/admin/verify/guide/{organiser['_id']}", json={"action": "approve"}, headers=headers)
    assert wrong.status_code == 400
    bad = client.put("/api/admin/verify/guide/not-an-id", json={"action": "approve"}, headers=headers)
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid user ID"


def test_unverified_organiser_cannot_create_trips(client, db):
    organiser = make_user(db, "organiser", verified=False)
    response = client.post(
        "/api/organiser/trips",
        json={
            "attraction": "0" * 24,
            "startDate": "2030-01-01T08:00:00",
            "endDate": "2030-01-01T18:00:00",
            "pricing": {"pricePerPerson": 500},
            "capacity": {"maxPeople": 5},
        },
        headers=auth_headers(organiser),
    )
    assert response.status_code == 403


def test_ban_user_and_self_protection(client, db):
    admin = make_user(db, "admin")
    tourist = make_user(db, "tourist")
    headers = auth_headers(admin)

    banned = client.put(
        f"/api/admin/users/{tourist['_id']}/ban", json={"isBanned": True, "reason": "Fake reviews"}, headers=headers
    )
    assert banned.status_code == 200
    assert client.get("/api/auth/me", headers=auth_headers(tourist)).status_code == 403

    self_ban = client.put(f"/api/admin/users/{admin['_id']}/ban", json={"isBanned": True}, headers=headers)
    assert self_ban.status_code == 400


def test_dashboard_counts(client, db):
    admin = make_user(db, "admin")
    make_user(db, "tourist")
    make_user(db, "guide")
    response = client.get("/api/admin/dashboard", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["users"]["total"] == 3
    assert data["byRole"] == {"tourist": 1, "guide": 1, "organiser": 0, "admin": 1}
    assert data["verifications"]["verifiedGuides"] == 1
