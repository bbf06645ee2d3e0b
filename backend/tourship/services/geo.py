import math

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(lat: float, lng: float, radius_km: float) -> dict:
    """Coarse pre-filter on stored coordinates before the exact distance check."""
    delta = radius_km / KM_PER_DEGREE
    return {
        "location.coordinates.latitude": {"$gte": lat - delta, "$lte": lat + delta},
        "location.coordinates.longitude": {"$gte": lng - delta, "$lte": lng + delta},
    }
