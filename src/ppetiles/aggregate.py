"""Coordinate validation and the aggregate id used for decimation.

The aggregate id is a deterministic integer derived from a point's
coordinates. It is stored with every feature and the tile query keeps
only features whose id is divisible by the zoom's resolution factor.
It is not a spatial index: nearby points only tend to get close ids.
"""
import math

MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
MIN_PPE = 0.0
MAX_PPE = 10.0

# Shared by the writer and every reader. Changing any of these
# invalidates the ids already stored.
LON_WEIGHT = 31
LAT_WEIGHT = 17
DEFAULT_SEED = 1_000_000

EARTH_RADIUS_KM = 6371.0


def is_valid_coordinates(lon, lat):
    """True when `lon` and `lat` lie inside the valid degree ranges."""
    return (MIN_LONGITUDE <= lon <= MAX_LONGITUDE
            and MIN_LATITUDE <= lat <= MAX_LATITUDE)


def is_valid_ppe(ppe):
    """True when `ppe` lies inside [MIN_PPE, MAX_PPE]."""
    return MIN_PPE <= ppe <= MAX_PPE


def generate_aggregate_id(lon, lat, seed=DEFAULT_SEED):
    """Deterministic integer key for a coordinate pair.

    Longitude and latitude are normalised to [0, 1] over their full
    ranges, combined as ``lon * 31 + lat * 17``, scaled by `seed` and
    floored.

    Parameters
    ----------
    lon : float
        Longitude in degrees.
    lat : float
        Latitude in degrees.
    seed : int, optional
        Scale factor, by default 1 000 000.

    Returns
    -------
    int
        The aggregate id.
    """
    normalized_lon = (lon - MIN_LONGITUDE) / (MAX_LONGITUDE - MIN_LONGITUDE)
    normalized_lat = (lat - MIN_LATITUDE) / (MAX_LATITUDE - MIN_LATITUDE)
    return math.floor((normalized_lon * LON_WEIGHT + normalized_lat * LAT_WEIGHT) * seed)


def distance_km(lon1, lat1, lon2, lat2):
    """Great-circle distance in kilometres (haversine formula)."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
         * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box_km(lon, lat, radius_km):
    """Approximate box of `radius_km` around a point.

    Returns
    -------
    tuple of float
        ``(west, south, east, north)`` clamped to the valid ranges.
    """
    lat_deg_per_km = 1 / 110.574
    lon_deg_per_km = 1 / (111.320 * math.cos(math.radians(lat)))
    lat_diff = radius_km * lat_deg_per_km
    lon_diff = radius_km * lon_deg_per_km
    return (
        max(MIN_LONGITUDE, lon - lon_diff),
        max(MIN_LATITUDE, lat - lat_diff),
        min(MAX_LONGITUDE, lon + lon_diff),
        min(MAX_LATITUDE, lat + lat_diff),
    )
