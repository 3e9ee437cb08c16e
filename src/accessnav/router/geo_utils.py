# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules except the models.

import math
from typing import List, Sequence

import numpy as np
from shapely.geometry import LineString, Point

from .models import GeoPoint


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres. NaN inputs give NaN.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance between two GeoPoints."""
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)


def bearing_degrees(a: GeoPoint, b: GeoPoint) -> float:
    """
    Forward azimuth (bearing) from a to b in degrees [0, 360).
    """
    rlat1, rlon1 = math.radians(a.lat), math.radians(a.lng)
    rlat2, rlon2 = math.radians(b.lat), math.radians(b.lng)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def point_to_segment_distance(p: GeoPoint, seg_a: GeoPoint, seg_b: GeoPoint) -> float:
    """
    Planar distance from p to the segment [seg_a, seg_b] on raw degrees.

    The result is a unitless proxy, not metres. Only compare it against
    small fixed constants.
    """
    point = Point(p.lng, p.lat)
    if seg_a == seg_b:
        return point.distance(Point(seg_a.lng, seg_a.lat))
    line = LineString([(seg_a.lng, seg_a.lat), (seg_b.lng, seg_b.lat)])
    return point.distance(line)


# ---------------------------------------------------------------------------
# Polyline helpers
# ---------------------------------------------------------------------------

def _as_radians(path: Sequence[GeoPoint]) -> np.ndarray:
    return np.radians(np.array([(p.lat, p.lng) for p in path], dtype=float))


def path_length(path: Sequence[GeoPoint]) -> float:
    """Sum of great-circle lengths between consecutive points, in metres."""
    if len(path) < 2:
        return 0.0
    rad = _as_radians(path)
    lat1, lon1 = rad[:-1, 0], rad[:-1, 1]
    lat2, lon2 = rad[1:, 0], rad[1:, 1]
    a = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
    return float(np.sum(EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))))


def min_distance_between(path_a: Sequence[GeoPoint], path_b: Sequence[GeoPoint]) -> float:
    """
    Smallest great-circle distance between any point of path_a and any
    point of path_b. Returns inf when either path is empty.
    """
    if not path_a or not path_b:
        return math.inf
    ra = _as_radians(path_a)
    rb = _as_radians(path_b)
    lat1 = ra[:, 0][:, None]
    lon1 = ra[:, 1][:, None]
    lat2 = rb[:, 0][None, :]
    lon2 = rb[:, 1][None, :]
    a = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    d = EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return float(np.min(d))


def is_near_any(point: GeoPoint, path: Sequence[GeoPoint], radius_m: float) -> bool:
    """True when some point of path lies within radius_m of point."""
    return min_distance_between([point], path) <= radius_m


def dedupe_path(path: Sequence[GeoPoint], tolerance_m: float) -> List[GeoPoint]:
    """Drop consecutive points closer than tolerance_m to the last kept one."""
    cleaned: List[GeoPoint] = []
    for point in path:
        if cleaned and distance_meters(cleaned[-1], point) < tolerance_m:
            continue
        cleaned.append(point)
    return cleaned
