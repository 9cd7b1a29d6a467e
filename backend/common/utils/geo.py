"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application:
great-circle distances, radius checks for blast eligibility and arrival
thresholds for geofencing.
"""

from math import radians, cos, sin, asin, sqrt
from typing import Optional

EARTH_RADIUS_METERS = 6371000
METERS_PER_MILE = 1609.344


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(min(1.0, a)))
    return c * EARTH_RADIUS_METERS


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in statute miles."""
    return calculate_distance(lat1, lon1, lat2, lon2) / METERS_PER_MILE


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def within_radius(
    center_lat: float,
    center_lon: float,
    lat: float,
    lon: float,
    radius_miles: float,
) -> bool:
    """
    Check whether a point lies inside a circle drawn around a center point.

    The boundary is inclusive: a point exactly ``radius_miles`` away is inside.
    """
    return distance_miles(center_lat, center_lon, lat, lon) <= float(radius_miles)


def has_arrived(
    target_lat: Optional[float],
    target_lon: Optional[float],
    lat: float,
    lon: float,
    threshold_meters: float,
) -> bool:
    """
    Check whether a position is within the arrival threshold of a target point.

    Targets without coordinates can never be arrived at.
    """
    if target_lat is None or target_lon is None:
        return False
    return calculate_distance(target_lat, target_lon, lat, lon) <= float(threshold_meters)
