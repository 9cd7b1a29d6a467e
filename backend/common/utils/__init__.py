"""Common utility functions."""

from .geo import (
    calculate_distance,
    distance_miles,
    has_arrived,
    meters_to_miles,
    within_radius,
)

__all__ = [
    "calculate_distance",
    "distance_miles",
    "has_arrived",
    "meters_to_miles",
    "within_radius",
]
