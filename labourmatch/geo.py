"""
Distance and score arithmetic for matching.

Pure functions only. Callers validate that coordinates are finite before
calling; nothing here raises.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

KM_PER_DEGREE = 111.0
MAX_DISTANCE_KM = 50.0
PROXIMITY_WEIGHT = 0.8

# Policy: a worker with no rating on record is scored as 3 out of 5.
# A stored rating of 0 is a real rating and is not replaced by the default.
DEFAULT_RATING = 3.0
MAX_RATING = 5.0


class Coordinate(NamedTuple):
    lat: float
    lng: float


def distance(a: Coordinate, b: Coordinate, km_per_degree: float = KM_PER_DEGREE) -> float:
    """
    Planar distance between two coordinates in kilometers.

    Treats degrees as a flat grid, so it is only meaningful at regional scale.
    """
    return math.sqrt((a.lat - b.lat) ** 2 + (a.lng - b.lng) ** 2) * km_per_degree


def proximity_score(distance_km: float, max_distance_km: float = MAX_DISTANCE_KM) -> float:
    """Linear decay from 100 at zero distance to 0 at max_distance_km, clamped to [0, 100]."""
    return min(1.0, max(0.0, (max_distance_km - distance_km) / max_distance_km)) * 100


def reputation_score(
    rating: Optional[float],
    max_rating: float = MAX_RATING,
    default_rating: float = DEFAULT_RATING,
) -> float:
    if rating is None:
        rating = default_rating
    return (rating / max_rating) * 100


def final_score(proximity: float, reputation: float, proximity_weight: float = PROXIMITY_WEIGHT) -> float:
    return proximity * proximity_weight + reputation * (1 - proximity_weight)


def round_half_up(value: float, places: int = 2) -> float:
    """Round to `places` decimals, ties away from zero (29.995 -> 30.0)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def is_finite_coordinate(lat, lng) -> bool:
    try:
        return math.isfinite(float(lat)) and math.isfinite(float(lng))
    except (TypeError, ValueError):
        return False
