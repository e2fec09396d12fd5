"""
Runtime configuration.

Matching constants live on MatchingPolicy so tests and deployments can
override them; Settings adds the process-level knobs read from LABOURMATCH_*
environment variables.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from . import geo
from .env import get_env, load_env

DEFAULT_DB_PATH = Path("data/labourmatch.db")

# Used when a posting arrives without coordinates (Delhi).
DEFAULT_LOCATION = geo.Coordinate(28.7041, 77.1025)


@dataclass(frozen=True)
class MatchingPolicy:
    """Constants that drive candidate scoring and acceptance."""

    max_distance_km: float = geo.MAX_DISTANCE_KM
    proximity_weight: float = geo.PROXIMITY_WEIGHT
    score_threshold: float = 30.0
    default_rating: float = geo.DEFAULT_RATING
    max_rating: float = geo.MAX_RATING
    km_per_degree: float = geo.KM_PER_DEGREE
    eligible_status: str = "available"
    run_timeout_seconds: float = 30.0

    def __post_init__(self):
        if self.max_distance_km <= 0:
            raise ValueError("max_distance_km must be positive")
        if not 0.0 <= self.proximity_weight <= 1.0:
            raise ValueError("proximity_weight must be within [0, 1]")
        if self.max_rating <= 0:
            raise ValueError("max_rating must be positive")
        if not 0.0 <= self.default_rating <= self.max_rating:
            raise ValueError("default_rating must be within [0, max_rating]")


@dataclass
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    queue_workers: int = 2
    policy: MatchingPolicy = field(default_factory=MatchingPolicy)


def _float_env(key: str, default: float) -> float:
    raw = get_env(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """Build Settings from the environment (and .env, if present)."""
    load_env(env_path)

    base = MatchingPolicy()
    policy = replace(
        base,
        max_distance_km=_float_env("LABOURMATCH_MAX_DISTANCE_KM", base.max_distance_km),
        proximity_weight=_float_env("LABOURMATCH_PROXIMITY_WEIGHT", base.proximity_weight),
        score_threshold=_float_env("LABOURMATCH_SCORE_THRESHOLD", base.score_threshold),
        default_rating=_float_env("LABOURMATCH_DEFAULT_RATING", base.default_rating),
        run_timeout_seconds=_float_env("LABOURMATCH_RUN_TIMEOUT", base.run_timeout_seconds),
    )

    return Settings(
        db_path=Path(get_env("LABOURMATCH_DB", str(DEFAULT_DB_PATH))),
        log_level=get_env("LABOURMATCH_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(get_env("LABOURMATCH_LOG_DIR", "logs")),
        queue_workers=int(_float_env("LABOURMATCH_QUEUE_WORKERS", 2)),
        policy=policy,
    )
