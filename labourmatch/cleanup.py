"""
Cleanup module for expiring stale pending matches.

A pending match older than the retention window (default: 7 days) is moved
to expired so it stops showing up in listings. Accepted and rejected
matches are never touched.
"""

from datetime import datetime, timedelta
from typing import Tuple

from .database import EXPIRED, PENDING
from .logger import get_logger
from .storage import MatchStore

logger = get_logger()


def expire_stale_matches(store: MatchStore, days: int = 7) -> Tuple[int, int]:
    """
    Expire pending matches created more than `days` days ago.

    Args:
        store: MatchStore to sweep
        days: Number of days a match may stay pending (default: 7)

    Returns:
        Tuple of (pending_before, pending_after)
        Difference = matches expired
    """
    if days < 0:
        raise ValueError("days must be non-negative")

    cutoff = datetime.now() - timedelta(days=days)
    logger.debug("Starting stale match sweep", days=days, cutoff=cutoff.isoformat())

    pending_before = store.count_matches(PENDING)
    expired = store.expire_pending_matches(cutoff, EXPIRED)
    pending_after = store.count_matches(PENDING)

    if expired:
        logger.record_transition(EXPIRED, count=expired)
    logger.info(
        f"Cleanup complete: {expired} expired, {pending_after} still pending",
        pending_before=pending_before,
        expired=expired,
        pending_after=pending_after,
        days_threshold=days,
    )
    return (pending_before, pending_after)
