"""
Match lifecycle: pending -> accepted | rejected | expired.

A match leaves pending exactly once. Each transition is a compare-and-swap
on status in the store, so concurrent callers get one success and
InvalidTransition for everyone else.
"""

from typing import Iterable, List, Optional, Protocol

from .database import Match, PENDING, ACCEPTED, REJECTED, EXPIRED
from .errors import InvalidTransition, NotAuthorized, NotFound, ValidationError
from .logger import StructuredLogger, get_logger

TRANSITIONS = {
    PENDING: (ACCEPTED, REJECTED, EXPIRED),
    ACCEPTED: (),
    REJECTED: (),
    EXPIRED: (),
}


class MatchRepository(Protocol):
    def create_matches(self, job_id: int, proposals: Iterable) -> List[Match]:
        ...

    def get_match(self, match_id: int) -> Optional[Match]:
        ...

    def transition_match(self, match_id: int, from_status: str, to_status: str) -> Match:
        ...


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, ())


class MatchLifecycle:
    def __init__(self, store: MatchRepository, logger: Optional[StructuredLogger] = None):
        self.store = store
        self.logger = logger or get_logger()

    def create(self, job_id: int, proposals: Iterable) -> List[Match]:
        """Persist a run's proposals as pending matches, all or nothing."""
        proposals = list(proposals)
        seen = set()
        for p in proposals:
            if p.worker_id in seen:
                raise ValidationError(f"Worker {p.worker_id} proposed twice for job {job_id}")
            seen.add(p.worker_id)
        return self.store.create_matches(job_id, proposals)

    def accept(self, match_id: int, actor_id: int) -> Match:
        """
        Accept a pending match on behalf of the worker it refers to.

        Raises:
            NotFound: no such match
            NotAuthorized: actor is not the match's worker
            InvalidTransition: match is no longer pending
        """
        return self._transition(match_id, actor_id, ACCEPTED)

    def reject(self, match_id: int, actor_id: int) -> Match:
        """Reject a pending match; same failure modes as accept()."""
        return self._transition(match_id, actor_id, REJECTED)

    def _transition(self, match_id: int, actor_id: int, target: str) -> Match:
        match = self.store.get_match(match_id)
        if match is None:
            raise NotFound("Match", match_id)
        # worker_id never changes after insert, so this read cannot go stale
        if match.worker_id != actor_id:
            raise NotAuthorized(match_id, actor_id)
        if not can_transition(match.status, target):
            raise InvalidTransition(match_id, match.status, target)

        updated = self.store.transition_match(match_id, PENDING, target)
        self.logger.info(
            f"Match {target}",
            match_id=match_id,
            job_id=updated.job_id,
            worker_id=updated.worker_id,
        )
        self.logger.record_transition(target)
        return updated
