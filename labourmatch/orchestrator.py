"""
Matching Orchestrator.

Responsibilities:
- Coordinate candidate selection, ranking and persistence for one job.
- Enforce the run timeout before anything is written.
- Expose accept/reject on behalf of workers.

Non-Responsibilities:
- No job creation. The posting is committed before matching starts.
- No scoring arithmetic.

Invariant:
A run persists every surviving proposal or none of them. A failed run
never touches the job posting itself.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from . import geo
from .candidates import CandidateFilter
from .config import MatchingPolicy
from .database import Job, Match
from .errors import LabourMatchError, MatchingError, MatchingTimeout
from .lifecycle import MatchLifecycle
from .logger import StructuredLogger, get_logger
from .ranker import MatchRanker


@dataclass
class MatchingOutcome:
    """Result of a best-effort run: either matches or the error that stopped it."""

    job_id: int
    matches: List[Match] = field(default_factory=list)
    error: Optional[MatchingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MatchingOrchestrator:
    def __init__(
        self,
        store,
        policy: Optional[MatchingPolicy] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.store = store
        self.policy = policy or MatchingPolicy()
        self.logger = logger or get_logger()
        self.candidates = CandidateFilter(store, self.policy.eligible_status)
        self.ranker = MatchRanker(store, self.policy, self.logger)
        self.lifecycle = MatchLifecycle(store, self.logger)

    def run_matching(self, job: Job) -> List[Match]:
        """
        Find, score and persist matches for a newly created job.

        Raises:
            MatchingError: the run failed; no matches were stored for it
        """
        self.logger.record_run_attempt()
        started = time.monotonic()
        deadline = started + self.policy.run_timeout_seconds

        try:
            location = geo.Coordinate(job.location_lat, job.location_lng)
            candidates = self.candidates.eligible_workers(job.skill_required)
            proposals = self.ranker.rank(location, candidates, deadline=deadline, job_id=job.id)

            if time.monotonic() > deadline:
                raise MatchingTimeout(f"Matching run for job {job.id} timed out", job_id=job.id)

            matches = self.lifecycle.create(job.id, proposals)
        except LabourMatchError as e:
            self.logger.record_run_failure(type(e).__name__)
            self.logger.error(
                "Matching run failed",
                job_id=job.id,
                error_type=type(e).__name__,
                error=str(e),
            )
            if isinstance(e, MatchingError):
                raise
            raise MatchingError(f"Matching run for job {job.id} failed: {e}", job_id=job.id) from e

        self.logger.record_run_success(len(candidates), len(matches))
        self.logger.info(
            "Matching run complete",
            job_id=job.id,
            skill=job.skill_required,
            candidates=len(candidates),
            matches=len(matches),
            elapsed_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return matches

    def process_job(self, job_id: int) -> MatchingOutcome:
        """Best-effort run for a stored job. Never raises; failures land on the outcome."""
        try:
            job = self.store.get_job(job_id)
        except Exception as e:
            self.logger.error("Could not load job for matching", job_id=job_id, error=str(e))
            return MatchingOutcome(job_id, error=MatchingError(str(e), job_id=job_id))

        if job is None:
            self.logger.warning("Job vanished before matching", job_id=job_id)
            return MatchingOutcome(job_id, error=MatchingError(f"Job {job_id} not found", job_id=job_id))

        if job.status != "open":
            self.logger.info("Skipping matching for closed job", job_id=job_id, status=job.status)
            return MatchingOutcome(job_id)

        try:
            return MatchingOutcome(job_id, matches=self.run_matching(job))
        except MatchingError as e:
            return MatchingOutcome(job_id, error=e)
        except Exception as e:
            # The job is already committed; unexpected errors land on the outcome too
            self.logger.record_run_failure(type(e).__name__)
            self.logger.error(
                "Matching run crashed",
                job_id=job_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            error = MatchingError(f"Matching run for job {job_id} crashed: {e}", job_id=job_id)
            error.__cause__ = e
            return MatchingOutcome(job_id, error=error)

    def accept_match(self, match_id: int, actor_id: int) -> Match:
        return self.lifecycle.accept(match_id, actor_id)

    def reject_match(self, match_id: int, actor_id: int) -> Match:
        return self.lifecycle.reject(match_id, actor_id)
