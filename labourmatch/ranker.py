"""
Match Ranking.

Responsibilities:
- Score each candidate against a job location (distance, proximity, reputation).
- Apply the distance cutoff and the acceptance threshold.
- Collapse candidates resolving to the same worker into one proposal.
- Return proposals with score and distance rounded to two decimals.

Non-Responsibilities:
- No candidate selection.
- No persistence.

Invariant:
The proposal set depends only on the candidates, their ratings and the policy,
never on iteration order. A failed reputation lookup scores the worker with
the policy default rating instead of failing the run.
"""

import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from . import geo
from .config import MatchingPolicy
from .errors import DataAccessError, MatchingTimeout, ValidationError
from .logger import StructuredLogger, get_logger


class ReputationSource(Protocol):
    def get_reputation(self, worker_id: int) -> Optional[float]:
        ...


@dataclass(frozen=True)
class ProposedMatch:
    """A scored candidate that cleared both the cutoff and the threshold."""

    worker_id: int
    availability_id: int
    match_score: float
    distance_km: float

    def sort_key(self):
        return (-self.match_score, self.distance_km, self.worker_id, self.availability_id)


class MatchRanker:
    def __init__(
        self,
        reputations: ReputationSource,
        policy: Optional[MatchingPolicy] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.reputations = reputations
        self.policy = policy or MatchingPolicy()
        self.logger = logger or get_logger()

    def rank(
        self,
        job_location: geo.Coordinate,
        candidates: Iterable,
        deadline: Optional[float] = None,
        job_id: Optional[int] = None,
    ) -> List[ProposedMatch]:
        """
        Score candidates for a job and return the surviving proposals, best first.

        Args:
            job_location: Job coordinates
            candidates: WorkerAvailability-like records (worker_id, location_lat/lng)
            deadline: time.monotonic() value after which the run is abandoned
            job_id: Only used for log context

        Raises:
            ValidationError: job coordinates are not finite
            MatchingTimeout: deadline passed before scoring finished
        """
        if not geo.is_finite_coordinate(job_location.lat, job_location.lng):
            raise ValidationError(
                f"Job location must be finite, got ({job_location.lat}, {job_location.lng})"
            )

        ratings: Dict[int, Optional[float]] = {}
        best: Dict[int, ProposedMatch] = {}

        for candidate in candidates:
            if deadline is not None and time.monotonic() > deadline:
                raise MatchingTimeout(f"Matching run for job {job_id} timed out", job_id=job_id)

            proposal = self._score(job_location, candidate, ratings, job_id)
            if proposal is None:
                continue

            current = best.get(proposal.worker_id)
            if current is None or proposal.sort_key() < current.sort_key():
                best[proposal.worker_id] = proposal

        return sorted(best.values(), key=ProposedMatch.sort_key)

    def _score(self, job_location, candidate, ratings, job_id) -> Optional[ProposedMatch]:
        policy = self.policy

        if not geo.is_finite_coordinate(candidate.location_lat, candidate.location_lng):
            self.logger.warning(
                "Skipping candidate with invalid location",
                job_id=job_id,
                availability_id=candidate.id,
                lat=candidate.location_lat,
                lng=candidate.location_lng,
            )
            return None

        worker_location = geo.Coordinate(float(candidate.location_lat), float(candidate.location_lng))
        distance_km = geo.distance(job_location, worker_location, policy.km_per_degree)
        if distance_km >= policy.max_distance_km:
            return None

        if candidate.worker_id not in ratings:
            ratings[candidate.worker_id] = self._rating_for(candidate.worker_id, job_id)

        proximity = geo.proximity_score(distance_km, policy.max_distance_km)
        reputation = geo.reputation_score(
            ratings[candidate.worker_id], policy.max_rating, policy.default_rating
        )
        score = geo.final_score(proximity, reputation, policy.proximity_weight)

        self.logger.debug(
            "Scored candidate",
            job_id=job_id,
            worker_id=candidate.worker_id,
            distance_km=distance_km,
            proximity=proximity,
            reputation=reputation,
            score=score,
        )

        if score <= policy.score_threshold:
            return None

        return ProposedMatch(
            worker_id=candidate.worker_id,
            availability_id=candidate.id,
            match_score=geo.round_half_up(score),
            distance_km=geo.round_half_up(distance_km),
        )

    def _rating_for(self, worker_id: int, job_id) -> Optional[float]:
        try:
            rating = self.reputations.get_reputation(worker_id)
        except DataAccessError as e:
            self.logger.warning(
                "Reputation lookup failed, using default rating",
                job_id=job_id,
                worker_id=worker_id,
                default_rating=self.policy.default_rating,
                error=str(e),
            )
            self.logger.record_reputation_fallback(type(e).__name__)
            return None

        if rating is None:
            self.logger.record_reputation_fallback()
            return None
        # Keeps match_score within [0, 100]
        return min(max(float(rating), 0.0), self.policy.max_rating)
