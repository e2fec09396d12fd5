"""
Tests for ranker.py - scoring, cutoffs and per-run dedupe.
"""

import time
import pytest
from types import SimpleNamespace

from labourmatch.config import MatchingPolicy
from labourmatch.errors import DataAccessError, MatchingTimeout, ValidationError
from labourmatch.geo import Coordinate
from labourmatch.ranker import MatchRanker, ProposedMatch

JOB = Coordinate(28.7041, 77.1025)


class FakeReputations:
    """Ratings by worker id; ids in `failing` raise DataAccessError."""

    def __init__(self, ratings=None, failing=()):
        self.ratings = ratings or {}
        self.failing = set(failing)
        self.calls = []

    def get_reputation(self, worker_id):
        self.calls.append(worker_id)
        if worker_id in self.failing:
            raise DataAccessError("users table unreachable")
        return self.ratings.get(worker_id)


def candidate(id, worker_id, lat, lng):
    return SimpleNamespace(id=id, worker_id=worker_id, location_lat=lat, location_lng=lng)


class TestScoring:
    """Score and distance of surviving candidates."""

    def test_delhi_example(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({7: 5.0}), logger=quiet_logger)

        [proposal] = ranker.rank(JOB, [candidate(1, 7, 28.70, 77.10)])

        assert proposal == ProposedMatch(worker_id=7, availability_id=1, match_score=99.15, distance_km=0.53)

    def test_missing_rating_uses_default(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({}), logger=quiet_logger)

        [proposal] = ranker.rank(JOB, [candidate(1, 7, *JOB)])

        # 100 * 0.8 + 60 * 0.2
        assert proposal.match_score == 92.0
        assert proposal.distance_km == 0.0
        assert quiet_logger.get_metrics()["reputation_fallbacks"] == 1

    def test_zero_rating_is_not_defaulted(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({7: 0.0}), logger=quiet_logger)

        [proposal] = ranker.rank(JOB, [candidate(1, 7, *JOB)])

        # 100 * 0.8 + 0 * 0.2
        assert proposal.match_score == 80.0
        assert quiet_logger.get_metrics()["reputation_fallbacks"] == 0

    def test_injected_default_rating(self, quiet_logger):
        policy = MatchingPolicy(default_rating=5.0)
        ranker = MatchRanker(FakeReputations({}), policy, quiet_logger)

        [proposal] = ranker.rank(JOB, [candidate(1, 7, *JOB)])

        assert proposal.match_score == 100.0

    def test_rating_above_scale_is_capped(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({7: 9.0}), logger=quiet_logger)

        [proposal] = ranker.rank(JOB, [candidate(1, 7, *JOB)])

        assert proposal.match_score == 100.0

    def test_scores_are_deterministic(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({7: 4.2}), logger=quiet_logger)
        cands = [candidate(1, 7, 28.61, 77.21)]

        assert ranker.rank(JOB, cands) == ranker.rank(JOB, cands)


class TestCutoffs:
    """Distance cutoff and acceptance threshold are both strict."""

    def test_beyond_max_distance_is_discarded(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({7: 5.0}), logger=quiet_logger)
        # One degree north is 111 km
        assert ranker.rank(JOB, [candidate(1, 7, JOB.lat + 1.0, JOB.lng)]) == []

    def test_exactly_max_distance_is_excluded(self, quiet_logger):
        # 50 km per degree puts the worker at exactly 50.0 km
        policy = MatchingPolicy(km_per_degree=50.0)
        ranker = MatchRanker(FakeReputations({7: 5.0}), policy, quiet_logger)

        assert ranker.rank(Coordinate(10.0, 20.0), [candidate(1, 7, 11.0, 20.0)]) == []

    def test_exactly_max_distance_is_excluded_with_high_score(self, quiet_logger):
        # Reputation alone would score 50 here
        policy = MatchingPolicy(km_per_degree=50.0, proximity_weight=0.5)
        ranker = MatchRanker(FakeReputations({7: 5.0}), policy, quiet_logger)

        assert ranker.rank(Coordinate(10.0, 20.0), [candidate(1, 7, 11.0, 20.0)]) == []

    def test_just_inside_max_distance_is_kept(self, quiet_logger):
        policy = MatchingPolicy(km_per_degree=50.0, proximity_weight=0.5)
        ranker = MatchRanker(FakeReputations({7: 5.0}), policy, quiet_logger)

        [proposal] = ranker.rank(Coordinate(0.0, 0.0), [candidate(1, 7, 0.98, 0.0)])

        assert proposal.distance_km == 49.0
        assert proposal.match_score == 51.0

    def test_score_exactly_at_threshold_is_excluded(self, quiet_logger):
        # 20 km: proximity 60, reputation 0, weight 0.5 -> 30.0
        policy = MatchingPolicy(km_per_degree=50.0, proximity_weight=0.5)
        ranker = MatchRanker(FakeReputations({7: 0.0}), policy, quiet_logger)

        assert ranker.rank(Coordinate(0.0, 0.0), [candidate(1, 7, 0.4, 0.0)]) == []

    def test_score_just_above_threshold_is_kept(self, quiet_logger):
        policy = MatchingPolicy(km_per_degree=50.0, proximity_weight=0.5)
        ranker = MatchRanker(FakeReputations({7: 0.5}), policy, quiet_logger)

        [proposal] = ranker.rank(Coordinate(0.0, 0.0), [candidate(1, 7, 0.4, 0.0)])

        assert proposal.match_score == 35.0
        assert proposal.distance_km == 20.0

    def test_low_reputation_far_worker_is_discarded(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({7: 0.0}), logger=quiet_logger)
        # ~44 km away: proximity ~11, reputation 0 -> ~9
        assert ranker.rank(JOB, [candidate(1, 7, JOB.lat + 0.4, JOB.lng)]) == []


class TestRunBehaviour:
    """Ordering, dedupe, failures and timeouts."""

    def test_sorted_best_first(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({1: 2.0, 2: 5.0, 3: 4.0}), logger=quiet_logger)
        cands = [
            candidate(10, 1, *JOB),
            candidate(20, 2, JOB.lat + 0.1, JOB.lng),
            candidate(30, 3, JOB.lat + 0.01, JOB.lng),
        ]

        proposals = ranker.rank(JOB, cands)

        scores = [p.match_score for p in proposals]
        assert scores == sorted(scores, reverse=True)

    def test_order_of_candidates_does_not_change_result(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({1: 2.0, 2: 5.0, 3: 4.0}), logger=quiet_logger)
        cands = [
            candidate(10, 1, *JOB),
            candidate(20, 2, JOB.lat + 0.1, JOB.lng),
            candidate(30, 3, JOB.lat + 0.01, JOB.lng),
        ]

        assert ranker.rank(JOB, cands) == ranker.rank(JOB, list(reversed(cands)))

    def test_same_worker_is_proposed_once(self, quiet_logger):
        reps = FakeReputations({7: 4.0})
        ranker = MatchRanker(reps, logger=quiet_logger)
        cands = [
            candidate(1, 7, JOB.lat + 0.2, JOB.lng),
            candidate(2, 7, JOB.lat + 0.01, JOB.lng),
        ]

        [proposal] = ranker.rank(JOB, cands)

        assert proposal.availability_id == 2
        assert reps.calls == [7]

    def test_reputation_failure_falls_back_and_continues(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({2: 5.0}, failing={1}), logger=quiet_logger)

        proposals = ranker.rank(JOB, [candidate(10, 1, *JOB), candidate(20, 2, *JOB)])

        by_worker = {p.worker_id: p for p in proposals}
        assert by_worker[1].match_score == 92.0
        assert by_worker[2].match_score == 100.0
        metrics = quiet_logger.get_metrics()
        assert metrics["reputation_fallbacks"] == 1
        assert metrics["errors_by_type"]["DataAccessError"] == 1

    def test_invalid_candidate_location_is_skipped(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({1: 5.0, 2: 5.0}), logger=quiet_logger)

        proposals = ranker.rank(JOB, [candidate(10, 1, float("nan"), 77.1), candidate(20, 2, *JOB)])

        assert [p.worker_id for p in proposals] == [2]

    def test_non_finite_job_location_raises(self, quiet_logger):
        ranker = MatchRanker(FakeReputations(), logger=quiet_logger)
        with pytest.raises(ValidationError):
            ranker.rank(Coordinate(float("inf"), 77.1), [])

    def test_no_candidates(self, quiet_logger):
        assert MatchRanker(FakeReputations(), logger=quiet_logger).rank(JOB, []) == []

    def test_expired_deadline_raises_timeout(self, quiet_logger):
        ranker = MatchRanker(FakeReputations({7: 5.0}), logger=quiet_logger)
        with pytest.raises(MatchingTimeout):
            ranker.rank(JOB, [candidate(1, 7, *JOB)], deadline=time.monotonic() - 1)
