"""Tests for cleanup functionality."""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import update

from labourmatch.cleanup import expire_stale_matches
from labourmatch.database import Match, ACCEPTED, EXPIRED, PENDING


def _age(store, match_ids, days):
    with store.session() as session:
        session.execute(
            update(Match)
            .where(Match.id.in_(match_ids))
            .values(created_at=datetime.now() - timedelta(days=days))
        )


class TestCleanup:
    """Test stale match expiry."""

    @pytest.fixture
    def matches(self, store, make_job, make_worker):
        job = make_job()
        proposals = [
            SimpleNamespace(worker_id=make_worker().worker_id, match_score=70.0, distance_km=3.0)
            for _ in range(3)
        ]
        return store.create_matches(job.id, proposals)

    def test_cleanup_expires_stale_matches(self, store, matches):
        """Verify that pending matches older than threshold are expired."""
        old, new, _ = matches
        _age(store, [old.id], days=10)
        _age(store, [new.id], days=2)

        before, after = expire_stale_matches(store, days=7)

        assert before == 3
        assert after == 2
        assert store.get_match(old.id).status == EXPIRED
        assert store.get_match(new.id).status == PENDING

    def test_cleanup_leaves_decided_matches(self, store, matches):
        """Accepted matches are never expired, however old."""
        old = matches[0]
        _age(store, [old.id], days=30)
        store.transition_match(old.id, PENDING, ACCEPTED)

        before, after = expire_stale_matches(store, days=7)

        assert before == after == 2
        assert store.get_match(old.id).status == ACCEPTED

    def test_cleanup_handles_empty_database(self, store):
        """Verify cleanup handles empty database gracefully."""
        assert expire_stale_matches(store, days=7) == (0, 0)

    def test_cleanup_preserves_new_matches(self, store, matches):
        """Verify that recently created matches are always preserved."""
        before, after = expire_stale_matches(store, days=7)

        assert before == 3
        assert after == 3

    def test_negative_days_rejected(self, store):
        with pytest.raises(ValueError):
            expire_stale_matches(store, days=-1)
