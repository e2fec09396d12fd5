"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import date
from pathlib import Path
from typing import Any, Dict

from labourmatch.logger import StructuredLogger, get_logger

# Create the shared logger before any module grabs it, without a log file
get_logger(enable_file=False, enable_console=False)

from labourmatch.database import Job, User, WorkerAvailability, init_database
from labourmatch.storage import MatchStore

DELHI = (28.7041, 77.1025)


@pytest.fixture
def quiet_logger() -> StructuredLogger:
    """Private logger with fresh metrics and no handlers."""
    return StructuredLogger(name="labourmatch.test", enable_file=False, enable_console=False)


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "labourmatch.db"
    init_database(path)
    return path


@pytest.fixture
def store(db_path):
    s = MatchStore(db_path, read_retries=1, retry_delay=0.01)
    yield s
    s.close()


@pytest.fixture
def farmer(store) -> User:
    return store.add(User(name="Ramesh", phone="9000000001", role="farmer"))


@pytest.fixture
def make_worker(store):
    """Factory: a worker user plus one availability record."""
    counter = [0]

    def _make(
        skills: str = "harvesting, ploughing",
        lat: float = DELHI[0],
        lng: float = DELHI[1],
        rating=5.0,
        status: str = "available",
        user: User = None,
    ) -> WorkerAvailability:
        counter[0] += 1
        if user is None:
            user = store.add(
                User(
                    name=f"worker{counter[0]}",
                    phone=f"8000000{counter[0]:03d}",
                    role="worker",
                    rating=rating,
                )
            )
        return store.add(
            WorkerAvailability(
                worker_id=user.id,
                skills=skills,
                availability_date=date(2026, 11, 1),
                location_lat=lat,
                location_lng=lng,
                hourly_rate=80.0,
                status=status,
            )
        )

    return _make


@pytest.fixture
def make_job(store, farmer):
    def _make(skill: str = "harvesting", lat: float = DELHI[0], lng: float = DELHI[1], status: str = "open") -> Job:
        return store.add(
            Job(
                requester_id=farmer.id,
                job_title="Wheat harvest",
                skill_required=skill,
                workers_needed=3,
                wage_per_day=500.0,
                job_date=date(2026, 11, 2),
                location_lat=lat,
                location_lng=lng,
                status=status,
            )
        )

    return _make


@pytest.fixture
def valid_job_posting() -> Dict[str, Any]:
    """Valid job posting payload."""
    return {
        "job_title": "Wheat harvest",
        "skill_required": "harvesting",
        "workers_needed": 3,
        "wage_per_day": 500,
        "job_date": "2026-11-02",
        "location_lat": 28.7041,
        "location_lng": 77.1025,
    }


@pytest.fixture
def valid_availability() -> Dict[str, Any]:
    """Valid availability payload."""
    return {
        "skills": "harvesting, sowing",
        "availability_date": "2026-11-01",
        "hourly_rate": 80,
        "location_lat": 28.70,
        "location_lng": 77.10,
    }
