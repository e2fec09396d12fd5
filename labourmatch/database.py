"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for users, job postings, worker availability
and matches.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

JOB_STATUSES = ("open", "filled", "cancelled")
WORKER_STATUSES = ("available", "booked", "inactive")

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
EXPIRED = "expired"
MATCH_STATUSES = (PENDING, ACCEPTED, REJECTED, EXPIRED)


class User(Base):
    """Registered user. Workers carry a 0-5 rating used as reputation."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False, unique=True)
    role = Column(String, nullable=False)  # farmer, worker, owner, company
    rating = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class Job(Base):
    """Job posting created by a requester."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    job_title = Column(String, nullable=False)
    skill_required = Column(String, nullable=False)
    workers_needed = Column(Integer, nullable=False)
    wage_per_day = Column(Float, nullable=False)
    job_date = Column(Date, nullable=False)
    location_lat = Column(Float, nullable=False)
    location_lng = Column(Float, nullable=False)
    status = Column(String, nullable=False, default="open")
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class WorkerAvailability(Base):
    """A worker's posted availability; skills is free text."""

    __tablename__ = "worker_availability"

    id = Column(Integer, primary_key=True)
    worker_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    skills = Column(String, nullable=False)
    availability_date = Column(Date, nullable=False)
    location_lat = Column(Float, nullable=False)
    location_lng = Column(Float, nullable=False)
    hourly_rate = Column(Float, nullable=False)
    status = Column(String, nullable=False, default="available")
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class Match(Base):
    """Scored (job, worker) pairing. Only status changes after insert."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("job_id", "worker_id", name="uq_match_job_worker"),
        CheckConstraint("match_score >= 0 AND match_score <= 100", name="ck_match_score_range"),
    )

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False)
    worker_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    match_score = Column(Float, nullable=False)
    distance_km = Column(Float, nullable=False)
    status = Column(String, nullable=False, default=PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "worker_id": self.worker_id,
            "match_score": self.match_score,
            "distance_km": self.distance_km,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def get_engine(db_path: Path):
    """
    Create an engine for the SQLite file at db_path.

    Args:
        db_path: Path to SQLite database file
    """
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path))
    return Session()
