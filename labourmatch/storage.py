"""
SQLAlchemy-backed store for the matching engine.

Every read is retried on transient OperationalError and every SQLAlchemy
failure leaves this module as DataAccessError. Match status only ever
changes through a conditional UPDATE guarded on the current status.
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .database import Job, Match, User, WorkerAvailability, PENDING, get_engine
from .errors import DataAccessError, InvalidTransition, NotFound
from .logger import get_logger
from .retry import RetryError, exponential_backoff, is_transient_error

logger = get_logger()


class MatchStore:
    """Reads and conditional writes over the labourmatch database."""

    def __init__(self, db_path: Path, read_retries: int = 3, retry_delay: float = 0.05):
        self.db_path = db_path
        self.engine = get_engine(db_path)
        # expire_on_commit=False keeps returned rows readable after the session closes
        self._Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.read_retries = read_retries
        self.retry_delay = retry_delay

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self):
        """Session scope: commit on success, rollback and re-raise on failure."""
        session = self._Session()
        try:
            yield session
            session.commit()
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def _read(self, operation: str, func, *args):
        """Run a read with retry, translating failures into DataAccessError."""
        retrying = exponential_backoff(
            max_retries=self.read_retries,
            base_delay=self.retry_delay,
            exceptions=(OperationalError,),
            retry_if=is_transient_error,
            on_retry=lambda attempt, e, delay: logger.warning(
                f"Retrying {operation}", attempt=attempt, delay=delay, error=str(e)
            ),
        )(func)
        try:
            return retrying(*args)
        except RetryError as e:
            raise DataAccessError(f"{operation} failed: {e}") from e
        except SQLAlchemyError as e:
            raise DataAccessError(f"{operation} failed: {e}") from e

    # Collaborator contracts used by the engine

    def find_eligible_workers(self, skill_token: str, status: str) -> List[WorkerAvailability]:
        """
        Availability records whose skills contain skill_token and whose status matches.

        SQL LIKE is case-insensitive on SQLite, so it only narrows the scan;
        the case-sensitive containment check happens here.
        """
        def query():
            with self.session() as session:
                rows = (
                    session.query(WorkerAvailability)
                    .filter(WorkerAvailability.status == status)
                    .filter(WorkerAvailability.skills.contains(skill_token, autoescape=True))
                    .all()
                )
            return [row for row in rows if skill_token in row.skills]

        return self._read("find_eligible_workers", query)

    def get_reputation(self, worker_id: int) -> Optional[float]:
        """Worker rating, or None when the worker has none on record."""
        def query():
            with self.session() as session:
                return session.query(User.rating).filter(User.id == worker_id).scalar()

        return self._read("get_reputation", query)

    def create_matches(self, job_id: int, proposals: Iterable) -> List[Match]:
        """
        Insert one pending match per proposal in a single transaction.

        Either every proposal is stored or none is.
        """
        rows = [
            Match(
                job_id=job_id,
                worker_id=p.worker_id,
                match_score=p.match_score,
                distance_km=p.distance_km,
                status=PENDING,
            )
            for p in proposals
        ]
        if not rows:
            return []
        try:
            with self.session() as session:
                session.add_all(rows)
        except IntegrityError as e:
            raise DataAccessError(f"Duplicate or invalid match for job {job_id}: {e.orig}") from e
        except SQLAlchemyError as e:
            raise DataAccessError(f"create_matches failed for job {job_id}: {e}") from e
        return rows

    def transition_match(self, match_id: int, from_status: str, to_status: str) -> Match:
        """
        Move a match from from_status to to_status as one conditional UPDATE.

        Raises:
            NotFound: no match with that id
            InvalidTransition: the match exists but is not in from_status
        """
        try:
            with self.session() as session:
                result = session.execute(
                    update(Match)
                    .where(Match.id == match_id, Match.status == from_status)
                    .values(status=to_status, updated_at=datetime.now())
                )
                match = session.get(Match, match_id)
                if match is None:
                    raise NotFound("Match", match_id)
                if result.rowcount != 1:
                    raise InvalidTransition(match_id, match.status, to_status)
                return match
        except SQLAlchemyError as e:
            raise DataAccessError(f"transition_match failed for match {match_id}: {e}") from e

    # Lookups and listings

    def get_match(self, match_id: int) -> Optional[Match]:
        def query():
            with self.session() as session:
                return session.get(Match, match_id)

        return self._read("get_match", query)

    def get_job(self, job_id: int) -> Optional[Job]:
        def query():
            with self.session() as session:
                return session.get(Job, job_id)

        return self._read("get_job", query)

    def matches_for_job(self, job_id: int) -> List[Match]:
        def query():
            with self.session() as session:
                return (
                    session.query(Match)
                    .filter(Match.job_id == job_id)
                    .order_by(Match.match_score.desc())
                    .all()
                )

        return self._read("matches_for_job", query)

    def list_pending_matches(self, limit: int = 10) -> List[dict]:
        """Pending matches with worker and job details, best score first."""
        def query():
            with self.session() as session:
                rows = (
                    session.query(Match, User, Job)
                    .join(User, Match.worker_id == User.id)
                    .join(Job, Match.job_id == Job.id)
                    .filter(Match.status == PENDING)
                    .order_by(Match.match_score.desc())
                    .limit(limit)
                    .all()
                )
            return [
                {
                    **match.to_dict(),
                    "name": user.name,
                    "phone": user.phone,
                    "rating": user.rating,
                    "job_title": job.job_title,
                    "wage_per_day": job.wage_per_day,
                }
                for match, user, job in rows
            ]

        return self._read("list_pending_matches", query)

    def count_matches(self, status: Optional[str] = None) -> int:
        def query():
            with self.session() as session:
                q = session.query(Match)
                if status is not None:
                    q = q.filter(Match.status == status)
                return q.count()

        return self._read("count_matches", query)

    def expire_pending_matches(self, older_than: datetime, to_status: str) -> int:
        """Conditionally move pending matches created before older_than. Returns rows changed."""
        try:
            with self.session() as session:
                result = session.execute(
                    update(Match)
                    .where(Match.status == PENDING, Match.created_at < older_than)
                    .values(status=to_status, updated_at=datetime.now())
                )
                return result.rowcount
        except SQLAlchemyError as e:
            raise DataAccessError(f"expire_pending_matches failed: {e}") from e

    # Writes used by the CLI

    def add(self, record):
        """Persist a new record and return it with its generated id."""
        try:
            with self.session() as session:
                session.add(record)
        except SQLAlchemyError as e:
            raise DataAccessError(f"Insert into {record.__tablename__} failed: {e}") from e
        return record
