"""
Exception hierarchy for the matching engine.

DataAccessError is the only retryable failure; the rest describe caller or
state-machine errors.
"""

from typing import List, Optional


class LabourMatchError(Exception):
    """Base class for every error raised by labourmatch."""
    pass


class DataAccessError(LabourMatchError):
    """Store unreachable, locked or timing out. Retryable by the caller."""
    pass


class ValidationError(LabourMatchError):
    """Malformed input, e.g. non-finite coordinates."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class MatchingError(LabourMatchError):
    """A matching run failed as a whole. Nothing was persisted for the run."""

    def __init__(self, message: str, job_id: Optional[int] = None):
        super().__init__(message)
        self.job_id = job_id


class MatchingTimeout(MatchingError):
    """A matching run exceeded its operational timeout."""
    pass


class LifecycleError(LabourMatchError):
    """Base class for match state machine failures."""
    pass


class NotFound(LifecycleError):
    """Referenced match or job does not exist."""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransition(LifecycleError):
    """Match is not in the status required for the requested transition."""

    def __init__(self, match_id: int, current: str, target: str):
        super().__init__(f"Match {match_id} cannot move from '{current}' to '{target}'")
        self.match_id = match_id
        self.current = current
        self.target = target


class NotAuthorized(LifecycleError):
    """Actor is not the worker the match refers to."""

    def __init__(self, match_id: int, actor_id):
        super().__init__(f"User {actor_id} may not act on match {match_id}")
        self.match_id = match_id
        self.actor_id = actor_id
