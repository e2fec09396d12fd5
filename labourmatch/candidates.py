"""
Candidate Selection.

Responsibilities:
- Select the worker availability records eligible for a job.
- Apply hard filters (required skill as substring of skills, status).

Non-Responsibilities:
- No scoring.
- No distance computation.
- No ordering guarantees.

Invariant:
A record whose skills do not contain the required token is never returned.
Store failures propagate as DataAccessError; partial results are never returned.
"""

from typing import List, Protocol

from .database import WorkerAvailability


class WorkerSource(Protocol):
    def find_eligible_workers(self, skill_token: str, status: str) -> List[WorkerAvailability]:
        ...


def skill_matches(skills: str, skill_token: str) -> bool:
    """Case-sensitive substring containment, the same rule as the store query."""
    return skill_token in (skills or "")


class CandidateFilter:
    """Eligible-worker lookup over a WorkerSource."""

    def __init__(self, source: WorkerSource, eligible_status: str = "available"):
        self.source = source
        self.eligible_status = eligible_status

    def eligible_workers(self, skill_token: str) -> List[WorkerAvailability]:
        rows = self.source.find_eligible_workers(skill_token, self.eligible_status)
        # Rows must be eligible and carry the token even if the source over-fetches
        return [
            row for row in rows
            if row.status == self.eligible_status and skill_matches(row.skills, skill_token)
        ]
