import math
from datetime import date
from typing import Any, Dict, List

from .errors import ValidationError

JOB_REQUIRED_FIELDS = ["job_title", "skill_required", "workers_needed", "wage_per_day", "job_date"]
AVAILABILITY_REQUIRED_FIELDS = ["skills", "availability_date", "hourly_rate"]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _valid_date(v: Any) -> bool:
    if isinstance(v, date):
        return True
    try:
        date.fromisoformat(v)
        return True
    except (TypeError, ValueError):
        return False


def _missing(data: Dict[str, Any], fields: List[str]) -> List[str]:
    return [f"Missing required field: {f}" for f in fields if data.get(f) in (None, "")]


def coordinate_errors(data: Dict[str, Any]) -> List[str]:
    """Checks location_lat/location_lng if given. Both or neither."""
    errors: List[str] = []
    lat, lng = data.get("location_lat"), data.get("location_lng")
    if lat is None and lng is None:
        return errors
    if lat is None or lng is None:
        return ["Fields 'location_lat' and 'location_lng' must be given together"]
    if not _is_number(lat) or not -90 <= lat <= 90:
        errors.append("Field 'location_lat' must be a finite number within [-90, 90]")
    if not _is_number(lng) or not -180 <= lng <= 180:
        errors.append("Field 'location_lng' must be a finite number within [-180, 180]")
    return errors


def validate_job_posting(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors = _missing(data, JOB_REQUIRED_FIELDS)

    for f in ("job_title", "skill_required"):
        if f in data and data[f] not in (None, "") and not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    workers = data.get("workers_needed")
    if workers not in (None, "") and (not isinstance(workers, int) or isinstance(workers, bool) or workers < 1):
        errors.append("Field 'workers_needed' must be a positive integer")

    wage = data.get("wage_per_day")
    if wage not in (None, "") and (not _is_number(wage) or wage <= 0):
        errors.append("Field 'wage_per_day' must be a positive number")

    if data.get("job_date") not in (None, "") and not _valid_date(data["job_date"]):
        errors.append("Field 'job_date' must be an ISO date (YYYY-MM-DD)")

    errors.extend(coordinate_errors(data))
    return errors


def validate_availability(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors = _missing(data, AVAILABILITY_REQUIRED_FIELDS)

    if data.get("skills") not in (None, "") and not _is_non_empty_str(data["skills"]):
        errors.append("Field 'skills' must be a non-empty string")

    rate = data.get("hourly_rate")
    if rate not in (None, "") and (not _is_number(rate) or rate <= 0):
        errors.append("Field 'hourly_rate' must be a positive number")

    if data.get("availability_date") not in (None, "") and not _valid_date(data["availability_date"]):
        errors.append("Field 'availability_date' must be an ISO date (YYYY-MM-DD)")

    errors.extend(coordinate_errors(data))
    return errors


def require_valid(errors: List[str], what: str) -> None:
    """Raise ValidationError carrying every message if errors is non-empty."""
    if errors:
        raise ValidationError(f"Invalid {what}: {'; '.join(errors)}", errors)
