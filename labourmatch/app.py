import argparse
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from . import __version__
from .cleanup import expire_stale_matches
from .config import DEFAULT_LOCATION, Settings, load_settings
from .database import Job, User, WorkerAvailability, init_database
from .errors import (
    DataAccessError,
    InvalidTransition,
    LabourMatchError,
    NotAuthorized,
    NotFound,
    ValidationError,
)
from .logger import get_logger
from .orchestrator import MatchingOrchestrator
from .schema import require_valid, validate_availability, validate_job_posting
from .storage import MatchStore
from .tasks import MatchingQueue

logger = get_logger()

EXIT_VALIDATION = 2
EXIT_DATA_ACCESS = 3
EXIT_NOT_FOUND = 4
EXIT_CONFLICT = 9


def _as_date(v) -> date:
    return v if isinstance(v, date) else date.fromisoformat(v)


def _location(data: Dict[str, Any]) -> Tuple[float, float]:
    if data.get("location_lat") is None:
        return DEFAULT_LOCATION.lat, DEFAULT_LOCATION.lng
    return float(data["location_lat"]), float(data["location_lng"])


def create_job(store: MatchStore, data: Dict[str, Any], requester_id: int) -> Job:
    """Validate and commit a job posting. Matching is not started here."""
    require_valid(validate_job_posting(data), "job posting")
    lat, lng = _location(data)
    job = Job(
        requester_id=requester_id,
        job_title=data["job_title"].strip(),
        skill_required=data["skill_required"].strip(),
        workers_needed=data["workers_needed"],
        wage_per_day=float(data["wage_per_day"]),
        job_date=_as_date(data["job_date"]),
        location_lat=lat,
        location_lng=lng,
        status="open",
    )
    return store.add(job)


def create_availability(store: MatchStore, data: Dict[str, Any], worker_id: int) -> WorkerAvailability:
    require_valid(validate_availability(data), "availability")
    lat, lng = _location(data)
    availability = WorkerAvailability(
        worker_id=worker_id,
        skills=data["skills"],
        availability_date=_as_date(data["availability_date"]),
        location_lat=lat,
        location_lng=lng,
        hourly_rate=float(data["hourly_rate"]),
        status="available",
    )
    return store.add(availability)


def post_job(store: MatchStore, queue: MatchingQueue, data: Dict[str, Any], requester_id: int):
    """
    Create a job and queue its matching run.

    The job is committed before the run is queued, so a failed run leaves
    an open job with no matches.

    Returns:
        (job, future) where future resolves to a MatchingOutcome
    """
    job = create_job(store, data, requester_id)
    logger.info("Job posted", job_id=job.id, skill=job.skill_required, requester_id=requester_id)
    return job, queue.submit(job.id)


def _load_json(path_str: str) -> Dict[str, Any]:
    input_path = Path(path_str)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _print_match(m: Dict[str, Any]) -> None:
    print(f"Match {m['id']}: job {m['job_id']} <- worker {m['worker_id']}")
    print(f"  Score: {m['match_score']:.2f}  Distance: {m['distance_km']:.2f} km  Status: {m['status']}")
    if "name" in m:
        print(f"  Worker: {m['name']} ({m['phone']}), rating {m['rating']}")
        print(f"  Job: {m['job_title']} @ {m['wage_per_day']}/day")


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> None:
    init_database(settings.db_path)
    print(f"Initialized database at {settings.db_path}")


def cmd_add_user(args: argparse.Namespace, settings: Settings) -> None:
    store = MatchStore(settings.db_path)
    user = store.add(User(name=args.name, phone=args.phone, role=args.role, rating=args.rating))
    print(f"User {user.id}: {user.name} ({user.role})")


def cmd_post_job(args: argparse.Namespace, settings: Settings) -> None:
    store = MatchStore(settings.db_path)
    orchestrator = MatchingOrchestrator(store, settings.policy)
    with MatchingQueue(orchestrator, max_workers=settings.queue_workers) as queue:
        job, _ = post_job(store, queue, _load_json(args.input), args.requester)
        print(f"Job {job.id} posted ({job.job_title}, skill: {job.skill_required})")
        for outcome in queue.drain():
            if outcome.ok:
                print(f"Matching created {len(outcome.matches)} match(es)")
            else:
                print(f"[warn] matching failed, job stays open: {outcome.error}")


def cmd_post_availability(args: argparse.Namespace, settings: Settings) -> None:
    store = MatchStore(settings.db_path)
    availability = create_availability(store, _load_json(args.input), args.worker)
    print(f"Availability {availability.id} posted for worker {availability.worker_id}")


def cmd_match(args: argparse.Namespace, settings: Settings) -> None:
    store = MatchStore(settings.db_path)
    job = store.get_job(args.job)
    if job is None:
        raise NotFound("Job", args.job)
    matches = MatchingOrchestrator(store, settings.policy).run_matching(job)
    print(f"Created {len(matches)} match(es) for job {job.id}")
    for m in matches:
        _print_match(m.to_dict())


def cmd_matches(args: argparse.Namespace, settings: Settings) -> None:
    store = MatchStore(settings.db_path)
    rows = store.list_pending_matches(limit=args.limit)
    if not rows:
        print("No pending matches.")
        return
    print(f"Found {len(rows)} pending match(es):\n")
    for row in rows:
        _print_match(row)
        print()


def cmd_accept(args: argparse.Namespace, settings: Settings) -> None:
    store = MatchStore(settings.db_path)
    match = MatchingOrchestrator(store, settings.policy).accept_match(args.match, args.worker)
    print(f"Match {match.id} accepted")


def cmd_reject(args: argparse.Namespace, settings: Settings) -> None:
    store = MatchStore(settings.db_path)
    match = MatchingOrchestrator(store, settings.policy).reject_match(args.match, args.worker)
    print(f"Match {match.id} rejected")


def cmd_expire(args: argparse.Namespace, settings: Settings) -> None:
    before, after = expire_stale_matches(MatchStore(settings.db_path), days=args.days)
    print(f"Expired {before - after} match(es); {after} still pending")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="labourmatch", description="Labour matching engine CLI")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to SQLite database (or set LABOURMATCH_DB)")

    subparsers = parser.add_subparsers(dest="command")

    ini = subparsers.add_parser("init-db", help="Create the database tables")
    ini.set_defaults(func=cmd_init_db)

    usr = subparsers.add_parser("add-user", help="Register a user")
    usr.add_argument("--name", required=True)
    usr.add_argument("--phone", required=True)
    usr.add_argument("--role", required=True, choices=["farmer", "worker", "owner", "company"])
    usr.add_argument("--rating", type=float, help="Worker rating 0-5 (optional)")
    usr.set_defaults(func=cmd_add_user)

    pj = subparsers.add_parser("post-job", help="Post a job from JSON and run matching for it")
    pj.add_argument("--input", required=True, help="Path to job JSON")
    pj.add_argument("--requester", required=True, type=int, help="Requester user id")
    pj.set_defaults(func=cmd_post_job)

    pa = subparsers.add_parser("post-availability", help="Post worker availability from JSON")
    pa.add_argument("--input", required=True, help="Path to availability JSON")
    pa.add_argument("--worker", required=True, type=int, help="Worker user id")
    pa.set_defaults(func=cmd_post_availability)

    mt = subparsers.add_parser("match", help="Run matching for an existing job")
    mt.add_argument("--job", required=True, type=int, help="Job id")
    mt.set_defaults(func=cmd_match)

    ls = subparsers.add_parser("matches", help="List pending matches, best score first")
    ls.add_argument("--limit", type=int, default=10, help="Maximum rows (default 10)")
    ls.set_defaults(func=cmd_matches)

    for name, func, verb in (("accept", cmd_accept, "Accept"), ("reject", cmd_reject, "Reject")):
        sp = subparsers.add_parser(name, help=f"{verb} a pending match as its worker")
        sp.add_argument("--match", required=True, type=int, help="Match id")
        sp.add_argument("--worker", required=True, type=int, help="Acting worker user id")
        sp.set_defaults(func=func)

    exp = subparsers.add_parser("expire", help="Expire stale pending matches")
    exp.add_argument("--days", type=int, default=7, help="Days a match may stay pending (default 7)")
    exp.set_defaults(func=cmd_expire)

    return parser


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    settings = load_settings()
    if args.db:
        settings.db_path = Path(args.db)
    logger.set_log_dir(settings.log_dir)
    logger.set_level(settings.log_level)

    try:
        args.func(args, settings)
    except ValidationError as e:
        print("Invalid:")
        for err in e.errors:
            print(f" - {err}")
        return EXIT_VALIDATION
    except NotFound as e:
        print(f"Not found: {e}")
        return EXIT_NOT_FOUND
    except (InvalidTransition, NotAuthorized) as e:
        print(f"Conflict: {e}")
        return EXIT_CONFLICT
    except DataAccessError as e:
        print(f"Database error: {e}")
        return EXIT_DATA_ACCESS
    except LabourMatchError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
