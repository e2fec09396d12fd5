"""
Matching task queue.

Job creation only enqueues the new job id; matching runs on a worker pool
afterwards, so a failed or slow run cannot undo or delay the posting.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import List

from .logger import get_logger
from .orchestrator import MatchingOrchestrator, MatchingOutcome

logger = get_logger()


class MatchingQueue:
    """Runs MatchingOrchestrator.process_job for submitted job ids."""

    def __init__(self, orchestrator: MatchingOrchestrator, max_workers: int = 2):
        self.orchestrator = orchestrator
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="matching")
        self._futures: List[Future] = []

    def submit(self, job_id: int) -> "Future[MatchingOutcome]":
        logger.debug("Queued matching run", job_id=job_id)
        future = self._pool.submit(self.orchestrator.process_job, job_id)
        self._futures.append(future)
        return future

    def drain(self, timeout: float = None) -> List[MatchingOutcome]:
        """Wait for every queued run and return their outcomes in submission order."""
        futures, self._futures = self._futures, []
        done, not_done = wait(futures, timeout=timeout)
        if not_done:
            logger.warning("Matching runs still in flight after drain timeout", pending=len(not_done))
            # Put them back so a later drain can collect them
            self._futures.extend(f for f in futures if f in not_done)
        outcomes = [f.result() for f in futures if f in done]
        for outcome in outcomes:
            if not outcome.ok:
                logger.warning(
                    "Job left without matches",
                    job_id=outcome.job_id,
                    error=str(outcome.error),
                )
        return outcomes

    def shutdown(self, wait_for_runs: bool = True) -> None:
        self._pool.shutdown(wait=wait_for_runs)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
