"""
Bounded worker pool for best-effort bulk operations.

One producer thread feeds a shared queue from the caller's job list and N
worker threads drain it. Every job runs exactly once; a failing job is logged
where it fails and counted, and the batch always runs to the end.
"""

import logging
import queue
import threading
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar

from creeperkeeper.core.error_codes import check_batch

logger = logging.getLogger(__name__)

T = TypeVar('T')

_DONE = object()


class FailureCounter:
    """The one piece of state the workers share."""

    def __init__(self):
        self._lock = threading.Lock()
        self._value = 0

    def add(self, n: int = 1) -> int:
        with self._lock:
            self._value += n
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class WorkerPool(Generic[T]):
    """
    Runs `func` over jobs with at most `limit` invocations active at once.

    `func` signals failure by raising; the exception is logged together with
    `describe(job)` and counted. No ordering is guaranteed between jobs.
    """

    def __init__(self, func: Callable[[T], object], limit: int,
                 describe: Optional[Callable[[T], str]] = None,
                 name: str = "job"):
        if limit < 1:
            raise ValueError(f"worker limit must be positive, got {limit}")
        self.func = func
        self.limit = limit
        self.describe = describe or repr
        self.name = name

    def run(self, jobs: Iterable[T]) -> int:
        """Process every job and return how many failed."""
        jobs = list(jobs)
        if not jobs:
            return 0

        failures = FailureCounter()
        jobq: queue.Queue = queue.Queue(maxsize=self.limit)
        nworkers = min(self.limit, len(jobs))

        def produce():
            for job in jobs:
                jobq.put(job)
            for _ in range(nworkers):
                jobq.put(_DONE)

        def consume():
            while True:
                job = jobq.get()
                if job is _DONE:
                    return
                try:
                    self.func(job)
                except Exception as e:
                    failures.add()
                    logger.error("%s %s: %s", self.name, self.describe(job), e)

        producer = threading.Thread(target=produce, name=f"{self.name}-producer", daemon=True)
        workers = [
            threading.Thread(target=consume, name=f"{self.name}-worker-{i}", daemon=True)
            for i in range(nworkers)
        ]
        producer.start()
        for w in workers:
            w.start()
        producer.join()
        for w in workers:
            w.join()

        logger.debug("%s: %d jobs, %d failed", self.name, len(jobs), failures.value)
        return failures.value


def parallel(jobs: Sequence[T], func: Callable[[T], object], limit: int,
             describe: Optional[Callable[[T], str]] = None,
             name: str = "job") -> int:
    """Run jobs concurrently; returns the failure count."""
    return WorkerPool(func, limit, describe=describe, name=name).run(jobs)


def run_batch(operation: str, jobs: Sequence[T], func: Callable[[T], object],
              limit: int, describe: Optional[Callable[[T], str]] = None):
    """
    Run a bulk operation through the pool.
    Raises BatchError("<operation>: <k> / <n> failed") if any job failed.
    """
    nerr = parallel(jobs, func, limit, describe=describe, name=operation)
    check_batch(operation, nerr, len(jobs))
