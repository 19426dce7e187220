"""
Asynchronous batch dispatch and collection.

Batches are submitted to a bounded thread pool as soon as they fill up
and collected once all input has been consumed. A failed batch is
reported and counted but never retried here.
"""
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional

from .config import ERR_WRITE_FAILED
from .logger import get_logger
from .metrics import MetricsCollector
from .partition import domain_name
from .records import Record
from .store import WriteFailure
from .throttle import RampThrottle


@dataclass
class PendingWrite:
    """Handle to an in-flight batch write."""
    future: Future
    domain_index: int
    domain_name: str
    item_count: int

    def is_done(self) -> bool:
        return self.future.done()

    def failure(self) -> Optional[WriteFailure]:
        """Block until resolved; None on success, structured detail on failure."""
        error = self.future.exception()
        if error is None:
            return None
        return WriteFailure.from_exception(self.domain_name, self.item_count, error)


@dataclass
class DrainReport:
    """Outcome of collecting every outstanding write."""
    batches_written: int = 0
    items_written: int = 0
    batches_failed: int = 0
    items_failed: int = 0
    failures: List[WriteFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.batches_failed == 0


class BatchDispatcher:
    """
    Submits batch writes to a fixed-size worker pool.

    Throttling gates submission, not completion: submit() blocks the
    caller until the domain's ramp allows another write. Submissions
    beyond the pool size queue inside the executor.

    Use as a context manager; leaving the block shuts the pool down.
    """

    def __init__(
        self,
        store,
        throttle: RampThrottle,
        domain_prefix: str,
        thread_count: int,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.throttle = throttle
        self.domain_prefix = domain_prefix
        self.thread_count = thread_count
        self.metrics = metrics or MetricsCollector()
        self.logger = get_logger()

        self._executor: Optional[ThreadPoolExecutor] = None
        self._outstanding: List[PendingWrite] = []

    def __enter__(self):
        self._executor = ThreadPoolExecutor(
            max_workers=self.thread_count,
            thread_name_prefix="sdbload-writer",
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        return False

    @property
    def outstanding(self) -> int:
        return len(self._outstanding)

    def submit(self, domain_index: int, records: List[Record]) -> PendingWrite:
        """Throttle the domain, then hand the batch to the pool."""
        if self._executor is None:
            raise RuntimeError("BatchDispatcher must be entered before submitting")

        self.throttle.acquire(domain_index)

        name = domain_name(self.domain_prefix, domain_index)
        future = self._executor.submit(self.store.put_batch, name, records)
        pending = PendingWrite(
            future=future,
            domain_index=domain_index,
            domain_name=name,
            item_count=len(records),
        )
        self._outstanding.append(pending)
        self.metrics.record_count("batches_submitted")
        self.logger.debug("Batch submitted", domain=name, items=len(records))
        return pending

    def drain(self) -> DrainReport:
        """
        Wait for every outstanding write and account for its outcome.

        Completion order is whatever the pool produces. Failures are logged
        with full detail and collected; the remaining writes are still
        waited on.
        """
        report = DrainReport()
        by_future = {pending.future: pending for pending in self._outstanding}
        self._outstanding = []

        for future in as_completed(by_future):
            pending = by_future[future]
            failure = pending.failure()

            if failure is None:
                report.batches_written += 1
                report.items_written += pending.item_count
                self.metrics.record_count("items_written", pending.item_count)
                self.metrics.record_count("batches_written")
                continue

            report.batches_failed += 1
            report.items_failed += pending.item_count
            report.failures.append(failure)
            self.metrics.record_count("items_failed", pending.item_count)
            self.metrics.record_count("batches_failed")
            self.logger.error(ERR_WRITE_FAILED, **failure.details())

        return report
