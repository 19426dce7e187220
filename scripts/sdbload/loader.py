"""
The driving loop of a load run.

Consumes a record source on a single thread, fills per-domain buffers,
submits full buffers through the throttle to the writer pool, flushes
what is left at the end and waits for every write to finish.
"""
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from tqdm import tqdm

from .buffer import BatchBuffer
from .config import LoaderConfig, MSG_LOADING_ITEMS, MSG_WAITING
from .dispatch import BatchDispatcher, DrainReport
from .logger import get_logger
from .metrics import MetricsCollector, format_throughput
from .records import Record
from .store import WriteFailure
from .throttle import RampThrottle


@dataclass
class LoadReport:
    """Summary of a completed run."""
    items_read: int = 0
    batches_submitted: int = 0
    items_written: int = 0
    items_failed: int = 0
    batches_failed: int = 0
    elapsed_seconds: float = 0.0
    throttle_wait_seconds: float = 0.0
    failures: List[WriteFailure] = field(default_factory=list)

    @property
    def items_per_second(self) -> float:
        return self.items_read / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0

    def summary(self) -> str:
        return format_throughput(self.items_read, self.elapsed_seconds)


class BulkLoader:
    """Wires the buffer, throttle and dispatcher together for one run."""

    def __init__(
        self,
        config: LoaderConfig,
        store,
        metrics: Optional[MetricsCollector] = None,
        throttle: Optional[RampThrottle] = None,
        show_progress: bool = False,
    ):
        self.config = config
        self.store = store
        self.metrics = metrics or MetricsCollector()
        self.throttle = throttle or RampThrottle(
            config.domain_count,
            min_rps=config.min_rps,
            max_rps=config.max_rps,
            ramp_time=config.ramp_time,
        )
        self.show_progress = show_progress
        self.logger = get_logger()

    def run(self, source: Iterable[Tuple[Record, int]]) -> LoadReport:
        """
        Load every record from the source.

        Transport failures are reported in the returned LoadReport; only
        configuration problems raise.
        """
        config = self.config
        buffer = BatchBuffer(config.domain_count, config.batch_count)
        report = LoadReport()

        self.logger.info(
            MSG_LOADING_ITEMS,
            domains=config.domain_count,
            batch=config.batch_count,
            threads=config.thread_count,
            rps=f"{config.min_rps}->{config.max_rps}",
            ramp=f"{config.ramp_time}s"
        )

        start = time.monotonic()
        self.throttle.start()

        dispatcher = BatchDispatcher(
            self.store,
            self.throttle,
            config.domain_prefix,
            config.thread_count,
            self.metrics,
        )
        with dispatcher:
            items = tqdm(
                source,
                desc="Loading",
                unit="item",
                disable=not self.show_progress,
            )
            for record, domain_index in items:
                report.items_read += 1
                buffer.append(domain_index, record)
                if buffer.should_flush(domain_index):
                    dispatcher.submit(domain_index, buffer.take_and_reset(domain_index))
                    report.batches_submitted += 1

            # Write out any half-filled buffers
            self.logger.debug("Flushing partial batches", items=buffer.total_pending())
            for domain_index in buffer.non_empty():
                dispatcher.submit(domain_index, buffer.take_and_reset(domain_index))
                report.batches_submitted += 1

            self.logger.info(MSG_WAITING, batches=dispatcher.outstanding)
            drained = dispatcher.drain()

        self.metrics.record_count("items_read", report.items_read)
        self._merge(report, drained)
        report.elapsed_seconds = time.monotonic() - start
        report.throttle_wait_seconds = self.throttle.total_wait

        if report.batches_failed:
            self.logger.warning(
                "Load finished with failed batches",
                failed_batches=report.batches_failed,
                failed_items=report.items_failed
            )
        else:
            self.logger.success(
                "Load complete",
                items=report.items_written,
                rate=f"{report.items_per_second:.1f}/s"
            )

        return report

    @staticmethod
    def _merge(report: LoadReport, drained: DrainReport):
        report.items_written = drained.items_written
        report.items_failed = drained.items_failed
        report.batches_failed = drained.batches_failed
        report.failures = drained.failures
