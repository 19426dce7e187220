"""
Per-domain batch buffers.
"""
from typing import List

from .config import ConfigurationError
from .records import Record


class BatchBuffer:
    """
    Accumulates pending records per domain.

    A buffer is ready once it holds more than batch_count records, so full
    batches carry batch_count + 1 items. Buffers live in a fixed-size list
    indexed by domain and are only touched by the driving thread.
    """

    def __init__(self, domain_count: int, batch_count: int):
        if domain_count < 1:
            raise ConfigurationError(f"domain_count must be at least 1, got {domain_count}")
        if batch_count < 1:
            raise ConfigurationError(f"batch_count must be at least 1, got {batch_count}")
        self.domain_count = domain_count
        self.batch_count = batch_count
        self._pending: List[List[Record]] = [[] for _ in range(domain_count)]

    def append(self, domain_index: int, record: Record):
        self._pending[domain_index].append(record)

    def pending_count(self, domain_index: int) -> int:
        return len(self._pending[domain_index])

    def should_flush(self, domain_index: int) -> bool:
        return len(self._pending[domain_index]) > self.batch_count

    def take_and_reset(self, domain_index: int) -> List[Record]:
        """Detach the domain's pending records and install an empty list."""
        batch = self._pending[domain_index]
        self._pending[domain_index] = []
        return batch

    def non_empty(self) -> List[int]:
        """Indices of domains with pending records, ascending."""
        return [index for index, batch in enumerate(self._pending) if batch]

    def total_pending(self) -> int:
        return sum(len(batch) for batch in self._pending)
