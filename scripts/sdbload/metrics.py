"""
Performance metrics collection and reporting.
Tracks item throughput, batch outcomes and write latency.
"""
import time
from dataclasses import dataclass, field
from typing import Dict, Optional
from threading import Lock


@dataclass
class TimerMetric:
    """Accumulated duration of a repeated operation."""
    total_time: float = 0.0
    count: int = 0
    max_time: float = 0.0

    def record(self, duration: float):
        self.total_time += duration
        self.count += 1
        self.max_time = max(self.max_time, duration)

    def average(self) -> float:
        """Get average time per operation."""
        return self.total_time / self.count if self.count > 0 else 0.0


@dataclass
class CounterMetric:
    """Tracks counts and rates."""
    count: int = 0
    start_time: float = field(default_factory=time.monotonic)

    def increment(self, amount: int = 1):
        self.count += amount

    def rate(self) -> float:
        """Calculate items per second."""
        elapsed = time.monotonic() - self.start_time
        return self.count / elapsed if elapsed > 0 else 0.0


class MetricsCollector:
    """
    Named counters and timers for a load run.

    Timers are recorded from worker threads while counters are updated
    by the driving thread, so every access goes through one lock.
    """

    def __init__(self):
        self._timers: Dict[str, TimerMetric] = {}
        self._counters: Dict[str, CounterMetric] = {}
        self._lock = Lock()
        self._start_time = time.monotonic()

    def record_time(self, name: str, duration: float):
        """Add one measured duration to a named timer."""
        with self._lock:
            if name not in self._timers:
                self._timers[name] = TimerMetric()
            self._timers[name].record(duration)

    def timed(self, name: str):
        """Context manager timing the enclosed block into a named timer."""
        return _Timing(self, name)

    def record_count(self, name: str, amount: int = 1):
        """Record a count increment."""
        with self._lock:
            if name not in self._counters:
                self._counters[name] = CounterMetric()
            self._counters[name].increment(amount)

    def get_count(self, name: str) -> int:
        with self._lock:
            counter = self._counters.get(name)
            return counter.count if counter else 0

    def get_rate(self, name: str) -> float:
        """Get current rate (items/second)."""
        with self._lock:
            counter = self._counters.get(name)
            return counter.rate() if counter else 0.0

    def get_timer_stats(self, name: str) -> Dict[str, float]:
        with self._lock:
            timer = self._timers.get(name)
            if timer:
                return {
                    "total": timer.total_time,
                    "count": timer.count,
                    "average": timer.average(),
                    "max": timer.max_time,
                }
        return {"total": 0.0, "count": 0, "average": 0.0, "max": 0.0}

    def elapsed_time(self) -> float:
        """Get total elapsed time since initialization."""
        return time.monotonic() - self._start_time

    def format_summary(self) -> str:
        """Format complete metrics summary."""
        with self._lock:
            lines = ["", "Performance Metrics:", "=" * 50]
            lines.append(f"Total execution time: {format_duration(self.elapsed_time())}")
            lines.append("")

            if self._counters:
                lines.append("Throughput:")
                for name, counter in sorted(self._counters.items()):
                    lines.append(f"  {name}: {counter.count:,} ({counter.rate():.1f}/s)")
                lines.append("")

            if self._timers:
                lines.append("Operation timings:")
                for name, timer in sorted(self._timers.items()):
                    if timer.count > 0:
                        lines.append(
                            f"  {name}: {timer.count} ops, avg {timer.average():.3f}s, "
                            f"max {timer.max_time:.3f}s, total {timer.total_time:.1f}s"
                        )
                lines.append("")

            lines.append("=" * 50)
            return "\n".join(lines)


class _Timing:
    def __init__(self, metrics: MetricsCollector, name: str):
        self._metrics = metrics
        self._name = name
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._metrics.record_time(self._name, time.monotonic() - self._start)
        return False


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    else:
        return f"{seconds / 3600:.1f}h"


def format_throughput(item_count: int, elapsed_seconds: float) -> str:
    """The closing summary line of a load run."""
    rate = item_count / elapsed_seconds if elapsed_seconds > 0 else 0.0
    return (
        f"Took {elapsed_seconds:.2f} seconds for {item_count} items "
        f"({rate:.1f} items per second)"
    )
