"""
Per-domain request throttling on a linear ramp.

SimpleDB penalizes bursty writers, so each domain starts at a low
request rate that rises linearly to a ceiling over the ramp time.
"""
import time
from typing import Callable, List

from .config import ConfigurationError
from .logger import get_logger


class RampThrottle:
    """
    Enforces a minimum gap between consecutive writes to the same domain.

    The allowed rate is a function of elapsed time since the job started,
    shared by every domain: a domain first written late in the run gets
    the higher rate straight away.

    Only the driving thread calls acquire(), so the last-write table
    needs no lock.
    """

    def __init__(
        self,
        domain_count: int,
        min_rps: float = 1.0,
        max_rps: float = 5.0,
        ramp_time: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            domain_count: Number of domains tracked
            min_rps: Requests per second per domain at job start
            max_rps: Requests per second per domain once the ramp is over
            ramp_time: Seconds over which the rate rises from min to max
            clock: Monotonic time source in seconds
            sleep: Blocking wait used when a domain is written too soon
        """
        if domain_count < 1:
            raise ConfigurationError(f"domain_count must be at least 1, got {domain_count}")
        if min_rps <= 0 or max_rps <= 0:
            raise ConfigurationError("request rates must be positive")
        if ramp_time < 0:
            raise ConfigurationError("ramp_time must not be negative")

        self.domain_count = domain_count
        self.min_rps = min_rps
        self.max_rps = max_rps
        self.ramp_time = ramp_time
        self._clock = clock
        self._sleep = sleep
        self.logger = get_logger()

        self._job_start = clock()
        self._last_write: List[float] = [0.0] * domain_count
        self._total_wait = 0.0

    def start(self):
        """Mark the job start and forget all previous writes."""
        self._job_start = self._clock()
        self._last_write = [0.0] * self.domain_count
        self._total_wait = 0.0

    def elapsed(self) -> float:
        """Seconds since the job started."""
        return self._clock() - self._job_start

    def current_rps(self, elapsed: float) -> float:
        """Allowed requests per second per domain at `elapsed` seconds into the job."""
        if elapsed >= self.ramp_time:
            return self.max_rps
        return self.min_rps + (elapsed / self.ramp_time) * (self.max_rps - self.min_rps)

    def desired_delay(self, elapsed: float) -> float:
        """Minimum seconds between writes to one domain at `elapsed`."""
        return 1.0 / self.current_rps(elapsed)

    def acquire(self, domain_index: int) -> float:
        """
        Block until the domain may be written again, then record the write.

        Returns:
            Seconds spent waiting
        """
        elapsed = self.elapsed()
        since_last = elapsed - self._last_write[domain_index]
        delay = self.desired_delay(elapsed)

        waited = 0.0
        if since_last < delay:
            waited = delay - since_last
            self._sleep(waited)
            elapsed = self.elapsed()

        self._last_write[domain_index] = elapsed
        self._total_wait += waited
        if waited:
            self.logger.debug(
                "Throttled domain",
                domain=domain_index,
                waited=f"{waited:.3f}s",
                rps=f"{self.current_rps(elapsed):.2f}"
            )
        return waited

    def last_write(self, domain_index: int) -> float:
        return self._last_write[domain_index]

    @property
    def total_wait(self) -> float:
        """Seconds the driving thread has spent blocked since start()."""
        return self._total_wait
