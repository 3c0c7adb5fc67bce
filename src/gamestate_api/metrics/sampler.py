"""
=============================================================================
HOST METRICS SAMPLER
=============================================================================

Turns raw provider readings into a MetricsSnapshot and keeps the
process-wide peaks.

=============================================================================
CPU PERCENTAGE
=============================================================================

CPU counters are cumulative, so utilization is the busy share of the time
that passed between two samples:

    idle_delta  = idle_now  - idle_prev
    total_delta = total_now - total_prev

    cpu% = round((1 - idle_delta / total_delta) * 100, 2)

The very first sample has nothing to compare against and reports 0.0.
So does any sample where total_delta <= 0 (two reads within one clock
tick, or a counter reset). The result is clamped to [0, 100].

"Current CPU" therefore means "average since the previous /api/host
request", not an instantaneous reading.

=============================================================================
CONCURRENCY
=============================================================================

    worker A ──┐
               ├──► HostMetrics._lock ──► read CPU → delta → store prev
    worker B ──┘                          → raise peaks

Reading the counters happens inside the lock too. Otherwise two workers
could read in one order and store in the other, producing a negative
delta. Memory and uptime reads need no ordering and happen outside.

Peaks only ever go up. They live as long as the HostMetrics object, which
the server keeps across stop()/start() cycles.

=============================================================================
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .providers import CpuTimes, HostMetricsProvider, default_provider


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricsSnapshot:
    """One /api/host reading."""

    current_cpu_percent: float
    peak_cpu_percent: float
    current_mem_bytes: int
    peak_mem_bytes: int
    total_mem_bytes: int
    uptime_seconds: int
    timestamp: int

    def to_dict(self) -> dict:
        """Wire shape of the /api/host payload."""
        return {
            "uptime_seconds": self.uptime_seconds,
            "total_mem": self.total_mem_bytes,
            "current_cpu": self.current_cpu_percent,
            "max_cpu": self.peak_cpu_percent,
            "current_mem": self.current_mem_bytes,
            "max_mem": self.peak_mem_bytes,
            "timestamp": self.timestamp,
        }


def cpu_percent(previous: Optional[CpuTimes], current: CpuTimes) -> float:
    """Busy percentage between two counter readings, see module docs."""
    if previous is None:
        return 0.0

    total_delta = current.total - previous.total
    if total_delta <= 0:
        return 0.0

    idle_delta = current.idle - previous.idle
    usage = (1.0 - idle_delta / total_delta) * 100.0
    return round(min(max(usage, 0.0), 100.0), 2)


class HostMetrics:
    """
    Samples host CPU, memory and uptime and tracks peaks.

    Args:
        provider: Where readings come from. Defaults to the best provider
                  for this platform.
        clock: Returns Unix time; replaced in tests.
    """

    def __init__(
        self,
        provider: Optional[HostMetricsProvider] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.provider = provider or default_provider()
        self._clock = clock

        self._lock = threading.Lock()
        self._previous_cpu: Optional[CpuTimes] = None
        self._peak_cpu = 0.0
        self._peak_mem = 0

        logger.debug(f"Host metrics provider: {type(self.provider).__name__}")

    @property
    def peak_cpu_percent(self) -> float:
        with self._lock:
            return self._peak_cpu

    @property
    def peak_mem_bytes(self) -> int:
        with self._lock:
            return self._peak_mem

    def sample(self) -> MetricsSnapshot:
        """
        Take one reading and update the peaks.

        Raises:
            OSError / ValueError: If the provider cannot read the host.
                The handler boundary turns these into a 500.
        """
        memory = self.provider.memory()
        uptime = self.provider.uptime_seconds()

        with self._lock:
            current = self.provider.cpu_times()
            cpu = cpu_percent(self._previous_cpu, current)
            self._previous_cpu = current

            self._peak_cpu = max(self._peak_cpu, cpu)
            self._peak_mem = max(self._peak_mem, memory.used)
            peak_cpu, peak_mem = self._peak_cpu, self._peak_mem

        return MetricsSnapshot(
            current_cpu_percent=cpu,
            peak_cpu_percent=peak_cpu,
            current_mem_bytes=memory.used,
            peak_mem_bytes=peak_mem,
            total_mem_bytes=memory.total,
            uptime_seconds=uptime,
            timestamp=int(self._clock()),
        )
