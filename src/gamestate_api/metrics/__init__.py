"""Host CPU / memory / uptime sampling for /api/host."""

from .providers import (
    CpuTimes,
    MemoryUsage,
    HostMetricsProvider,
    ProcfsMetricsProvider,
    PsutilMetricsProvider,
    default_provider,
)
from .sampler import HostMetrics, MetricsSnapshot, cpu_percent

__all__ = [
    "CpuTimes",
    "MemoryUsage",
    "HostMetricsProvider",
    "ProcfsMetricsProvider",
    "PsutilMetricsProvider",
    "default_provider",
    "HostMetrics",
    "MetricsSnapshot",
    "cpu_percent",
]
