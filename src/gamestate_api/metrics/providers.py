"""
=============================================================================
HOST METRIC PROVIDERS
=============================================================================

Raw platform readings behind one interface. A provider only reads
counters; turning two CPU readings into a percentage and tracking peaks is
the sampler's job (sampler.py).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  HostMetricsProvider (ABC)                           │
    │        cpu_times()   memory()   uptime_seconds()                     │
    ├──────────────────────────────┬──────────────────────────────────────┤
    │ ProcfsMetricsProvider        │ PsutilMetricsProvider                 │
    │ Linux, reads /proc directly  │ everything else, via psutil           │
    └──────────────────────────────┴──────────────────────────────────────┘

default_provider() picks one once, when the sampler is built.

=============================================================================
/proc FORMATS
=============================================================================

/proc/stat, first line (values in clock ticks since boot):

    cpu  user nice system idle iowait irq softirq steal [guest guest_nice]

    idle  = idle + iowait
    total = user + nice + system + idle + iowait + irq + softirq + steal

guest time is already counted in user, so it is left out of the total.

/proc/meminfo (values in kB):

    MemTotal:       16318428 kB
    MemAvailable:    9023412 kB

/proc/uptime:

    350735.47 234388.90      (seconds since boot, idle seconds)

=============================================================================
"""

import os
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict

import psutil


@dataclass(frozen=True)
class CpuTimes:
    """Cumulative CPU counters; only differences between two are meaningful."""

    idle: float
    total: float


@dataclass(frozen=True)
class MemoryUsage:
    """Physical memory in bytes."""

    total: int
    available: int

    @property
    def used(self) -> int:
        return max(self.total - self.available, 0)


class HostMetricsProvider(ABC):
    """Source of raw host readings."""

    @abstractmethod
    def cpu_times(self) -> CpuTimes:
        """Cumulative idle and total CPU time."""

    @abstractmethod
    def memory(self) -> MemoryUsage:
        """Current physical memory totals."""

    @abstractmethod
    def uptime_seconds(self) -> int:
        """Seconds since the host booted."""


class ProcfsMetricsProvider(HostMetricsProvider):
    """
    Reads /proc on Linux.

    Args:
        proc_root: Directory holding stat, meminfo and uptime. Tests point
                   this at a temporary directory.
    """

    CPU_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")

    def __init__(self, proc_root: str = "/proc"):
        self.proc_root = proc_root

    def _read(self, name: str) -> str:
        with open(os.path.join(self.proc_root, name), "r", encoding="ascii") as f:
            return f.read()

    def cpu_times(self) -> CpuTimes:
        first_line = self._read("stat").splitlines()[0]
        parts = first_line.split()

        if not parts or parts[0] != "cpu":
            raise ValueError(f"Unexpected /proc/stat header: {first_line!r}")

        # Older kernels report fewer columns; missing ones count as zero.
        values = [int(v) for v in parts[1:1 + len(self.CPU_FIELDS)]]
        values += [0] * (len(self.CPU_FIELDS) - len(values))
        counters = dict(zip(self.CPU_FIELDS, values))

        return CpuTimes(
            idle=counters["idle"] + counters["iowait"],
            total=sum(values),
        )

    def memory(self) -> MemoryUsage:
        fields: Dict[str, int] = {}
        for line in self._read("meminfo").splitlines():
            key, _, rest = line.partition(":")
            if key in ("MemTotal", "MemAvailable", "MemFree"):
                fields[key] = int(rest.split()[0]) * 1024

        if "MemTotal" not in fields:
            raise ValueError("MemTotal missing from /proc/meminfo")

        # Kernels before 3.14 have no MemAvailable.
        available = fields.get("MemAvailable", fields.get("MemFree", 0))
        return MemoryUsage(total=fields["MemTotal"], available=available)

    def uptime_seconds(self) -> int:
        return int(float(self._read("uptime").split()[0]))


class PsutilMetricsProvider(HostMetricsProvider):
    """Cross-platform readings through psutil."""

    def cpu_times(self) -> CpuTimes:
        times = psutil.cpu_times()
        fields = times._asdict()

        # Same accounting as /proc/stat: guest time is already in user.
        fields.pop("guest", None)
        fields.pop("guest_nice", None)

        idle = fields.get("idle", 0.0) + fields.get("iowait", 0.0)
        return CpuTimes(idle=idle, total=sum(fields.values()))

    def memory(self) -> MemoryUsage:
        vm = psutil.virtual_memory()
        return MemoryUsage(total=int(vm.total), available=int(vm.available))

    def uptime_seconds(self) -> int:
        return max(int(time.time() - psutil.boot_time()), 0)


def default_provider() -> HostMetricsProvider:
    """procfs on Linux when /proc/stat is readable, psutil otherwise."""
    if sys.platform.startswith("linux") and os.access("/proc/stat", os.R_OK):
        return ProcfsMetricsProvider()
    return PsutilMetricsProvider()
