"""
Unit tests for host metrics providers and the sampler.
"""

import threading

import pytest

from gamestate_api.metrics import (
    CpuTimes,
    HostMetrics,
    MemoryUsage,
    ProcfsMetricsProvider,
    PsutilMetricsProvider,
    cpu_percent,
)


class TestCpuPercent:
    """Tests for the delta formula."""

    def test_first_sample_is_zero(self):
        assert cpu_percent(None, CpuTimes(idle=50, total=100)) == 0.0

    def test_busy_share(self):
        previous = CpuTimes(idle=100, total=200)
        current = CpuTimes(idle=130, total=300)

        # 30 of 100 ticks idle
        assert cpu_percent(previous, current) == 70.0

    def test_rounded_to_two_places(self):
        previous = CpuTimes(idle=0, total=0)
        current = CpuTimes(idle=1, total=3)

        assert cpu_percent(previous, current) == 66.67

    def test_no_elapsed_ticks(self):
        reading = CpuTimes(idle=10, total=20)

        assert cpu_percent(reading, reading) == 0.0

    def test_counter_reset(self):
        assert cpu_percent(CpuTimes(idle=10, total=500), CpuTimes(idle=1, total=5)) == 0.0

    def test_clamped(self):
        # idle moved more than total: nonsense input, still within range
        assert cpu_percent(CpuTimes(0, 0), CpuTimes(idle=20, total=10)) == 0.0
        assert cpu_percent(CpuTimes(10, 0), CpuTimes(idle=0, total=10)) == 100.0


class TestMemoryUsage:
    def test_used(self):
        assert MemoryUsage(total=1000, available=400).used == 600

    def test_used_never_negative(self):
        assert MemoryUsage(total=100, available=200).used == 0


class TestProcfsProvider:
    """Parsing of /proc files from a fake root."""

    @pytest.fixture
    def proc_root(self, tmp_path):
        (tmp_path / "stat").write_text(
            "cpu  100 5 50 800 20 3 2 0 7 0\n"
            "cpu0 50 2 25 400 10 1 1 0 0 0\n"
        )
        (tmp_path / "meminfo").write_text(
            "MemTotal:       16000 kB\n"
            "MemFree:         2000 kB\n"
            "MemAvailable:    6000 kB\n"
        )
        (tmp_path / "uptime").write_text("350735.47 234388.90\n")
        return tmp_path

    def test_cpu_times(self, proc_root):
        times = ProcfsMetricsProvider(str(proc_root)).cpu_times()

        assert times.idle == 820
        assert times.total == 100 + 5 + 50 + 800 + 20 + 3 + 2 + 0

    def test_cpu_times_short_line(self, proc_root):
        (proc_root / "stat").write_text("cpu  10 0 10 80\n")

        times = ProcfsMetricsProvider(str(proc_root)).cpu_times()

        assert times == CpuTimes(idle=80, total=100)

    def test_cpu_times_bad_header(self, proc_root):
        (proc_root / "stat").write_text("intr 1 2 3\n")

        with pytest.raises(ValueError):
            ProcfsMetricsProvider(str(proc_root)).cpu_times()

    def test_memory(self, proc_root):
        memory = ProcfsMetricsProvider(str(proc_root)).memory()

        assert memory.total == 16000 * 1024
        assert memory.available == 6000 * 1024
        assert memory.used == 10000 * 1024

    def test_memory_without_available(self, proc_root):
        (proc_root / "meminfo").write_text("MemTotal: 16000 kB\nMemFree: 2000 kB\n")

        memory = ProcfsMetricsProvider(str(proc_root)).memory()

        assert memory.available == 2000 * 1024

    def test_memory_without_total(self, proc_root):
        (proc_root / "meminfo").write_text("MemFree: 2000 kB\n")

        with pytest.raises(ValueError):
            ProcfsMetricsProvider(str(proc_root)).memory()

    def test_uptime(self, proc_root):
        assert ProcfsMetricsProvider(str(proc_root)).uptime_seconds() == 350735

    def test_missing_root(self, tmp_path):
        with pytest.raises(OSError):
            ProcfsMetricsProvider(str(tmp_path / "nope")).cpu_times()


class TestPsutilProvider:
    """Smoke test against the real host."""

    def test_readings(self):
        provider = PsutilMetricsProvider()

        times = provider.cpu_times()
        memory = provider.memory()

        assert times.total >= times.idle >= 0
        assert memory.total > 0
        assert provider.uptime_seconds() >= 0


class TestHostMetrics:
    """Tests for the sampler and its peaks."""

    def test_first_sample(self, make_provider):
        metrics = HostMetrics(provider=make_provider(uptime=42), clock=lambda: 1234.5)

        snapshot = metrics.sample()

        assert snapshot.current_cpu_percent == 0.0
        assert snapshot.uptime_seconds == 42
        assert snapshot.timestamp == 1234
        assert snapshot.current_mem_bytes == 2 * 1024 ** 3
        assert snapshot.total_mem_bytes == 8 * 1024 ** 3

    def test_second_sample_uses_delta(self, make_provider):
        provider = make_provider(cpu_readings=[
            CpuTimes(idle=100, total=200),
            CpuTimes(idle=150, total=400),
        ])
        metrics = HostMetrics(provider=provider)

        metrics.sample()
        assert metrics.sample().current_cpu_percent == 75.0

    def test_peaks_never_decrease(self, make_provider):
        provider = make_provider(
            cpu_readings=[
                CpuTimes(idle=0, total=0),
                CpuTimes(idle=10, total=100),    # 90%
                CpuTimes(idle=100, total=200),   # 10%
            ],
            memory_readings=[
                MemoryUsage(total=1000, available=100),
                MemoryUsage(total=1000, available=900),
                MemoryUsage(total=1000, available=500),
            ],
        )
        metrics = HostMetrics(provider=provider)

        snapshots = [metrics.sample() for _ in range(3)]

        assert [s.peak_cpu_percent for s in snapshots] == [0.0, 90.0, 90.0]
        assert [s.peak_mem_bytes for s in snapshots] == [900, 900, 900]
        assert snapshots[2].current_cpu_percent == 10.0
        assert snapshots[2].current_mem_bytes == 500
        assert metrics.peak_cpu_percent == 90.0
        assert metrics.peak_mem_bytes == 900

    def test_peak_at_least_current(self, make_provider):
        metrics = HostMetrics(provider=make_provider())

        snapshot = metrics.sample()

        assert snapshot.peak_cpu_percent >= snapshot.current_cpu_percent
        assert snapshot.peak_mem_bytes >= snapshot.current_mem_bytes

    def test_to_dict_keys(self, make_provider):
        payload = HostMetrics(provider=make_provider()).sample().to_dict()

        assert set(payload) == {
            "uptime_seconds", "total_mem", "current_cpu", "max_cpu",
            "current_mem", "max_mem", "timestamp",
        }

    def test_concurrent_samples_stay_in_range(self, make_provider):
        """Deltas are computed under one lock, so no sample goes negative."""

        class CountingProvider(make_provider):
            def __init__(self):
                super().__init__()
                self._ticks = 0
                self._lock = threading.Lock()

            def cpu_times(self):
                with self._lock:
                    self._ticks += 100
                    return CpuTimes(idle=self._ticks // 2, total=self._ticks)

        metrics = HostMetrics(provider=CountingProvider())
        results = []

        def worker():
            for _ in range(50):
                results.append(metrics.sample().current_cpu_percent)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 200
        assert all(0.0 <= value <= 100.0 for value in results)
        assert metrics.peak_cpu_percent == 50.0
