"""
pytest configuration and fixtures.
"""

import http.client
import json
from typing import Generator, List, Optional

import pytest

from gamestate_api import GameStateServer, ServerConfig, SnapshotWorld, PlayerSnapshot
from gamestate_api.metrics import CpuTimes, HostMetrics, HostMetricsProvider, MemoryUsage


class FakeProvider(HostMetricsProvider):
    """
    Scripted host readings.

    cpu_readings are handed out in order; the last one repeats.
    """

    def __init__(
        self,
        cpu_readings: Optional[List[CpuTimes]] = None,
        memory_readings: Optional[List[MemoryUsage]] = None,
        uptime: int = 3600,
    ):
        self.cpu_readings = list(cpu_readings or [CpuTimes(idle=100, total=200)])
        self.memory_readings = list(
            memory_readings or [MemoryUsage(total=8 * 1024 ** 3, available=6 * 1024 ** 3)]
        )
        self.uptime = uptime

    def cpu_times(self) -> CpuTimes:
        if len(self.cpu_readings) > 1:
            return self.cpu_readings.pop(0)
        return self.cpu_readings[0]

    def memory(self) -> MemoryUsage:
        if len(self.memory_readings) > 1:
            return self.memory_readings.pop(0)
        return self.memory_readings[0]

    def uptime_seconds(self) -> int:
        return self.uptime


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/players?equipment=true&page=2 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def world() -> SnapshotWorld:
    """Two players online, one logged out."""
    world = SnapshotWorld(
        server_info={"name": "Azeroth", "version": "3.3.5a"},
        started_at=1_000_000.0,
        clock=lambda: 1_000_120.0,
    )
    world.upsert_player(PlayerSnapshot(
        name="Thrall",
        profile={"level": 80, "race": "Orc", "class": "Shaman"},
        stats={"health": 25000, "mana": 18000, "strength": 400},
        equipment=[{"slot": "head", "item": 40554}, {"slot": "chest", "item": 40550}],
        skills=[{"id": 373, "value": 450}],
        skills_full=[{"id": 373, "name": "Enhancement", "value": 450, "max": 450}],
        quests=[{"id": 12000, "status": "incomplete"}],
    ))
    world.upsert_player(PlayerSnapshot(
        name="Jaina",
        profile={"level": 80, "race": "Human", "class": "Mage"},
        stats={"health": 18000, "mana": 32000, "intellect": 600},
        equipment=[{"slot": "head", "item": 40416}],
    ))
    world.upsert_player(PlayerSnapshot(name="Arthas", in_world=False, stats={"health": 1}))
    return world


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def metrics(fake_provider: FakeProvider) -> HostMetrics:
    return HostMetrics(provider=fake_provider)


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration on an OS-chosen port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        stop_timeout=2.0,
        accept_poll_interval=0.05,
        log_level="WARNING",
    )


@pytest.fixture
def server(world: SnapshotWorld, config: ServerConfig, metrics: HostMetrics) -> Generator[GameStateServer, None, None]:
    """A constructed (not started) server, always stopped afterwards."""
    srv = GameStateServer(world, config, metrics=metrics)
    yield srv
    srv.stop()


@pytest.fixture
def running_server(server: GameStateServer) -> GameStateServer:
    """A started server."""
    assert server.start() is True
    return server


def get(server: GameStateServer, path: str, method: str = "GET", headers: Optional[dict] = None):
    """
    Issue one request to a running server.

    Returns:
        (status, headers dict, decoded JSON body or None)
    """
    conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
    try:
        conn.request(method, path, headers=headers or {})
        response = conn.getresponse()
        body = response.read()
        payload = json.loads(body) if body else None
        return response.status, dict(response.getheaders()), payload
    finally:
        conn.close()


@pytest.fixture
def api_get():
    """The get() helper, for tests talking to a running server."""
    return get


@pytest.fixture
def make_provider():
    """FakeProvider class, for tests that script their own readings."""
    return FakeProvider
