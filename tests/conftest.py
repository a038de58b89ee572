"""
Shared pytest fixtures for FleetLink tests.

Provides a controllable clock, in-memory and failing storage, and a scripted
probe runner that records which candidates were probed and how many probes
were in flight at once, plus a local aiohttp backend with a route table.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from fleetlink.discovery import Candidate, CandidateGenerator, ProbeRunner
from fleetlink.errors import StorageUnavailableError
from fleetlink.logging import ROOT_LOGGER_NAME
from fleetlink.storage import InMemoryKV, PersistentKV


class FakeClock:
    """Epoch-seconds clock advanced by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProbeRunner(ProbeRunner):
    """Answers alive for the configured base URLs and records every probe."""

    def __init__(self, alive: Iterable[str] = (), delays: dict[str, int] | None = None):
        self.alive = set(alive)
        self.delays = delays or {}
        self.probed: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def probe(self, candidate: Candidate, timeout: float) -> bool:
        url = candidate.base_url
        self.probed.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield a few times so probes of a batch overlap
            for _ in range(self.delays.get(url, 2)):
                await asyncio.sleep(0)
            return url in self.alive
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


class FailingKV(PersistentKV):
    """Storage whose every operation fails."""

    async def get(self, key: str) -> str | None:
        raise StorageUnavailableError("read", key, "disk unavailable")

    async def set(self, key: str, value: str) -> None:
        raise StorageUnavailableError("write", key, "disk unavailable")

    async def remove(self, key: str) -> None:
        raise StorageUnavailableError("remove", key, "disk unavailable")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryKV:
    return InMemoryKV()


@pytest.fixture
def failing_storage() -> FailingKV:
    return FailingKV()


@pytest.fixture
def make_generator():
    def factory(*urls: str) -> CandidateGenerator:
        return CandidateGenerator(urls=urls, fallback_hosts=())

    return factory


@pytest.fixture
def make_prober():
    def factory(alive: Iterable[str] = (), delays: dict[str, int] | None = None) -> ScriptedProbeRunner:
        return ScriptedProbeRunner(alive, delays)

    return factory


class FakeBackend:
    """
    Local aiohttp server answering from a route table.

    ``routes[(method, path)]`` is ``(status, body)``; dict and list bodies are
    sent as JSON, strings as text. Every request is recorded.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {("GET", "/health/"): (200, {"status": "ok"})}
        self.requests: list[dict[str, Any]] = []
        self.server: TestServer | None = None

    @property
    def url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"

    def route(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method.upper(), path)] = (status, body)

    async def _handle(self, request: web.Request) -> web.Response:
        payload = None
        if request.can_read_body and request.content_type == "application/json":
            payload = await request.json()
        self.requests.append(
            {
                "method": request.method,
                "path": request.path,
                "query": dict(request.query),
                "headers": dict(request.headers),
                "json": payload,
            }
        )
        status, body = self.routes.get((request.method, request.path), (404, {"detail": "Not Found"}))
        if isinstance(body, (dict, list)):
            return web.json_response(body, status=status)
        return web.Response(status=status, text=body or "")

    async def start(self) -> None:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._handle)
        self.server = TestServer(app)
        await self.server.start_server()

    async def close(self) -> None:
        await self.server.close()


@pytest_asyncio.fixture
async def backend():
    backend = FakeBackend()
    await backend.start()
    yield backend
    await backend.close()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() calls so caplog sees every record."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
