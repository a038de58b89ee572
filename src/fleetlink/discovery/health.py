"""
Liveness probing for discovery candidates.

A probe is a single bounded GET against the candidate's health path. Every
failure (refused connection, DNS error, timeout, bad status, truncated body)
folds into ``False``; probes never raise and never retry.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import aiohttp

from .core import Candidate

logger = logging.getLogger(__name__)


@dataclass
class ProbeStats:
    """Counters across all probes issued by a runner."""

    attempts: int = 0
    alive: int = 0
    failed: int = 0
    total_time: float = 0.0

    @property
    def average_time(self) -> float:
        return self.total_time / self.attempts if self.attempts else 0.0


class ProbeRunner(ABC):
    """Answers "is this candidate alive" within a timeout."""

    @abstractmethod
    async def probe(self, candidate: Candidate, timeout: float) -> bool:
        """Return True only for a healthy response within ``timeout`` seconds."""

    async def close(self) -> None:
        """Release network resources."""


class HTTPProbeRunner(ProbeRunner):
    """HTTP GET liveness probe using aiohttp."""

    def __init__(
        self,
        health_path: str = "/health/",
        session: aiohttp.ClientSession | None = None,
    ):
        self.health_path = health_path if health_path.startswith("/") else f"/{health_path}"
        self._session = session
        self._owns_session = session is None
        self.stats = ProbeStats()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=0, force_close=True),
            )
            self._owns_session = True
        return self._session

    def url_for(self, candidate: Candidate) -> str:
        return f"{candidate.base_url}{self.health_path}"

    async def probe(self, candidate: Candidate, timeout: float) -> bool:
        url = self.url_for(candidate)
        start_time = time.monotonic()
        self.stats.attempts += 1
        alive = False

        try:
            session = await self._get_session()
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=False,
            ) as response:
                await response.read()
                alive = response.status == 200
                if not alive:
                    logger.debug("Probe %s answered HTTP %s", url, response.status)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            logger.debug("Probe %s timed out after %.2fs", url, timeout)
        except Exception as e:
            logger.debug("Probe %s failed: %s", url, e)

        self.stats.total_time += time.monotonic() - start_time
        if alive:
            self.stats.alive += 1
        else:
            self.stats.failed += 1
        return alive

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None
