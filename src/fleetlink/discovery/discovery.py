"""
Backend Discovery

Finds which candidate address currently reaches a live backend. Results are
cached in memory and in persistent storage for a configurable window; a full
discovery probes candidates in fixed-size batches so that at most
``batch_size`` connections are open at once.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from ..config import FallbackPolicy
from ..errors import DiscoveryExhaustedError
from ..storage import PersistentKV
from .candidates import CandidateGenerator
from .core import AddressResolver, Candidate, DiscoveryConfig
from .health import ProbeRunner
from .results import DiscoveryResult

logger = logging.getLogger(__name__)


class Discoverer(AddressResolver):
    """
    Resolve the working backend address.

    Resolution order:
    1. in-memory result younger than ``cache_ttl``,
    2. persisted result younger than ``cache_ttl`` that still answers one probe,
    3. full batched discovery over the generated candidates,
    4. the fallback policy when nothing answers.

    Concurrent ``resolve`` calls share one in-flight resolution; a forced call
    only shares a forced one. Resolutions that cannot share run one after
    another, so at most ``batch_size`` probes are ever in flight.
    ``invalidate`` may run at any time; a resolution that was already running
    when it was called still returns its address to its callers but does not
    cache it, and later calls start a fresh one.
    """

    def __init__(
        self,
        generator: CandidateGenerator,
        probe_runner: ProbeRunner,
        storage: PersistentKV,
        config: DiscoveryConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.generator = generator
        self.probe_runner = probe_runner
        self.storage = storage
        self.config = config or DiscoveryConfig()
        self._clock = clock

        self._memory: DiscoveryResult | None = None
        self._last_address: str | None = None
        self._generation = 0
        self._inflight: asyncio.Future[str] | None = None
        self._inflight_key: tuple[int, bool] = (0, False)  # (generation, forced)
        # One resolution touches the network at a time
        self._resolve_lock = asyncio.Lock()

        self._stats = {
            "resolutions": 0,
            "memory_hits": 0,
            "storage_hits": 0,
            "discoveries": 0,
            "probes": 0,
            "fallbacks": 0,
            "failures": 0,
        }

    @property
    def current_address(self) -> str | None:
        return self._last_address

    async def resolve(self, force_refresh: bool = False) -> str:
        """
        Return a live backend address.

        Args:
            force_refresh: Skip both caches and run a full discovery.

        Raises:
            DiscoveryExhaustedError: Strict policy and no candidate answered.
        """
        self._stats["resolutions"] += 1

        if not force_refresh:
            address = await self._memory_hit()
            if address is not None:
                return address

        generation = self._generation
        task = self._inflight
        if task is None or task.done() or not self._can_join(generation, force_refresh):
            task = asyncio.ensure_future(self._resolve(force_refresh, generation))
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
            self._inflight_key = (generation, force_refresh)
        return await asyncio.shield(task)

    def _can_join(self, generation: int, force_refresh: bool) -> bool:
        """A forced resolve only joins a forced run; nobody joins a run from before invalidate()."""
        inflight_generation, inflight_forced = self._inflight_key
        return inflight_generation == generation and (inflight_forced or not force_refresh)

    def _clear_inflight(self, task: asyncio.Future[str]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            # Retrieved here so shielded failures with no waiter are not reported as lost
            logger.debug("Resolution failed: %s", task.exception())

    async def invalidate(self) -> None:
        """Forget memory and persisted results; the next resolve rediscovers."""
        self._generation += 1
        self._memory = None
        self._last_address = None
        await self._storage_remove()
        logger.info("Backend address cache cleared")

    async def _resolve(self, force_refresh: bool, generation: int) -> str:
        async with self._resolve_lock:
            if not force_refresh and generation == self._generation:
                # The run this one waited for may have produced a result
                address = await self._memory_hit()
                if address is not None:
                    return address
            return await self._resolve_uncached(force_refresh, generation)

    async def _resolve_uncached(self, force_refresh: bool, generation: int) -> str:
        # Results of a resolve started before invalidate() are returned but not cached
        if not force_refresh:
            address = await self._persisted_hit(generation)
            if address is not None:
                return address

        winner, probed, batches = await self._discover()
        if winner is not None:
            result = DiscoveryResult(address=winner.base_url, discovered_at=self._clock())
            if generation == self._generation:
                self._memory = result
                self._last_address = result.address
                await self._storage_set(result.to_json())
            logger.info("Detected backend at %s", result.address)
            return result.address

        if generation == self._generation:
            # Every candidate is dead, including any previously cached one
            self._memory = None
            await self._storage_remove()

        if self.config.fallback_policy == FallbackPolicy.LENIENT and self.config.fallback_address:
            self._stats["fallbacks"] += 1
            fallback = self.config.fallback_address
            if generation == self._generation:
                self._last_address = fallback
            logger.warning("No local backend detected, using fallback %s", fallback)
            return fallback

        self._stats["failures"] += 1
        raise DiscoveryExhaustedError(probed, batches)

    async def _memory_hit(self) -> str | None:
        memory = self._memory
        if memory is None:
            return None
        if not memory.is_fresh(self._clock(), self.config.cache_ttl):
            if self._memory is memory:
                self._memory = None
            return None
        if self.config.verify_memory_hit and not await self._probe_address(memory.address):
            logger.info("Cached backend %s stopped answering", memory.address)
            if self._memory is memory:
                self._memory = None
            await self._storage_remove()
            return None
        self._stats["memory_hits"] += 1
        return memory.address

    async def _persisted_hit(self, generation: int) -> str | None:
        raw = await self._storage_get()
        if raw is None:
            return None

        stored = DiscoveryResult.from_json(raw)
        now = self._clock()
        if stored is None or not stored.is_fresh(now, self.config.cache_ttl):
            await self._storage_remove()
            return None

        if not await self._probe_address(stored.address):
            logger.info("Stored backend %s no longer answers", stored.address)
            await self._storage_remove()
            return None

        if generation == self._generation:
            self._memory = DiscoveryResult(address=stored.address, discovered_at=now)
            self._last_address = stored.address
        self._stats["storage_hits"] += 1
        logger.info("Using cached backend URL %s", stored.address)
        return stored.address

    async def _discover(self) -> tuple[Candidate | None, int, int]:
        """Probe candidates batch by batch; first alive in generation order wins."""
        self._stats["discoveries"] += 1
        candidates = self.generator.generate()
        size = self.config.batch_size
        batches = [candidates[i : i + size] for i in range(0, len(candidates), size)]
        probed = 0

        logger.info(
            "Auto-detecting backend across %d candidates in %d batches",
            len(candidates),
            len(batches),
        )
        for index, batch in enumerate(batches, start=1):
            results = await asyncio.gather(
                *(self._probe(candidate) for candidate in batch),
                return_exceptions=True,
            )
            probed += len(batch)
            for candidate, alive in zip(batch, results):
                if isinstance(alive, BaseException):
                    logger.warning("Probe of %s raised %r", candidate, alive)
                    continue
                if alive:
                    logger.debug("Batch %d winner: %s", index, candidate)
                    return candidate, probed, index

        return None, probed, len(batches)

    async def _probe(self, candidate: Candidate) -> bool:
        self._stats["probes"] += 1
        return await self.probe_runner.probe(candidate, self.config.probe_timeout)

    async def _probe_address(self, address: str) -> bool:
        try:
            candidate = Candidate.from_url(address)
        except ValueError:
            logger.warning("Cached backend address %r is not a valid URL", address)
            return False
        try:
            return await self._probe(candidate)
        except Exception as e:
            logger.warning("Probe of %s raised %r", candidate, e)
            return False

    async def _storage_get(self) -> str | None:
        try:
            return await self.storage.get(self.config.storage_key)
        except Exception as e:
            logger.warning("Failed to load cached backend URL: %s", e)
            return None

    async def _storage_set(self, value: str) -> None:
        try:
            await self.storage.set(self.config.storage_key, value)
        except Exception as e:
            logger.warning("Failed to cache backend URL: %s", e)

    async def _storage_remove(self) -> None:
        try:
            await self.storage.remove(self.config.storage_key)
        except Exception as e:
            logger.warning("Failed to remove cached backend URL: %s", e)

    def get_stats(self) -> dict[str, Any]:
        """Resolution counters."""
        return {**self._stats, "current_address": self._last_address}
