"""Current vehicle assignment store, cached for 10 minutes."""

from typing import Any

from ..cache import CacheState, RevalidatingCache
from ..client import ResilientClient

ASSIGNMENT_TTL = 10 * 60


class AssignmentStore:
    """Revalidating cache of ``/drivers/<id>/assignment`` keyed by driver id."""

    def __init__(
        self,
        client: ResilientClient,
        ttl: float = ASSIGNMENT_TTL,
        cache: RevalidatingCache[dict[str, Any]] | None = None,
    ):
        self.client = client
        self.ttl = ttl
        self.cache = cache or RevalidatingCache(name="assignments", default_ttl=ttl)

    @staticmethod
    def key(driver_id: str) -> str:
        return f"assignment-{driver_id}"

    async def _load(self, driver_id: str) -> dict[str, Any]:
        response = await self.client.get(f"/drivers/{driver_id}/assignment")
        body = response.body or {}
        return {"assignment": body.get("assignment"), "vehicle": body.get("vehicle")}

    async def fetch(
        self, driver_id: str, force_refresh: bool = False
    ) -> CacheState[dict[str, Any]]:
        return await self.cache.fetch(
            self.key(driver_id),
            lambda: self._load(driver_id),
            ttl=self.ttl,
            force_refresh=force_refresh,
        )

    def state(self, driver_id: str) -> CacheState[dict[str, Any]]:
        return self.cache.state(self.key(driver_id))

    def clear_cache(self, driver_id: str | None = None) -> None:
        self.cache.clear_cache(self.key(driver_id) if driver_id is not None else None)
