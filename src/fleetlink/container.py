"""
Composition root.

Builds every component from ``LinkSettings`` and wires them together, so
no discovery state lives at module level.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .auth import AuthSession
from .client import ResilientClient
from .config import LinkSettings
from .discovery import (
    AddressResolver,
    CandidateGenerator,
    Discoverer,
    DiscoveryConfig,
    HTTPProbeRunner,
    StaticResolver,
)
from .network import NetworkMonitor
from .storage import FileKV, PersistentKV
from .stores import AssignmentStore, DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class LinkContainer:
    """Wired set of FleetLink components sharing one resolver and one client."""

    settings: LinkSettings
    storage: PersistentKV
    resolver: AddressResolver
    client: ResilientClient
    auth: AuthSession
    documents: DocumentStore
    assignments: AssignmentStore
    network: NetworkMonitor
    probe_runner: HTTPProbeRunner | None = None
    _closed: bool = field(default=False, repr=False)

    @classmethod
    def from_settings(
        cls, settings: LinkSettings, storage: PersistentKV | None = None
    ) -> "LinkContainer":
        storage = storage if storage is not None else FileKV(settings.storage_path)

        probe_runner: HTTPProbeRunner | None = None
        resolver: AddressResolver
        if settings.is_production:
            resolver = StaticResolver(settings.production_url)
            logger.info("Production environment: using %s", settings.production_url)
        else:
            probe_runner = HTTPProbeRunner(settings.health_path)
            resolver = Discoverer(
                CandidateGenerator.from_settings(settings),
                probe_runner,
                storage,
                DiscoveryConfig.from_settings(settings),
            )

        client = ResilientClient(resolver, request_timeout=settings.request_timeout)
        documents = DocumentStore(client)
        assignments = AssignmentStore(client)
        return cls(
            settings=settings,
            storage=storage,
            resolver=resolver,
            client=client,
            auth=AuthSession(client, storage, stores=[documents, assignments]),
            documents=documents,
            assignments=assignments,
            network=NetworkMonitor(client),
            probe_runner=probe_runner,
        )

    async def close(self) -> None:
        """Close HTTP sessions and detach listeners."""
        if self._closed:
            return
        self._closed = True
        self.auth.close()
        await self.client.close()
        if self.probe_runner is not None:
            await self.probe_runner.close()

    async def __aenter__(self) -> "LinkContainer":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
