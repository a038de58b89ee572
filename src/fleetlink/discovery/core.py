"""
Core Discovery Abstractions

Candidate addresses, discovery configuration and the resolver interface that
the resilient client binds to.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import urlsplit

from ..config import FallbackPolicy, LinkSettings

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Candidate:
    """One backend address considered during discovery."""

    scheme: str
    host: str
    port: int
    path: str = ""

    @property
    def base_url(self) -> str:
        """Base URL without trailing slash."""
        url = f"{self.scheme}://{self.host}"
        if self.port != DEFAULT_PORTS.get(self.scheme):
            url += f":{self.port}"
        if self.path:
            url += self.path if self.path.startswith("/") else f"/{self.path}"
        return url.rstrip("/")

    @classmethod
    def from_url(cls, url: str) -> "Candidate":
        """Parse ``scheme://host[:port][/path]``."""
        parts = urlsplit(url.strip())
        if parts.scheme not in DEFAULT_PORTS or not parts.hostname:
            raise ValueError(f"Not an http(s) URL: {url!r}")
        return cls(
            scheme=parts.scheme,
            host=parts.hostname,
            port=parts.port or DEFAULT_PORTS[parts.scheme],
            path=parts.path.rstrip("/"),
        )

    def __str__(self) -> str:
        return self.base_url


@dataclass
class DiscoveryConfig:
    """Configuration for backend discovery."""

    health_path: str = "/health/"
    probe_timeout: float = 2.0  # seconds per probe
    batch_size: int = 4  # concurrent probes per batch
    cache_ttl: float = 300.0  # discovery cache window in seconds
    fallback_policy: FallbackPolicy = FallbackPolicy.STRICT
    fallback_address: str | None = None
    verify_memory_hit: bool = False
    storage_key: str = "@backend_url"

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        if self.fallback_policy == FallbackPolicy.LENIENT and not self.fallback_address:
            raise ValueError("Lenient fallback policy requires a fallback_address")

    @classmethod
    def from_settings(cls, settings: LinkSettings) -> "DiscoveryConfig":
        return cls(
            health_path=settings.health_path,
            probe_timeout=settings.probe_timeout,
            batch_size=settings.batch_size,
            cache_ttl=settings.discovery_ttl,
            fallback_policy=settings.fallback_policy,
            fallback_address=settings.production_url,
            verify_memory_hit=settings.verify_memory_hit,
            storage_key=settings.storage_key,
        )


class AddressResolver(ABC):
    """Source of the backend base address used by the resilient client."""

    @abstractmethod
    async def resolve(self, force_refresh: bool = False) -> str:
        """Return a base address or raise DiscoveryError."""

    @abstractmethod
    async def invalidate(self) -> None:
        """Forget the current address so the next resolve starts over."""

    @property
    @abstractmethod
    def current_address(self) -> str | None:
        """Last resolved address, if any."""


class StaticResolver(AddressResolver):
    """Resolver bound to a fixed address, used in production builds."""

    def __init__(self, address: str):
        self._address = address.rstrip("/")

    async def resolve(self, force_refresh: bool = False) -> str:
        return self._address

    async def invalidate(self) -> None:
        """A static address has nothing to forget."""

    @property
    def current_address(self) -> str | None:
        return self._address
