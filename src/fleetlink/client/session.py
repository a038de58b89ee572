"""Client session state."""

from dataclasses import dataclass
from enum import Enum


class SessionPhase(Enum):
    """Lifecycle of the client's base address."""

    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    READY = "ready"


@dataclass
class BackendSession:
    """Base address and credential held by the client for the process lifetime."""

    base_address: str | None = None
    auth_token: str | None = None
    phase: SessionPhase = SessionPhase.UNINITIALIZED

    @property
    def initialized(self) -> bool:
        return self.phase == SessionPhase.READY and self.base_address is not None

    def bind(self, address: str) -> None:
        self.base_address = address.rstrip("/")
        self.phase = SessionPhase.READY

    def reset(self) -> None:
        """Drop the address; the credential is left alone."""
        self.base_address = None
        self.phase = SessionPhase.UNINITIALIZED

    def owns(self, url: str) -> bool:
        """True when ``url`` points at the bound backend."""
        return self.base_address is not None and is_under(url, self.base_address)


def is_under(url: str, base: str) -> bool:
    """True when ``url`` is ``base`` itself or a path below it."""
    base = base.rstrip("/")
    return url == base or url.startswith(base + "/")
