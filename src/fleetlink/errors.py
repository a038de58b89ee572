"""
FleetLink Exceptions

Typed error hierarchy shared by backend discovery and the resilient client.
Each error carries a human readable message and a context dictionary that is
safe to log.
"""

from typing import Any


class FleetLinkError(Exception):
    """Base exception for all FleetLink errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# Discovery errors


class DiscoveryError(FleetLinkError):
    """Backend discovery could not produce an address."""


class DiscoveryExhaustedError(DiscoveryError):
    """Every candidate was probed and none of them answered."""

    def __init__(self, candidates_probed: int, batches: int):
        super().__init__(
            "Backend unreachable: no candidate answered the liveness check "
            f"({candidates_probed} candidates probed in {batches} batches). "
            "Check that the backend is running and the device is on the same network.",
            {"candidates_probed": candidates_probed, "batches": batches},
        )
        self.candidates_probed = candidates_probed
        self.batches = batches


class StorageUnavailableError(DiscoveryError):
    """Persistent key-value storage could not be read or written."""

    def __init__(self, operation: str, key: str, reason: str = ""):
        super().__init__(
            f"Storage {operation} failed for {key!r}" + (f": {reason}" if reason else ""),
            {"operation": operation, "key": key},
        )
        self.operation = operation
        self.key = key


# Client errors


class ClientError(FleetLinkError):
    """A request through the resilient client failed."""


class NetworkError(ClientError):
    """Transport-level failure: refused connection, DNS failure or timeout."""

    def __init__(self, method: str, url: str, reason: str):
        super().__init__(
            f"Network error on {method} {url}: {reason}",
            {"method": method, "url": url},
        )
        self.method = method
        self.url = url
        self.reason = reason


class RemoteError(ClientError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, body: Any, method: str = "", url: str = ""):
        super().__init__(
            f"Backend returned HTTP {status} for {method} {url}".strip(),
            {"status": status, "method": method, "url": url},
        )
        self.status = status
        self.body = body
        self.method = method
        self.url = url


class AuthenticationExpiredError(RemoteError):
    """HTTP 401: the credential is stale, the address is still valid."""

    def __init__(self, body: Any, method: str = "", url: str = ""):
        super().__init__(401, body, method, url)
        self.message = f"Authentication expired for {method} {url}".strip()
        self.args = (self.message,)


class NotInitializedError(ClientError):
    """The client has no usable base address."""
