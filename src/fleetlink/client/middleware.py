"""
Request interceptors for the resilient client.

Interceptors run in order on every outgoing request and may rewrite it.
Response handling is not an interceptor concern: the client keeps the 401
path and the transport-error path as two separate handlers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .session import BackendSession

logger = logging.getLogger(__name__)


@dataclass
class PreparedRequest:
    """A request after address binding, before it is sent."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    json: Any = None
    data: Any = None  # opaque body, e.g. aiohttp.FormData
    timeout: float = 10.0


class RequestInterceptor(ABC):
    """Hook that runs before a request is sent."""

    @abstractmethod
    async def before_request(
        self, request: PreparedRequest, session: BackendSession
    ) -> PreparedRequest:
        """Return the (possibly modified) request."""


class BearerAuthInterceptor(RequestInterceptor):
    """Attach ``Authorization: Bearer <token>`` to requests for the bound backend."""

    async def before_request(
        self, request: PreparedRequest, session: BackendSession
    ) -> PreparedRequest:
        if session.auth_token and session.owns(request.url):
            request.headers["Authorization"] = f"Bearer {session.auth_token}"
        return request


class RequestLoggingInterceptor(RequestInterceptor):
    """Log every outgoing request at DEBUG level."""

    async def before_request(
        self, request: PreparedRequest, session: BackendSession
    ) -> PreparedRequest:
        logger.debug("API request: %s %s", request.method, request.url)
        return request


def default_interceptors() -> list[RequestInterceptor]:
    return [BearerAuthInterceptor(), RequestLoggingInterceptor()]
