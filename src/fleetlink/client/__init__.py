"""
Resilient client package.

``ResilientClient`` is the only entry point the application uses to talk to
the backend: ``request()``, ``set_auth_token()`` and the HTTP verb helpers.
"""

from .middleware import (
    BearerAuthInterceptor,
    PreparedRequest,
    RequestInterceptor,
    RequestLoggingInterceptor,
    default_interceptors,
)
from .resilient import RequestOptions, ResilientClient, Response
from .session import BackendSession, SessionPhase

__all__ = [
    "BackendSession",
    "BearerAuthInterceptor",
    "PreparedRequest",
    "RequestInterceptor",
    "RequestLoggingInterceptor",
    "RequestOptions",
    "ResilientClient",
    "Response",
    "SessionPhase",
    "default_interceptors",
]
