"""
Resilient HTTP client.

Binds requests to the address produced by an ``AddressResolver``, signs them
with a bearer token, and reacts to two kinds of failure differently:

* HTTP 401 - the credential is stale. Listeners are notified and the caller
  gets ``AuthenticationExpiredError``; the address is kept.
* Transport failure - the address may be stale. If the request went to the
  still-bound backend, the resolver is invalidated, the session drops back
  to ``UNINITIALIZED`` and the caller gets ``NetworkError``. The request is
  not retried inline; the next request resolves again.
"""

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from ..discovery.core import AddressResolver
from ..errors import (
    AuthenticationExpiredError,
    DiscoveryError,
    NetworkError,
    NotInitializedError,
    RemoteError,
)
from .middleware import PreparedRequest, RequestInterceptor, default_interceptors
from .session import BackendSession, SessionPhase, is_under

logger = logging.getLogger(__name__)

UnauthorizedListener = Callable[[AuthenticationExpiredError], Awaitable[None] | None]


@dataclass
class RequestOptions:
    """Per-request options."""

    params: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None  # seconds; client default when None
    form: aiohttp.FormData | None = None  # multipart body, sent as-is


@dataclass
class Response:
    """A 2xx response with its decoded body."""

    status: int
    headers: dict[str, str]
    body: Any
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ResilientClient:
    """Authenticated HTTP client that re-resolves its backend after transport failures."""

    def __init__(
        self,
        resolver: AddressResolver,
        request_timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
        interceptors: list[RequestInterceptor] | None = None,
        default_headers: dict[str, str] | None = None,
    ):
        self.resolver = resolver
        self.request_timeout = request_timeout
        self.interceptors = interceptors if interceptors is not None else default_interceptors()
        self.default_headers = {"Accept": "application/json", **(default_headers or {})}
        self.state = BackendSession()

        self._http_session = session
        self._owns_session = session is None
        self._resolve_lock = asyncio.Lock()
        self._unauthorized_listeners: list[UnauthorizedListener] = []
        self._closed = False

    # Session state

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def base_address(self) -> str:
        if not self.state.initialized:
            raise NotInitializedError("Client has not resolved a backend address yet")
        return self.state.base_address  # type: ignore[return-value]

    @property
    def auth_token(self) -> str | None:
        return self.state.auth_token

    def set_auth_token(self, token: str | None) -> None:
        """Set or clear the bearer token used on subsequent requests."""
        self.state.auth_token = token or None

    def on_unauthorized(self, listener: UnauthorizedListener) -> Callable[[], None]:
        """Register a 401 listener; returns an unsubscribe function."""
        self._unauthorized_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._unauthorized_listeners:
                self._unauthorized_listeners.remove(listener)

        return unsubscribe

    async def reset_backend(self) -> None:
        """Forget the bound address and invalidate discovery; the next request resolves again."""
        self.state.reset()
        await self.resolver.invalidate()

    async def ensure_ready(self) -> str:
        """Resolve the base address if needed and return it."""
        if self.state.initialized:
            return self.state.base_address  # type: ignore[return-value]

        async with self._resolve_lock:
            if self.state.initialized:
                return self.state.base_address  # type: ignore[return-value]

            self.state.phase = SessionPhase.RESOLVING
            try:
                address = await self.resolver.resolve(False)
            except DiscoveryError as e:
                self.state.reset()
                raise NotInitializedError(
                    f"Backend address unavailable: {e.message}", e.context
                ) from e
            except BaseException:
                self.state.reset()
                raise

            self.state.bind(address)
            logger.info("API client initialized with backend %s", self.state.base_address)
            return self.state.base_address  # type: ignore[return-value]

    # HTTP

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the shared HTTP session."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
            self._owns_session = True
        return self._http_session

    @staticmethod
    def _join(base: str, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{base.rstrip('/')}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        options: RequestOptions | None = None,
    ) -> Response:
        """
        Send a request to the current backend.

        Args:
            method: HTTP method.
            path: Path relative to the base address, or an absolute URL.
            body: JSON-serialisable request body.
            options: Query parameters, headers, timeout or multipart form.

        Returns:
            The 2xx response.

        Raises:
            NotInitializedError: No backend address could be resolved.
            NetworkError: Transport failure; the next request re-resolves.
            AuthenticationExpiredError: HTTP 401.
            RemoteError: Any other non-2xx status.
        """
        if self._closed:
            raise NotInitializedError("Client is closed")
        options = options or RequestOptions()

        base = await self.ensure_ready()
        prepared = PreparedRequest(
            method=method.upper(),
            url=self._join(base, path),
            headers={**self.default_headers, **options.headers},
            params=options.params,
            json=body if options.form is None else None,
            data=options.form,
            timeout=options.timeout or self.request_timeout,
        )
        for interceptor in self.interceptors:
            prepared = await interceptor.before_request(prepared, self.state)

        session = await self._get_session()
        try:
            async with session.request(
                prepared.method,
                prepared.url,
                headers=prepared.headers,
                params=prepared.params,
                json=prepared.json,
                data=prepared.data,
                timeout=aiohttp.ClientTimeout(total=prepared.timeout),
            ) as raw:
                response = await self._read_response(raw)
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            await self._handle_transport_error(prepared, base, e)
            raise NetworkError(prepared.method, prepared.url, str(e) or type(e).__name__) from e

        if response.status == 401:
            await self._handle_unauthorized(prepared, response)
        if not response.ok:
            logger.warning(
                "API error: %s %s -> HTTP %s", prepared.method, prepared.url, response.status
            )
            raise RemoteError(response.status, response.body, prepared.method, prepared.url)

        logger.debug("API response: %s %s -> %s", prepared.method, prepared.url, response.status)
        return response

    @staticmethod
    async def _read_response(raw: aiohttp.ClientResponse) -> Response:
        payload = await raw.read()
        text = payload.decode(raw.get_encoding() if payload else "utf-8", errors="replace")
        body: Any = text or None
        if payload and raw.content_type == "application/json":
            try:
                body = json.loads(text)
            except ValueError:
                logger.warning("Response from %s declared JSON but did not parse", raw.url)
        return Response(status=raw.status, headers=dict(raw.headers), body=body, url=str(raw.url))

    async def _handle_transport_error(
        self, request: PreparedRequest, base: str, error: BaseException
    ) -> None:
        """
        Drop the address and invalidate discovery; the caller sees NetworkError.

        Only a failure under ``base`` while it is still the bound address
        resets anything.
        """
        reason = str(error) or type(error).__name__
        if not is_under(request.url, base):
            logger.warning("Network error on %s %s (%s)", request.method, request.url, reason)
            return
        if self.state.base_address != base:
            logger.warning(
                "Network error on %s %s (%s); backend address already changed",
                request.method,
                request.url,
                reason,
            )
            return
        logger.warning(
            "Network error on %s %s (%s); clearing cached backend address",
            request.method,
            request.url,
            reason,
        )
        await self.reset_backend()

    async def _handle_unauthorized(self, request: PreparedRequest, response: Response) -> None:
        """Notify listeners and raise; the address stays bound."""
        error = AuthenticationExpiredError(response.body, request.method, request.url)
        logger.info("Authentication expired on %s %s", request.method, request.url)
        for listener in list(self._unauthorized_listeners):
            try:
                result = listener(error)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Unauthorized listener failed")
        raise error

    async def get(self, path: str, options: RequestOptions | None = None) -> Response:
        return await self.request("GET", path, None, options)

    async def post(
        self, path: str, body: Any = None, options: RequestOptions | None = None
    ) -> Response:
        return await self.request("POST", path, body, options)

    async def put(
        self, path: str, body: Any = None, options: RequestOptions | None = None
    ) -> Response:
        return await self.request("PUT", path, body, options)

    async def patch(
        self, path: str, body: Any = None, options: RequestOptions | None = None
    ) -> Response:
        return await self.request("PATCH", path, body, options)

    async def delete(self, path: str, options: RequestOptions | None = None) -> Response:
        return await self.request("DELETE", path, None, options)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        self._closed = True
        if self._owns_session and self._http_session and not self._http_session.closed:
            await self._http_session.close()
        self._http_session = None

    async def __aenter__(self) -> "ResilientClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
