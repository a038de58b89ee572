"""
Connectivity monitoring.

The platform reports connectivity changes through ``update()``. Coming back
online, or switching network while online, usually means a different LAN and
therefore a different backend address, so the client's address is dropped and
the next request runs discovery again.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable

from ..client import ResilientClient

logger = logging.getLogger(__name__)

OnlineListener = Callable[[bool], Awaitable[None] | None]


class NetworkMonitor:
    """Tracks online state and resets backend discovery on network changes."""

    def __init__(self, client: ResilientClient):
        self.client = client
        self.is_online = True
        self.network_type: str | None = None
        self._listeners: list[OnlineListener] = []

    def add_listener(self, listener: OnlineListener) -> Callable[[], None]:
        """Call ``listener(is_online)`` after every update; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def update(self, is_connected: bool | None, network_type: str | None) -> bool:
        """
        Apply a connectivity event.

        Args:
            is_connected: Platform connectivity flag; None counts as offline.
            network_type: Platform network type such as ``wifi`` or ``cellular``.

        Returns:
            True when backend discovery was reset.
        """
        was_online = self.is_online
        previous_type = self.network_type

        self.is_online = bool(is_connected)
        self.network_type = network_type

        reset = False
        if was_online and not self.is_online:
            logger.warning("Network offline; cached data stays available")
        elif not was_online and self.is_online:
            logger.info("Network back online; re-detecting backend")
            reset = True
        elif self.is_online and previous_type is not None and previous_type != network_type:
            logger.info("Network changed: %s -> %s; re-detecting backend", previous_type, network_type)
            reset = True

        if reset:
            await self.client.reset_backend()

        for listener in list(self._listeners):
            try:
                result = listener(self.is_online)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Network listener failed")
        return reset
