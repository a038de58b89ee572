"""
Driver authentication session.

Owns the credential lifecycle on top of ``ResilientClient``: login stores the
bearer token and persists it, restore reloads it at start-up, and a 401 from
any request clears it.
"""

import json
import logging
from collections.abc import Iterable
from typing import Any, Protocol

from ..client import ResilientClient
from ..errors import AuthenticationExpiredError, FleetLinkError
from ..storage import PersistentKV

logger = logging.getLogger(__name__)

TOKEN_KEY = "authToken"
USER_KEY = "user"
USER_TYPE_KEY = "userType"
CREDENTIAL_KEYS = [TOKEN_KEY, USER_KEY, USER_TYPE_KEY]

DRIVER_USER_TYPE = "driver"


class ClearableStore(Protocol):
    def clear_cache(self, driver_id: str | None = None) -> None: ...


class AuthSession:
    """Login, logout and restore for driver accounts."""

    def __init__(
        self,
        client: ResilientClient,
        storage: PersistentKV,
        stores: Iterable[ClearableStore] = (),
    ):
        self.client = client
        self.storage = storage
        self.stores = list(stores)
        self.user: dict[str, Any] | None = None
        self._unsubscribe = client.on_unauthorized(self._on_unauthorized)

    @property
    def token(self) -> str | None:
        return self.client.auth_token

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    async def login(self, identifier: str | int, password: str) -> dict[str, Any]:
        """
        Log a driver in and persist the credential.

        The identifier is always sent as a string; numeric phone numbers or
        employee ids would otherwise be rejected by the backend.

        Returns:
            The user record returned by the backend.
        """
        await self._forget_credential()

        response = await self.client.post(
            "/auth/driver-login", {"identifier": str(identifier), "password": password}
        )
        body = response.body or {}
        token = body.get("token")
        if not token:
            raise FleetLinkError("Login response did not contain a token", {"status": response.status})

        user = body.get("user") or {}
        self.client.set_auth_token(str(token))
        self.user = user

        await self.storage.set(TOKEN_KEY, str(token))
        await self.storage.set(USER_KEY, json.dumps(user))
        await self.storage.set(USER_TYPE_KEY, DRIVER_USER_TYPE)

        logger.info("Driver %s logged in", user.get("id", "<unknown>"))
        return user

    async def logout(self) -> None:
        """Clear the credential and every registered store."""
        try:
            await self._forget_credential()
        except FleetLinkError as e:
            logger.error("Logout failed to clear stored credential: %s", e)
        for store in self.stores:
            store.clear_cache()
        logger.info("Driver logged out")

    async def restore(self) -> bool:
        """
        Load a persisted driver credential.

        Only driver credentials are accepted; anything else found in storage is
        removed. Returns True when a credential was restored.
        """
        try:
            token = await self.storage.get(TOKEN_KEY)
            user_raw = await self.storage.get(USER_KEY)
            user_type = await self.storage.get(USER_TYPE_KEY)

            if token and user_raw and user_type == DRIVER_USER_TYPE:
                user = json.loads(user_raw)
                if not isinstance(user, dict):
                    raise ValueError("stored user is not an object")
                if "is_first_login" in user:
                    user["is_first_login"] = user["is_first_login"] in (True, "true")
                self.client.set_auth_token(token)
                self.user = user
                logger.info("Restored stored credential for driver %s", user.get("id", "<unknown>"))
                return True
        except (FleetLinkError, ValueError) as e:
            logger.error("Failed to load stored credential: %s", e)

        await self._forget_credential_quietly()
        return False

    async def change_password(self, new_password: str) -> None:
        """Change the logged-in driver's password and clear the first-login flag."""
        if self.user is None:
            raise FleetLinkError("No user logged in")

        await self.client.put(
            "/auth/mobile-change-password",
            {
                "user_id": self.user.get("id"),
                "user_type": DRIVER_USER_TYPE,
                "new_password": new_password,
            },
        )
        self.user = {**self.user, "is_first_login": False}
        await self.storage.set(USER_KEY, json.dumps(self.user))

    async def _forget_credential(self) -> None:
        self.client.set_auth_token(None)
        self.user = None
        await self.storage.remove_many(CREDENTIAL_KEYS)

    async def _forget_credential_quietly(self) -> None:
        try:
            await self._forget_credential()
        except FleetLinkError as e:
            logger.warning("Could not clear stored credential: %s", e)

    async def _on_unauthorized(self, error: AuthenticationExpiredError) -> None:
        logger.warning("Session expired (%s); clearing stored credential", error.url)
        await self._forget_credential_quietly()

    def close(self) -> None:
        """Stop listening for 401 responses."""
        self._unsubscribe()
