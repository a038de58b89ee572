"""Driver authentication on top of the resilient client."""

from .session import CREDENTIAL_KEYS, DRIVER_USER_TYPE, AuthSession

__all__ = ["CREDENTIAL_KEYS", "DRIVER_USER_TYPE", "AuthSession"]
