"""
Discovery result model.

A result is persisted as one JSON string under a single key so a write that
is interrupted reads back as either the whole result or nothing.
"""

import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryResult:
    """The address that answered and when it was discovered (epoch seconds)."""

    address: str
    discovered_at: float

    def age(self, now: float) -> float:
        return now - self.discovered_at

    def is_fresh(self, now: float, ttl: float) -> bool:
        return 0 <= self.age(now) < ttl

    def to_json(self) -> str:
        # Milliseconds, the format already present on devices
        return json.dumps({"url": self.address, "timestamp": int(self.discovered_at * 1000)})

    @classmethod
    def from_json(cls, raw: str) -> "DiscoveryResult | None":
        """Parse a stored result; anything malformed reads as absent."""
        try:
            data = json.loads(raw)
            address = data["url"]
            timestamp = data["timestamp"]
        except (TypeError, ValueError, KeyError) as e:
            logger.warning("Ignoring malformed stored discovery result: %s", e)
            return None
        if (
            not isinstance(address, str)
            or not address
            or isinstance(timestamp, bool)
            or not isinstance(timestamp, int | float)
        ):
            logger.warning("Ignoring malformed stored discovery result: %r", raw)
            return None
        return cls(address=address, discovered_at=timestamp / 1000.0)
