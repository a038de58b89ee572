"""
Driver document store.

Documents change rarely, so they are cached for 30 minutes and refreshed in
the background. The nearest expiry is derived from each freshly fetched
document list.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from ..cache import CacheState, RevalidatingCache
from ..client import ResilientClient

logger = logging.getLogger(__name__)

DOCUMENTS_TTL = 30 * 60

DOCUMENT_TYPE_LABELS = {
    "license": "Driving License",
    "emirates_id": "Emirates ID",
    "passport": "Passport",
    "visa": "Visa",
    "medical_certificate": "Medical Certificate",
    "rta_permit": "RTA Permit",
    "vehicle_registration": "Vehicle Registration",
    "insurance": "Insurance",
    "other": "Other Document",
}


@dataclass(frozen=True)
class DocumentBundle:
    """All documents of a driver plus the ones the backend flags as expiring."""

    documents: list[dict[str, Any]] = field(default_factory=list)
    expiring: list[dict[str, Any]] = field(default_factory=list)


def days_until(expiry: str, today: date) -> int | None:
    """Whole days from ``today`` to an ISO date or datetime; None if unparseable."""
    try:
        target = datetime.fromisoformat(expiry.replace("Z", "+00:00")).date()
    except (AttributeError, ValueError):
        return None
    return (target - today).days


def nearest_expiry_days(documents: list[dict[str, Any]], today: date) -> int | None:
    """Smallest non-negative day count until any document expires."""
    nearest: int | None = None
    for doc in documents:
        expiry = doc.get("expiry_date")
        if not expiry:
            continue
        days = days_until(expiry, today)
        if days is not None and days >= 0 and (nearest is None or days < nearest):
            nearest = days
    return nearest


def document_type_label(document_type: str) -> str:
    """Human readable label for a document type code."""
    if document_type in DOCUMENT_TYPE_LABELS:
        return DOCUMENT_TYPE_LABELS[document_type]
    return document_type.replace("_", " ").title()


def expiry_status(days_until_expiry: int) -> str:
    """``expired``, ``critical`` (<= 7 days), ``warning`` (<= 30 days) or ``ok``."""
    if days_until_expiry < 0:
        return "expired"
    if days_until_expiry <= 7:
        return "critical"
    if days_until_expiry <= 30:
        return "warning"
    return "ok"


class DocumentStore:
    """Revalidating cache of driver documents keyed by driver id."""

    def __init__(
        self,
        client: ResilientClient,
        ttl: float = DOCUMENTS_TTL,
        today: Callable[[], date] = date.today,
        cache: RevalidatingCache[DocumentBundle] | None = None,
    ):
        self.client = client
        self.ttl = ttl
        self._today = today
        self.cache = cache or RevalidatingCache(
            name="documents",
            default_ttl=ttl,
            derive=lambda bundle: nearest_expiry_days(bundle.documents, self._today()),
        )

    @staticmethod
    def key(driver_id: str) -> str:
        return f"docs-{driver_id}"

    async def _load(self, driver_id: str) -> DocumentBundle:
        documents, expiring = await asyncio.gather(
            self.client.get(f"/documents/driver/{driver_id}"),
            self.client.get(f"/documents/driver/{driver_id}/expiring"),
        )
        bundle = DocumentBundle(
            documents=list(documents.body or []),
            expiring=list(expiring.body or []),
        )
        logger.debug(
            "Loaded %d documents (%d expiring) for driver %s",
            len(bundle.documents),
            len(bundle.expiring),
            driver_id,
        )
        return bundle

    async def fetch(self, driver_id: str, force_refresh: bool = False) -> CacheState[DocumentBundle]:
        return await self.cache.fetch(
            self.key(driver_id),
            lambda: self._load(driver_id),
            ttl=self.ttl,
            force_refresh=force_refresh,
        )

    def state(self, driver_id: str) -> CacheState[DocumentBundle]:
        return self.cache.state(self.key(driver_id))

    def clear_cache(self, driver_id: str | None = None) -> None:
        self.cache.clear_cache(self.key(driver_id) if driver_id is not None else None)
