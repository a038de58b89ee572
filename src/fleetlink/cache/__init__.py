"""
Stale-while-revalidate caching.

Usage:
    from fleetlink.cache import RevalidatingCache

    documents = RevalidatingCache(name="documents", default_ttl=30 * 60)

    state = await documents.fetch("docs-42", lambda: load_documents("42"))
    unsubscribe = documents.subscribe(lambda key, state: render(state), key="docs-42")
"""

from .manager import CacheEntry, CacheState, FetchFn, Listener, RevalidatingCache

__all__ = [
    "CacheEntry",
    "CacheState",
    "FetchFn",
    "Listener",
    "RevalidatingCache",
]
