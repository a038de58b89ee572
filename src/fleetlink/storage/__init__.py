"""Persistent key-value storage adapters."""

from .kv import FileKV, InMemoryKV, PersistentKV

__all__ = ["FileKV", "InMemoryKV", "PersistentKV"]
