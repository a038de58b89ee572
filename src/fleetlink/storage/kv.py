"""
Persistent key-value storage.

The discovery and auth layers only need ``get``/``set``/``remove`` of string
values. ``InMemoryKV`` backs tests and short-lived processes; ``FileKV`` keeps
a single JSON document on disk and replaces it atomically on every write so an
interrupted write leaves either the old or the new document, never a mix.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from ..errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class PersistentKV(ABC):
    """Durable string storage surviving process restarts."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key; removing a missing key is not an error."""

    async def remove_many(self, keys: list[str]) -> None:
        """Remove several keys."""
        for key in keys:
            await self.remove(key)


class InMemoryKV(PersistentKV):
    """Dictionary-backed storage."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKV(PersistentKV):
    """JSON file storage with atomic replacement."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".kv-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> str | None:
        try:
            return self._read_all().get(key)
        except (OSError, ValueError) as e:
            raise StorageUnavailableError("get", key, str(e)) from e

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            try:
                data = self._read_all()
                data[key] = value
                self._write_all(data)
            except (OSError, ValueError) as e:
                raise StorageUnavailableError("set", key, str(e)) from e

    async def remove(self, key: str) -> None:
        async with self._lock:
            try:
                data = self._read_all()
                if key in data:
                    del data[key]
                    self._write_all(data)
            except (OSError, ValueError) as e:
                raise StorageUnavailableError("remove", key, str(e)) from e
