"""Durable key-value collections backing checkpoints and staged data.

A collection is a flat ``key -> JSON value`` map identified by a namespace.
``KeyValueFactory`` hands out one shared collection per namespace so the
checkpoint tracker and the staging repository can share a namespace and still
see each other's writes.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable

from moderation_migrator.exceptions import StorageError
from moderation_migrator.utils.logging import log_with_context

STORE_SCHEMA_VERSION = 1

_MISSING = object()


class KeyValueStore(ABC):
    """A single namespace of durable key -> value records."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    @abstractmethod
    def has(self, key: str) -> bool: ...

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any: ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a key; deleting an absent key is a no-op."""

    @abstractmethod
    def delete_all(self) -> None: ...

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over keys without decoding their values."""

    def count(self) -> int:
        return sum(1 for _ in self.keys())


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed collection used for tests and dry runs."""

    def __init__(self, namespace: str) -> None:
        super().__init__(namespace)
        self._data: dict[str, Any] = {}

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so memory and file stores hold identical shapes
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def delete_all(self) -> None:
        self._data.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def count(self) -> int:
        return len(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """Collection persisted as one JSON document per namespace.

    The document is read once on open and kept in memory; every mutation is
    written back atomically (write ``.tmp`` + rename) before returning.
    """

    def __init__(self, namespace: str, path: Path) -> None:
        super().__init__(namespace)
        self.path = path
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(
                f"Failed to read key-value store {self.path}: {e}"
            ) from e
        if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
            raise StorageError(f"Key-value store {self.path} has invalid format")
        version = raw.get("schema_version", 0)
        if version != STORE_SCHEMA_VERSION:
            raise StorageError(
                f"Key-value store {self.path} schema version {version} != {STORE_SCHEMA_VERSION}"
            )
        return raw["data"]

    def _save(self) -> None:
        document = {
            "schema_version": STORE_SCHEMA_VERSION,
            "namespace": self.namespace,
            "data": self._data,
        }
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(document, indent=2, sort_keys=True) + "\n")
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to write key-value store {self.path}: {e}"
            ) from e

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        previous = self._data.get(key, _MISSING)
        self._data[key] = json.loads(json.dumps(value))
        try:
            self._save()
        except StorageError:
            # Keep the in-memory view in step with what is on disk
            if previous is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
            raise

    def delete(self, key: str) -> None:
        if key not in self._data:
            return
        previous = self._data.pop(key)
        try:
            self._save()
        except StorageError:
            self._data[key] = previous
            raise

    def delete_all(self) -> None:
        self._data = {}
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to remove key-value store {self.path}: {e}"
            ) from e
        log_with_context(logging.DEBUG, f"Removed key-value store {self.path}")

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def count(self) -> int:
        return len(self._data)


def _namespace_filename(namespace: str) -> str:
    if not re.fullmatch(r"[A-Za-z0-9_.\-]+", namespace):
        raise StorageError(f"Invalid key-value namespace: {namespace!r}")
    return f"{namespace}.json"


class KeyValueFactory:
    """Hands out one shared collection per namespace."""

    def __init__(self, create: Callable[[str], KeyValueStore]) -> None:
        self._create = create
        self._collections: dict[str, KeyValueStore] = {}

    @classmethod
    def memory(cls) -> KeyValueFactory:
        return cls(MemoryKeyValueStore)

    @classmethod
    def json_files(cls, directory: Path) -> KeyValueFactory:
        """Build a factory storing each namespace as ``<directory>/<namespace>.json``."""
        directory = Path(directory)

        def create(namespace: str) -> KeyValueStore:
            return JsonFileKeyValueStore(
                namespace, directory / _namespace_filename(namespace)
            )

        return cls(create)

    def get(self, namespace: str) -> KeyValueStore:
        if namespace not in self._collections:
            self._collections[namespace] = self._create(namespace)
        return self._collections[namespace]
