"""Versioned key-value persistence contract and in-process implementation.

Every record carries a version counter. Writers read a record, build the
new value and call ``compare_and_swap`` with the version they read; a
``False`` return means another writer got there first. Records in
different keys never contend with each other.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator
from typing import Any, NamedTuple, Protocol


class Versioned(NamedTuple):
    value: dict[str, Any]
    version: int


class KeyValueStore(Protocol):
    """Persistence boundary for subjects, issuers, documents, credentials and DIDs."""

    def get(self, namespace: str, key: str) -> Versioned | None: ...

    def insert(self, namespace: str, key: str, value: dict[str, Any]) -> bool:
        """Insert if absent; ``False`` when the key already exists."""
        ...

    def compare_and_swap(self, namespace: str, key: str, expected_version: int, value: dict[str, Any]) -> bool: ...

    def delete(self, namespace: str, key: str) -> bool: ...

    def scan(self, namespace: str) -> Iterator[tuple[str, dict[str, Any]]]: ...


class MemoryStore:
    """Thread-safe in-process store for tests and single-process use."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], Versioned] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, key: str) -> Versioned | None:
        with self._lock:
            record = self._records.get((namespace, key))
            if record is None:
                return None
            return Versioned(copy.deepcopy(record.value), record.version)

    def insert(self, namespace: str, key: str, value: dict[str, Any]) -> bool:
        with self._lock:
            if (namespace, key) in self._records:
                return False
            self._records[(namespace, key)] = Versioned(copy.deepcopy(value), 1)
            return True

    def compare_and_swap(self, namespace: str, key: str, expected_version: int, value: dict[str, Any]) -> bool:
        with self._lock:
            record = self._records.get((namespace, key))
            if record is None or record.version != expected_version:
                return False
            self._records[(namespace, key)] = Versioned(copy.deepcopy(value), expected_version + 1)
            return True

    def delete(self, namespace: str, key: str) -> bool:
        with self._lock:
            return self._records.pop((namespace, key), None) is not None

    def scan(self, namespace: str) -> Iterator[tuple[str, dict[str, Any]]]:
        with self._lock:
            items = [(k, copy.deepcopy(r.value)) for (ns, k), r in self._records.items() if ns == namespace]
        yield from sorted(items)
