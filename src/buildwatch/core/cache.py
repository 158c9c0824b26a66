"""
Single-slot cache for resolved build definitions.

Resolving build definitions is the one expensive, rarely changing query; every
other query is parameterised by its result. Hosts recreate adapters frequently
(on every refresh of their view), so the resolved definitions are parked in a
cache object that outlives the adapter instances sharing it.

The cache holds at most one entry. A lookup for a different project or filter
evicts it, and the last successful resolution always wins.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

KEY_SEPARATOR = "|"


def make_cache_key(project_url: str, definition_filter: Optional[str]) -> str:
    """Derive the cache key for a project endpoint and definition filter."""

    return f"{project_url}{KEY_SEPARATOR}{definition_filter or ''}"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    definitions: str


class DefinitionCache:
    """Thread-safe single entry ``{key: definitions}`` slot."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entry: Optional[CacheEntry] = None

    @property
    def key(self) -> Optional[str]:
        with self._lock:
            return self._entry.key if self._entry else None

    def get(self, key: str) -> Optional[str]:
        """Return the cached definitions for ``key``; a different key counts as a miss."""

        with self._lock:
            entry = self._entry
        if entry is None or entry.key != key:
            return None
        return entry.definitions

    def set(self, key: str, definitions: str) -> None:
        """Replace the slot, whatever it held before."""

        with self._lock:
            self._entry = CacheEntry(key=key, definitions=definitions)

    def take_or_clear(self, key: str) -> Optional[str]:
        """Return the definitions cached for ``key``, emptying the slot when it holds another key."""

        with self._lock:
            entry = self._entry
            if entry is not None and entry.key == key:
                return entry.definitions
            self._entry = None
            return None

    def clear(self) -> None:
        with self._lock:
            self._entry = None


shared_definition_cache = DefinitionCache()
