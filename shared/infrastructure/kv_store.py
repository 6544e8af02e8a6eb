"""Persisted key-value store for small, per-device client state."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Optional

from django.conf import settings
from django.core.cache import caches
from django.core.cache.backends.db import DatabaseCache
from django.core.cache.backends.filebased import FileBasedCache
from django.core.cache.backends.locmem import LocMemCache
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"
SEARCH_FILTERS_KEY = "searchFilters"
RECENT_SEARCHES_KEY = "recentSearches"
ONBOARDING_SEEN_KEY = "onboardingSeen"
USER_PREFERENCES_KEY = "userPreferences"

_MISSING = object()

# Backends that evict entries once MAX_ENTRIES is reached
CULLING_BACKENDS = (DatabaseCache, FileBasedCache, LocMemCache)


def scoped_key(key: str, principal_id) -> str:
    """Namespace a key by principal so accounts on one device never share it."""
    if principal_id in (None, ""):
        raise ValueError(f"Principal id is required to scope key {key!r}")
    return f"{key}:{principal_id}"


class PersistedKeyValueStore:
    """
    JSON values on top of a Django cache alias.

    Values are durable: nothing expires unless a ``ttl`` is passed to
    ``set``, and the alias must not cull entries when it fills up.
    Writes are last-write-wins.
    """

    def __init__(self, alias: Optional[str] = None, namespace: Optional[str] = None):
        self.alias = alias or getattr(settings, "PERSISTED_STORE_CACHE_ALIAS", "persisted")
        self.namespace = namespace if namespace is not None else getattr(
            settings, "PERSISTED_STORE_NAMESPACE", "marketplace"
        )
        cache = self._cache
        if isinstance(cache, CULLING_BACKENDS) and cache._max_entries < sys.maxsize:
            raise ImproperlyConfigured(
                f"Cache alias {self.alias!r} culls after {cache._max_entries} entries; "
                f"set OPTIONS['MAX_ENTRIES'] to sys.maxsize for the persisted store"
            )

    @property
    def _cache(self):
        return caches[self.alias]

    def _full_key(self, key: str) -> str:
        if not key:
            raise ValueError("Key must not be empty")
        return f"{self.namespace}:{key}" if self.namespace else key

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._cache.get(self._full_key(key), _MISSING)
        if raw is _MISSING:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding unreadable persisted value for {key}")
            self.remove(key)
            return default

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise TypeError(f"Value for {key!r} is not JSON-serializable: {e}") from e
        # timeout=None keeps the value until it is overwritten or removed
        self._cache.set(self._full_key(key), raw, ttl)

    def remove(self, key: str) -> None:
        self._cache.delete(self._full_key(key))

    def __contains__(self, key: str) -> bool:
        return self._cache.get(self._full_key(key), _MISSING) is not _MISSING


__all__ = [
    "FAVORITES_KEY",
    "ONBOARDING_SEEN_KEY",
    "PersistedKeyValueStore",
    "RECENT_SEARCHES_KEY",
    "SEARCH_FILTERS_KEY",
    "USER_PREFERENCES_KEY",
    "scoped_key",
]
