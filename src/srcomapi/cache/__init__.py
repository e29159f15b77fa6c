"""Response caching for srcomapi.

This package provides :class:`CacheStore`, the URL-keyed cache consulted by
the fetch pipeline before any network call, and the expiry policy helpers in
:mod:`srcomapi.cache.expiry`.  Entries can be persisted to a JSON file and
reloaded on the next run.

The store is consumed by :class:`~srcomapi.client.pipeline.FetchPipeline`
and configured by :class:`~srcomapi.models.CacheConfig`.
"""

from srcomapi.cache.expiry import is_definitely_stale, is_valid, probability
from srcomapi.cache.store import CacheStore, load_entries

__all__ = ["CacheStore", "load_entries", "probability", "is_valid", "is_definitely_stale"]
