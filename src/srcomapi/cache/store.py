"""In-memory response cache with optional JSON persistence.

:class:`CacheStore` maps a normalized request URL to the raw JSON body that
was returned for it and the time it was fetched.  Expiry is decided at read
time by :mod:`srcomapi.cache.expiry`, so an entry can go stale without ever
being touched.  With a backing file configured the whole mapping is written
to disk every ``persist_every`` inserts, when the store is closed, and when
the interpreter exits.

Disk writes are best effort: caching is an optimisation, so a failed write
is logged and the request that triggered it still succeeds.  A backing file
that cannot be parsed at all, however, is a configuration problem and is
reported as :class:`~srcomapi.exceptions.CacheFileError`.

See Also:
    :class:`~srcomapi.models.CacheConfig` -- the settings consumed by
    :meth:`CacheStore.from_config`.
"""

from __future__ import annotations

import copy
import json
import logging
import random
import threading
import weakref
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from srcomapi.cache.expiry import is_definitely_stale, is_valid
from srcomapi.clock import Clock, SystemClock
from srcomapi.config import atomic_write
from srcomapi.exceptions import CacheFileError
from srcomapi.models import RATE_LIMIT_INTERVAL, CacheConfig, CacheEntry, CacheTimeout

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def load_entries(
    path: Path,
    timeout: Optional[CacheTimeout],
    clock: Clock,
) -> dict[str, CacheEntry]:
    """Read a cache file, dropping entries that are already past ``timeout.high``.

    A missing file yields an empty mapping.  Entries that do not match the
    ``{"timestamp": ..., "data": ...}`` shape are skipped with a warning.

    Raises:
        CacheFileError: If the file cannot be read, is not JSON, or is not
            a JSON object.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        raise CacheFileError(f"Cannot read cache file {path}: {exc}") from exc

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CacheFileError(f"Cache file {path} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise CacheFileError(f"Cache file {path} must contain a JSON object")

    now = clock.now()
    entries: dict[str, CacheEntry] = {}
    for url, value in raw.items():
        try:
            entry = CacheEntry.model_validate(value)
        except ValidationError:
            logger.warning("Skipping malformed cache entry for %s in %s", url, path)
            continue
        if is_definitely_stale(now - entry.timestamp, timeout):
            continue
        entries[url] = entry
    return entries


def _write_entries(path: Path, entries: dict[str, CacheEntry], lock: threading.RLock) -> int:
    with lock:
        snapshot = {url: entry.model_dump() for url, entry in entries.items()}
    atomic_write(path, json.dumps(snapshot))
    return len(snapshot)


def _final_flush(path: Path, entries: dict[str, CacheEntry], lock: threading.RLock) -> None:
    try:
        _write_entries(path, entries, lock)
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Could not flush response cache to %s: %s", path, exc)


class CacheStore:
    """Thread-safe map of normalized URL to cached JSON body.

    One store is shared by every clone of a client handle.  All reads and
    writes of the entry map happen under a single lock; disk writes work on
    a snapshot taken under the lock and then proceed without it.

    Args:
        timeout: Expiry range, or ``None`` for entries that never expire.
        path: Optional JSON file to persist to.  Use :meth:`from_config`
            to also load existing entries from it.
        enabled: When ``False`` every lookup misses and inserts are ignored.
        persist_every: Number of inserts between best-effort disk writes.
        max_entries: Optional size bound, see :meth:`insert`.
        eviction_window: Minimum age an entry must reach before it may be
            evicted to honour ``max_entries``.
        clock: Time source, :class:`~srcomapi.clock.SystemClock` by default.
        rng: Random source for probabilistic expiry.
        entries: Initial entries, usually from :func:`load_entries`.

    Example::

        store = CacheStore(timeout=CacheTimeout.fixed(60))
        store.insert("https://www.speedrun.com/api/v1/games/sms", body, time.time())
        store.get("https://www.speedrun.com/api/v1/games/sms")
    """

    def __init__(
        self,
        timeout: Optional[CacheTimeout] = _UNSET,
        path: Optional[Path] = None,
        *,
        enabled: bool = True,
        persist_every: int = 16,
        max_entries: Optional[int] = None,
        eviction_window: float = RATE_LIMIT_INTERVAL,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        entries: Optional[dict[str, CacheEntry]] = None,
    ) -> None:
        if timeout is _UNSET:
            timeout = CacheTimeout.fixed(RATE_LIMIT_INTERVAL)
        self._timeout = timeout
        self._path = Path(path) if path is not None else None
        self._enabled = enabled
        self._persist_every = persist_every
        self._max_entries = max_entries
        self._eviction_window = eviction_window
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = dict(entries or {})
        self._changes = 0
        self._finalizer: Optional[weakref.finalize] = None
        if self._path is not None:
            self._finalizer = weakref.finalize(
                self, _final_flush, self._path, self._entries, self._lock
            )

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        *,
        eviction_window: float = RATE_LIMIT_INTERVAL,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> CacheStore:
        """Build a store from settings, loading ``config.path`` if it exists.

        Raises:
            CacheFileError: If the backing file exists but is unreadable.
        """
        clock = clock or SystemClock()
        entries: dict[str, CacheEntry] = {}
        if config.enabled and config.path is not None:
            entries = load_entries(config.path, config.timeout, clock)
            logger.debug("Loaded %d cache entries from %s", len(entries), config.path)
        return cls(
            config.timeout,
            config.path if config.enabled else None,
            enabled=config.enabled,
            persist_every=config.persist_every,
            max_entries=config.max_entries,
            eviction_window=eviction_window,
            clock=clock,
            rng=rng,
            entries=entries,
        )

    @property
    def timeout(self) -> Optional[CacheTimeout]:
        return self._timeout

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def get(self, url: str) -> Optional[Any]:
        """Return the cached body for *url* if present and not expired.

        Each hit returns a fresh copy, so callers may modify the result.
        Validity is re-evaluated on every call; a stale entry is left in
        place and simply reported as a miss.
        """
        if not self._enabled:
            return None
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            age = self._clock.now() - entry.timestamp
            if is_valid(age, self._timeout, self._rng):
                return copy.deepcopy(entry.data)
        return None

    def insert(self, url: str, data: Any, timestamp: float) -> None:
        """Store a copy of *data* for *url*, replacing any previous entry.

        With ``max_entries`` set and the store full, the oldest entry is
        evicted first, provided it is older than the eviction window;
        otherwise the store temporarily grows past the bound.  Every
        ``persist_every`` inserts a best-effort write to disk follows.
        """
        if not self._enabled:
            return
        with self._lock:
            if (
                self._max_entries is not None
                and url not in self._entries
                and len(self._entries) >= self._max_entries
            ):
                self._evict_oldest(timestamp)
            self._entries[url] = CacheEntry(timestamp=timestamp, data=copy.deepcopy(data))
            self._changes += 1
            due = self._path is not None and self._changes >= self._persist_every
        if due:
            self._persist_best_effort()

    def persist(self) -> int:
        """Write every entry to the backing file.

        Returns:
            The number of entries written (0 without a backing file).

        Raises:
            OSError: If the file cannot be written.
        """
        if self._path is None:
            return 0
        with self._lock:
            pending = self._changes
        written = _write_entries(self._path, self._entries, self._lock)
        with self._lock:
            self._changes = max(0, self._changes - pending)
        return written

    def clear(self) -> None:
        """Drop every entry.  The backing file is rewritten on the next persist."""
        with self._lock:
            self._entries.clear()
            self._changes += 1

    def stats(self) -> dict[str, Any]:
        """Return a summary suitable for display."""
        with self._lock:
            timestamps = [entry.timestamp for entry in self._entries.values()]
        timeout = self._timeout
        return {
            "enabled": self._enabled,
            "size": len(timestamps),
            "path": str(self._path) if self._path else None,
            "timeout": None if timeout is None else {"low": timeout.low, "high": timeout.high},
            "oldest": min(timestamps) if timestamps else None,
            "newest": max(timestamps) if timestamps else None,
        }

    def close(self) -> None:
        """Flush to disk (best effort) and stop the flush at interpreter exit."""
        if self._finalizer is not None:
            self._finalizer()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _evict_oldest(self, now: float) -> None:
        url, entry = min(self._entries.items(), key=lambda item: item[1].timestamp)
        if now - entry.timestamp > self._eviction_window:
            del self._entries[url]
            logger.debug("Evicted cache entry %s", url)

    def _persist_best_effort(self) -> None:
        try:
            written = self.persist()
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Could not persist response cache to %s: %s", self._path, exc)
        else:
            logger.debug("Persisted %d cache entries to %s", written, self._path)
