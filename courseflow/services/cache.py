"""Process-local read cache with per-entry TTL and glob invalidation.

Course structure changes rarely, so read paths cache it here. Any write to
learner progress or homework must clear the ``course:*`` and ``progress:*``
namespaces once its transaction has committed; see
``invalidate_progress_on_commit``.

The instance lives for the lifetime of the process and is not shared between
workers: clearing a pattern only affects the worker that did the write. Other
workers keep serving their entries until the TTL runs out.
"""

import logging
import re
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger("courseflow.cache")

T = TypeVar("T")

COURSE_NAMESPACE = "course:*"
PROGRESS_NAMESPACE = "progress:*"


def active_course_key() -> str:
    return "course:active"


def course_structure_key(course_id) -> str:
    return f"course:structure:{course_id}"


def progress_overview_key(course_id) -> str:
    return f"progress:overview:{course_id}"


@dataclass
class _Entry:
    value: Any
    expires_at: float


def _compile_pattern(pattern: str) -> re.Pattern:
    if pattern.count("*") > 1:
        raise ValueError(f"Cache pattern may contain at most one '*': {pattern!r}")
    head, star, tail = pattern.partition("*")
    regex = re.escape(head) + (".*" if star else "") + re.escape(tail)
    return re.compile(regex)


class TTLCache:
    """Key/value store with lazy expiry.

    ``clock`` returns seconds and defaults to ``time.monotonic``; tests pass a
    fake clock to move time forward.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._store[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value that expires ``ttl_seconds`` from now."""
        with self._lock:
            self._store[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    def clear_pattern(self, pattern: str) -> int:
        """Evict every key fully matching ``pattern`` (e.g. ``"course:*"``).

        Returns the number of evicted entries.
        """
        regex = _compile_pattern(pattern)
        with self._lock:
            doomed = [key for key in self._store if regex.fullmatch(key)]
            for key in doomed:
                del self._store[key]
        if doomed:
            logger.info("Cache cleared pattern=%s evicted=%d", pattern, len(doomed))
        return len(doomed)

    def clear_all(self) -> None:
        with self._lock:
            self._store.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._store)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    async def get_or_load(
        self,
        key: str,
        ttl_seconds: float,
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        """Read-through: return the cached value or await ``loader`` and cache it.

        A loader result of None is returned but not cached.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache HIT %s", key)
            return cached

        logger.debug("Cache MISS %s", key)
        value = await loader()
        if value is not None:
            self.set(key, value, ttl_seconds)
        return value


def invalidate_progress(cache: TTLCache) -> None:
    """Clear both namespaces that depend on learner progress."""
    cache.clear_pattern(COURSE_NAMESPACE)
    cache.clear_pattern(PROGRESS_NAMESPACE)


_PENDING_KEY = "courseflow.pending_invalidation"
_LISTENER_KEY = "courseflow.invalidation_listener"


def _after_commit(session) -> None:
    # Fires for SAVEPOINT releases too; only the outer commit counts.
    if session.in_nested_transaction():
        return
    cache = session.info.pop(_PENDING_KEY, None)
    if cache is not None:
        invalidate_progress(cache)


def invalidate_progress_on_commit(db: AsyncSession, cache: TTLCache) -> None:
    """Clear both progress namespaces when ``db`` next commits.

    Nothing is cleared before the outer transaction commits. A write that is
    rolled back stays pending until the session's next commit.
    """
    session = db.sync_session
    session.info[_PENDING_KEY] = cache
    if not session.info.get(_LISTENER_KEY):
        event.listen(session, "after_commit", _after_commit)
        session.info[_LISTENER_KEY] = True
