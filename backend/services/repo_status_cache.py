"""Short-TTL cache of repository status keyed by directory."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from backend import config
from backend.models import RepoStatus
from backend.observability import record_cache_lookup
from backend.services.git_info import get_repo_status

logger = logging.getLogger("agentboard.git")


@dataclass
class _CacheEntry:
    stored_at: float
    status: RepoStatus


class RepoStatusCache:
    """Lazily refreshed ``directory -> RepoStatus`` map.

    Entries older than ``ttl_seconds`` are recomputed on the next ``get``; there
    is no background eviction. A failed lookup is cached as ``isRepo=False``
    for the same TTL.
    """

    def __init__(
        self,
        lookup: Callable[[str], RepoStatus] = get_repo_status,
        ttl_seconds: float = config.REPO_STATUS_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._lookup = lookup
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, directory: str) -> RepoStatus:
        now = self._clock()
        with self._lock:
            cached = self._entries.get(directory)
        if cached and now - cached.stored_at < self._ttl_seconds:
            record_cache_lookup("repo_status", hit=True)
            return cached.status

        record_cache_lookup("repo_status", hit=False)
        try:
            status = self._lookup(directory)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Repository status lookup failed for {directory}: {exc}")
            status = RepoStatus(isRepo=False)

        with self._lock:
            self._entries[directory] = _CacheEntry(stored_at=self._clock(), status=status)
        return status

    def clear(self, directory: str | None = None) -> None:
        with self._lock:
            if directory is None:
                self._entries.clear()
            else:
                self._entries.pop(directory, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
