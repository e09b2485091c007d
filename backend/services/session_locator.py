"""Paginated discovery of session logs across the project log store.

Sessions live at ``<root>/<encoded-cwd>/<session_id>.jsonl``. Listing returns
one page ordered by modification time (newest first) plus the total session
count, without opening or stat'ing files outside the requested page when the
fast strategy is available.

Two strategies share the same contract:

* ``FindListingStrategy`` runs a single ``find -printf`` traversal that
  reports every log path together with its mtime.
* ``WalkListingStrategy`` scans both directory levels in-process and stats
  every file. It is slower but portable, and is used whenever the fast
  strategy is unavailable or fails.

Both order by ``(mtime_ns desc, path asc)`` so their pages are identical.
"""
from __future__ import annotations

import heapq
import logging
import os
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from backend import config
from backend.date_utils import epoch_ns_to_iso, stat_dates
from backend.models import SessionDescriptor
from backend.observability import record_listing, start_span
from backend.paths import project_dir_to_folder
from backend.services.git_info import WorktreeResolution, resolve_worktree
from backend.services.session_files import LOG_SUFFIX

logger = logging.getLogger("agentboard.locator")


class ListingUnavailableError(RuntimeError):
    """Raised by a strategy that cannot produce a listing on this host."""


class EmptyListingError(ListingUnavailableError):
    """Raised when a strategy found no logs and defers to the next strategy to confirm."""


@dataclass(frozen=True)
class LogFileEntry:
    path: str
    mtime_ns: int
    stats: Optional[os.stat_result] = None


def _sort_key(entry: LogFileEntry) -> tuple[int, str]:
    return (-entry.mtime_ns, entry.path)


class ListingStrategy(Protocol):
    name: str

    def is_available(self) -> bool:
        ...

    def enumerate(self, root: Path) -> list[LogFileEntry]:
        ...


def _parse_find_mtime(raw: str) -> int:
    """Convert find's ``%T@`` (``seconds.fraction``) to integer nanoseconds."""
    seconds, _, fraction = raw.strip().partition(".")
    return int(seconds) * 1_000_000_000 + int((fraction + "000000000")[:9])


class FindListingStrategy:
    """Bulk traversal through GNU ``find``; only page entries are stat'ed later."""

    name = "find"

    def __init__(self, find_binary: str | None = None, timeout_seconds: float | None = None):
        self._find_binary = find_binary or shutil.which("find")
        self._timeout_seconds = timeout_seconds if timeout_seconds is not None else config.FIND_TIMEOUT_SECONDS
        self._available: bool | None = None
        self._probe_lock = threading.Lock()

    def is_available(self) -> bool:
        with self._probe_lock:
            if self._available is None:
                self._available = self._probe()
            return self._available

    def _probe(self) -> bool:
        if not self._find_binary:
            logger.info("find executable not found; session listing will scan directories")
            return False
        try:
            result = subprocess.run(
                [self._find_binary, os.sep, "-maxdepth", "0", "-printf", "%T@\\n"],
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout_seconds,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.info(f"find probe failed ({exc}); session listing will scan directories")
            return False
        if result.returncode != 0 or not result.stdout.strip():
            logger.info("find does not support -printf; session listing will scan directories")
            return False
        return True

    def enumerate(self, root: Path) -> list[LogFileEntry]:
        if not self._find_binary:
            raise ListingUnavailableError("find executable not available")
        if not root.is_dir():
            raise EmptyListingError(f"{root} does not exist")
        result = subprocess.run(
            [
                self._find_binary,
                str(root),
                "-mindepth", "2",
                "-maxdepth", "2",
                "-type", "f",
                "-name", f"*{LOG_SUFFIX}",
                "-printf", "%T@\\t%p\\0",
            ],
            capture_output=True,
            check=False,
            timeout=self._timeout_seconds,
        )
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ListingUnavailableError(f"find exited with {result.returncode}: {stderr[:200]}")

        root_prefix = str(root).rstrip(os.sep) + os.sep
        entries: list[LogFileEntry] = []
        for chunk in result.stdout.split(b"\0"):
            if not chunk:
                continue
            raw_mtime, sep, raw_path = chunk.decode("utf-8", errors="surrogateescape").partition("\t")
            if not sep:
                continue
            # Only <root>/<project>/<file>; subagent logs sit deeper.
            relative = raw_path[len(root_prefix):] if raw_path.startswith(root_prefix) else ""
            if relative.count(os.sep) != 1:
                continue
            try:
                mtime_ns = _parse_find_mtime(raw_mtime)
            except ValueError:
                continue
            entries.append(LogFileEntry(path=raw_path, mtime_ns=mtime_ns))

        if not entries:
            raise EmptyListingError("find returned no session logs")
        return entries


class WalkListingStrategy:
    """Exhaustive scan that stats every session log."""

    name = "walk"

    def is_available(self) -> bool:
        return True

    def enumerate(self, root: Path) -> list[LogFileEntry]:
        entries: list[LogFileEntry] = []
        try:
            with os.scandir(root) as project_dirs:
                folders = [entry.path for entry in project_dirs if entry.is_dir(follow_symlinks=False)]
        except FileNotFoundError:
            return entries

        for folder in folders:
            try:
                with os.scandir(folder) as children:
                    for child in children:
                        if not child.name.endswith(LOG_SUFFIX) or not child.is_file(follow_symlinks=False):
                            continue
                        try:
                            stats = child.stat(follow_symlinks=False)
                        except (FileNotFoundError, PermissionError, OSError):
                            # Files can disappear while scanning.
                            continue
                        entries.append(LogFileEntry(path=child.path, mtime_ns=stats.st_mtime_ns, stats=stats))
            except (FileNotFoundError, NotADirectoryError, PermissionError):
                continue
        return entries


class WorktreeResolutionCache:
    """Process-lifetime ``working dir -> main repo`` map.

    Entries are never invalidated; a checkout's main repository is assumed
    stable for the life of the process. ``clear()`` exists for tests.
    """

    def __init__(self, resolver: Callable[[str], WorktreeResolution] = resolve_worktree):
        self._resolver = resolver
        self._entries: dict[str, WorktreeResolution] = {}
        self._lock = threading.Lock()

    def resolve(self, folder: str) -> WorktreeResolution:
        with self._lock:
            cached = self._entries.get(folder)
        if cached is not None:
            return cached
        try:
            resolved = self._resolver(folder)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Worktree resolution failed for {folder}: {exc}")
            return WorktreeResolution(canonical_path=folder, is_worktree=False)
        with self._lock:
            self._entries[folder] = resolved
        return resolved

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


worktree_cache = WorktreeResolutionCache()


def default_strategies() -> list[ListingStrategy]:
    if config.FAST_LISTING_ENABLED:
        return [FindListingStrategy(), WalkListingStrategy()]
    return [WalkListingStrategy()]


class SessionLocator:
    """Lists session descriptors one page at a time."""

    def __init__(
        self,
        projects_dir: Path | None = None,
        strategies: Sequence[ListingStrategy] | None = None,
        worktrees: WorktreeResolutionCache | None = None,
        folder_decoder: Callable[[str], str] = project_dir_to_folder,
    ):
        self.projects_dir = Path(projects_dir) if projects_dir is not None else config.PROJECTS_DIR
        self._strategies = list(strategies) if strategies is not None else default_strategies()
        self._worktrees = worktrees if worktrees is not None else worktree_cache
        self._folder_decoder = folder_decoder
        self._decoded_folders: dict[str, str] = {}
        self._decode_lock = threading.Lock()

    def _enumerate(self) -> list[LogFileEntry]:
        for strategy in self._strategies:
            if not strategy.is_available():
                continue
            started = time.perf_counter()
            try:
                entries = strategy.enumerate(self.projects_dir)
            except EmptyListingError as exc:
                record_listing(strategy.name, "empty", (time.perf_counter() - started) * 1000)
                logger.debug(f"Session listing via {strategy.name} found nothing: {exc}")
                continue
            except Exception as exc:  # noqa: BLE001
                record_listing(strategy.name, "error", (time.perf_counter() - started) * 1000)
                logger.warning(f"Session listing via {strategy.name} failed: {exc}")
                continue
            record_listing(strategy.name, "ok", (time.perf_counter() - started) * 1000)
            return entries
        logger.warning(f"No session listing strategy succeeded for {self.projects_dir}")
        return []

    def decode_folder(self, dir_name: str) -> str:
        with self._decode_lock:
            cached = self._decoded_folders.get(dir_name)
        if cached is not None:
            return cached
        folder = self._folder_decoder(dir_name)
        with self._decode_lock:
            self._decoded_folders[dir_name] = folder
        return folder

    def _describe(self, entry: LogFileEntry) -> SessionDescriptor:
        path = Path(entry.path)
        stats = entry.stats
        if stats is None:
            try:
                stats = path.stat()
            except OSError:
                stats = None
        if stats is not None:
            dates = stat_dates(stats)
        else:
            modified = epoch_ns_to_iso(entry.mtime_ns)
            dates = {"createdAt": modified, "updatedAt": modified}

        folder = self.decode_folder(path.parent.name)
        display_folder = self._worktrees.resolve(folder).canonical_path
        return SessionDescriptor(
            sessionId=path.name[: -len(LOG_SUFFIX)],
            folder=folder,
            displayFolder=display_folder,
            logPath=str(path),
            createdAt=dates["createdAt"],
            updatedAt=dates["updatedAt"],
        )

    def describe_path(self, path: Path) -> SessionDescriptor:
        stats = path.stat()
        return self._describe(LogFileEntry(path=str(path), mtime_ns=stats.st_mtime_ns, stats=stats))

    def list_sessions(self, limit: int, offset: int = 0) -> tuple[list[SessionDescriptor], int]:
        """Return the ``[offset, offset + limit)`` page and the total count."""
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must be non-negative")

        with start_span("sessions.list", {"limit": limit, "offset": offset}):
            entries = self._enumerate()
            total = len(entries)
            if limit == 0 or offset >= total:
                return [], total
            page = heapq.nsmallest(offset + limit, entries, key=_sort_key)[offset:]
            return [self._describe(entry) for entry in page], total
