"""Locate session and subagent log files in the project log store.

Layout::

    <projects_dir>/<encoded-cwd>/<session_id>.jsonl
    <projects_dir>/<encoded-cwd>/<session_id>/subagents/agent-<agentId>.jsonl
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from backend import config

logger = logging.getLogger("agentboard.locator")

LOG_SUFFIX = ".jsonl"
SUBAGENTS_DIRNAME = "subagents"
SUBAGENT_PREFIX = "agent-"

_SAFE_SESSION_ID = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")


def is_safe_session_id(session_id: str) -> bool:
    return bool(session_id) and bool(_SAFE_SESSION_ID.match(session_id))


class SessionFileIndex:
    """Filesystem lookups for one log store root."""

    def __init__(self, projects_dir: Path | None = None):
        self.projects_dir = Path(projects_dir) if projects_dir is not None else config.PROJECTS_DIR

    def _project_dirs(self) -> list[Path]:
        try:
            with os.scandir(self.projects_dir) as entries:
                return sorted(Path(entry.path) for entry in entries if entry.is_dir(follow_symlinks=False))
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning(f"Cannot list project log directory {self.projects_dir}: {exc}")
            return []

    def find_log_file(self, session_id: str) -> Path | None:
        """Return the log file for ``session_id`` in any project folder."""
        if not is_safe_session_id(session_id):
            return None
        for project_dir in self._project_dirs():
            candidate = project_dir / f"{session_id}{LOG_SUFFIX}"
            if candidate.is_file():
                return candidate
        return None

    def find_subagent_files(self, session_id: str) -> list[tuple[str, Path]]:
        """Return ``(agentId, path)`` for each subagent log spawned by a session."""
        log_path = self.find_log_file(session_id)
        if log_path is None:
            return []
        subagents_dir = log_path.parent / session_id / SUBAGENTS_DIRNAME
        try:
            names = sorted(os.listdir(subagents_dir))
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning(f"Cannot list subagent logs in {subagents_dir}: {exc}")
            return []

        found: list[tuple[str, Path]] = []
        for name in names:
            if not (name.startswith(SUBAGENT_PREFIX) and name.endswith(LOG_SUFFIX)):
                continue
            agent_id = name[len(SUBAGENT_PREFIX):-len(LOG_SUFFIX)]
            path = subagents_dir / name
            if agent_id and path.is_file():
                found.append((agent_id, path))
        return found
