"""Git lookups backed by the ``git`` executable."""
from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from backend import config
from backend.models import RepoStatus

logger = logging.getLogger("agentboard.git")

DEFAULT_BRANCH = "main"


@dataclass(frozen=True)
class WorktreeResolution:
    canonical_path: str
    is_worktree: bool


def _git(directory: str, *args: str, timeout: float | None = None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", "-C", directory, *args],
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout if timeout is not None else config.GIT_TIMEOUT_SECONDS,
    )


def get_repo_status(directory: str) -> RepoStatus:
    """Report whether ``directory`` is inside a git repo and its current branch.

    A repo whose branch cannot be read (detached HEAD, unborn branch) reports
    ``main``. Raises only for unexpected process errors; callers cache and
    degrade.
    """
    if not directory or not os.path.isdir(directory):
        return RepoStatus(isRepo=False)

    is_repo = os.path.exists(os.path.join(directory, ".git"))
    if not is_repo:
        is_repo = _git(directory, "rev-parse", "--git-dir").returncode == 0
    if not is_repo:
        return RepoStatus(isRepo=False)

    try:
        result = _git(directory, "branch", "--show-current")
    except subprocess.TimeoutExpired:
        return RepoStatus(isRepo=True, branch=DEFAULT_BRANCH)
    branch = result.stdout.strip() if result.returncode == 0 else ""
    return RepoStatus(isRepo=True, branch=branch or DEFAULT_BRANCH)


def resolve_worktree(directory: str) -> WorktreeResolution:
    """Map a linked worktree to its main repository checkout.

    Directories that are not linked worktrees (plain repos, non-repos,
    missing paths) resolve to themselves.
    """
    if not directory or not os.path.isdir(directory):
        return WorktreeResolution(canonical_path=directory, is_worktree=False)

    result = _git(directory, "rev-parse", "--path-format=absolute", "--git-dir", "--git-common-dir")
    if result.returncode != 0:
        return WorktreeResolution(canonical_path=directory, is_worktree=False)

    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if len(lines) < 2:
        return WorktreeResolution(canonical_path=directory, is_worktree=False)

    git_dir = Path(lines[0]).resolve(strict=False)
    common_dir = Path(lines[1]).resolve(strict=False)
    if git_dir == common_dir:
        return WorktreeResolution(canonical_path=directory, is_worktree=False)

    main_repo = common_dir.parent if common_dir.name == ".git" else common_dir
    return WorktreeResolution(canonical_path=str(main_repo), is_worktree=True)
