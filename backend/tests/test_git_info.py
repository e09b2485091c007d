import os
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from backend.services.git_info import get_repo_status, resolve_worktree


def _completed(returncode: int = 0, stdout: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr="")


class GitInfoTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)

    def test_missing_directory_is_not_a_repo(self) -> None:
        with patch("backend.services.git_info.subprocess.run") as run:
            status = get_repo_status(str(self.root / "missing"))
        self.assertFalse(status.isRepo)
        self.assertIsNone(status.branch)
        run.assert_not_called()

    def test_repo_with_branch(self) -> None:
        (self.root / ".git").mkdir()
        with patch("backend.services.git_info.subprocess.run", return_value=_completed(stdout="feature/x\n")) as run:
            status = get_repo_status(str(self.root))

        self.assertTrue(status.isRepo)
        self.assertEqual(status.branch, "feature/x")
        args = run.call_args.args[0]
        self.assertEqual(args[:3], ["git", "-C", str(self.root)])
        self.assertEqual(args[3:], ["branch", "--show-current"])

    def test_detached_head_reports_main(self) -> None:
        (self.root / ".git").mkdir()
        with patch("backend.services.git_info.subprocess.run", return_value=_completed(stdout="")):
            self.assertEqual(get_repo_status(str(self.root)).branch, "main")

    def test_subdirectory_detected_through_rev_parse(self) -> None:
        responses = [_completed(stdout=".git\n"), _completed(stdout="dev\n")]
        with patch("backend.services.git_info.subprocess.run", side_effect=responses):
            status = get_repo_status(str(self.root))
        self.assertTrue(status.isRepo)
        self.assertEqual(status.branch, "dev")

    def test_plain_directory_is_not_a_repo(self) -> None:
        with patch("backend.services.git_info.subprocess.run", return_value=_completed(returncode=128)):
            self.assertFalse(get_repo_status(str(self.root)).isRepo)

    def test_linked_worktree_resolves_to_main_checkout(self) -> None:
        main_repo = self.root / "app"
        worktree = self.root / "app-wt"
        worktree.mkdir()
        stdout = f"{main_repo}/.git/worktrees/app-wt\n{main_repo}/.git\n"
        with patch("backend.services.git_info.subprocess.run", return_value=_completed(stdout=stdout)):
            resolution = resolve_worktree(str(worktree))

        self.assertTrue(resolution.is_worktree)
        self.assertEqual(resolution.canonical_path, str(Path(main_repo).resolve(strict=False)))

    def test_main_checkout_and_non_repo_resolve_to_themselves(self) -> None:
        git_dir = os.path.join(str(self.root), ".git")
        with patch("backend.services.git_info.subprocess.run", return_value=_completed(stdout=f"{git_dir}\n{git_dir}\n")):
            resolution = resolve_worktree(str(self.root))
        self.assertFalse(resolution.is_worktree)
        self.assertEqual(resolution.canonical_path, str(self.root))

        with patch("backend.services.git_info.subprocess.run", return_value=_completed(returncode=128)):
            self.assertEqual(resolve_worktree(str(self.root)).canonical_path, str(self.root))


if __name__ == "__main__":
    unittest.main()
