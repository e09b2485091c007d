import re
import tempfile
import unittest
from pathlib import Path

from backend.paths import _dot_variants, encode_project_dir, project_dir_to_folder


class ProjectDirPathTests(unittest.TestCase):
    def setUp(self) -> None:
        # Decoding only recovers dashes and dots, so the temp root itself must
        # be made of plain alphanumeric segments.
        for _ in range(20):
            tmpdir = tempfile.TemporaryDirectory()
            root = Path(tmpdir.name).resolve()
            if re.fullmatch(r"[/A-Za-z0-9]+", str(root)):
                break
            tmpdir.cleanup()
        else:
            self.skipTest("temporary directory path contains separators that cannot be decoded")
        self.addCleanup(tmpdir.cleanup)
        self.root = root

    def _roundtrip(self, folder: Path) -> str:
        folder.mkdir(parents=True, exist_ok=True)
        return project_dir_to_folder(encode_project_dir(str(folder)))

    def test_encode_replaces_non_alphanumerics(self) -> None:
        self.assertEqual(encode_project_dir("/home/me/my.app_v2"), "-home-me-my-app-v2")

    def test_dashed_directory_name_is_recovered(self) -> None:
        target = self.root / "my-project" / "src"
        self.assertEqual(self._roundtrip(target), str(target))

    def test_dotted_directory_name_is_recovered(self) -> None:
        target = self.root / "site.example.com"
        self.assertEqual(self._roundtrip(target), str(target))

    def test_mixed_dash_and_dot_segment(self) -> None:
        target = self.root / "my-lib.js"
        self.assertEqual(self._roundtrip(target), str(target))

    def test_unknown_path_falls_back_to_greedy_guess(self) -> None:
        self.assertEqual(project_dir_to_folder("-nonexistent-root-dir"), "/nonexistent-root-dir")

    def test_dot_variants(self) -> None:
        self.assertEqual(_dot_variants("plain"), [])
        self.assertEqual(_dot_variants("a-b"), ["a.b"])
        self.assertEqual(set(_dot_variants("a-b-c")), {"a.b.c", "a.b-c", "a-b.c"})
        self.assertEqual(_dot_variants("a-b-c")[0], "a.b.c")


if __name__ == "__main__":
    unittest.main()
