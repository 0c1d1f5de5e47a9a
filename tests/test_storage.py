import tempfile
import unittest
from pathlib import Path

from webrepo.storage import RepoStorage


class RepoStoragePathTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.repo_dir = Path(self._tmp.name)
        self.storage = RepoStorage(self.repo_dir)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_version_dir_sits_two_levels_below_root(self) -> None:
        self.assertEqual(self.storage.version_dir("Rocket", "1.0"), self.repo_dir / "Rocket" / "1.0")

    def test_version_dir_refuses_other_depths(self) -> None:
        for name, version in (("Rocket", ".."), ("Rocket", "."), ("Rocket", ""), ("..", "1.0"), ("Other/Rocket", "1.0")):
            with self.subTest(name=name, version=version):
                with self.assertRaises(ValueError):
                    self.storage.version_dir(name, version)

    def test_project_dir_refuses_root_and_parent(self) -> None:
        for name in ("..", ".", "", "Other/Rocket"):
            with self.subTest(name=name):
                with self.assertRaises(ValueError):
                    self.storage.project_dir(name)

    def test_remove_version_never_reaches_the_root(self) -> None:
        (self.repo_dir / "manifest-public.json").write_text("{}", encoding="utf-8")
        (self.repo_dir / "Rocket").mkdir()
        with self.assertRaises(ValueError):
            self.storage.remove_version("Rocket", "..")
        self.assertTrue((self.repo_dir / "manifest-public.json").exists())


if __name__ == "__main__":
    unittest.main()
