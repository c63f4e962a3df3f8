#!/usr/bin/env python3
"""
Run Storage Test Suite

Covers run directory organization and the raw commit archive.

Outputs standardized test results: TEST_RESULTS: PASSED=X TOTAL=Y SUITE="Name"
"""

import sys
import tempfile
import unittest
from pathlib import Path

import orjson

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.freshness_tool.storage.commit_archive import CommitArchive
from src.freshness_tool.storage.run_organization import (
    create_run_directory,
    get_project_root,
    get_run_paths,
    resolve_project_path,
)


class TestRunOrganization(unittest.TestCase):

    def test_project_root_has_entry_point(self):
        self.assertTrue((get_project_root() / "run_tools.py").exists())

    def test_resolve_relative_and_absolute(self):
        self.assertEqual(resolve_project_path("cache/commits"), get_project_root() / "cache" / "commits")
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertEqual(resolve_project_path(tmpdir), Path(tmpdir))

    def test_create_run_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            run_path, run_id = create_run_directory("secureworks/criteria", runs_root=Path(tmpdir))
            self.assertTrue(run_path.is_dir())
            self.assertTrue(run_id.endswith("_secureworkscriteria"))
            paths = get_run_paths(run_path)
            self.assertTrue(paths["logs"].is_dir())
            self.assertTrue(paths["reports"].is_dir())

    def test_same_second_runs_do_not_collide(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            first, _ = create_run_directory("ctx", is_test=True, runs_root=Path(tmpdir))
            second, second_id = create_run_directory("ctx", is_test=True, runs_root=Path(tmpdir))
            self.assertNotEqual(first, second)
            self.assertIn("TEST_ctx", second_id)


class TestCommitArchive(unittest.TestCase):

    def test_disabled_archive_writes_nothing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            archive = CommitArchive({"enabled": False, "path": tmpdir})
            self.assertIsNone(archive.store("owner/repo", "windows/T1.csv", []))
            self.assertIsNone(archive.write_metadata("run"))
            self.assertEqual(list(Path(tmpdir).iterdir()), [])

    def test_store_and_metadata(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            archive = CommitArchive({"enabled": True, "path": tmpdir, "description": "raw commits"})
            payload = [{"commit": {"author": {"date": "2023-05-25T20:38:57Z"}}}]
            target = archive.store("owner/repo", "windows/T1027-T1047.csv", payload)

            self.assertEqual(target, Path(tmpdir) / "owner_repo" / "windows" / "T1027-T1047.csv.json")
            self.assertEqual(orjson.loads(target.read_bytes()), payload)

            metadata_path = archive.write_metadata("run-1")
            metadata = orjson.loads(metadata_path.read_bytes())
            self.assertEqual(metadata["total_files"], 1)
            self.assertEqual(metadata["files_written_last_run"], 1)
            self.assertEqual(metadata["last_run_id"], "run-1")
            self.assertEqual(metadata["description"], "raw commits")

    def test_path_traversal_components_sanitized(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            archive = CommitArchive({"enabled": True, "path": tmpdir})
            target = archive.path_for("owner/repo", "../../etc/passwd")
            self.assertTrue(str(target.resolve()).startswith(str(Path(tmpdir).resolve())))


if __name__ == '__main__':
    suite = unittest.defaultTestLoader.loadTestsFromModule(sys.modules[__name__])
    result = unittest.TextTestRunner(verbosity=2).run(suite)

    passed = result.testsRun - len(result.failures) - len(result.errors)
    print(f"\nTEST_RESULTS: PASSED={passed} TOTAL={result.testsRun} SUITE=\"Run Storage\"")
    sys.exit(0 if result.wasSuccessful() else 1)
