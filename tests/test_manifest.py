import json
import tempfile
import unittest
from pathlib import Path

from webrepo.manifest import PUBLIC, REVIEW, ManifestStore
from webrepo.models import ManifestDocument, VersionRecord


class ManifestStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.repo_dir = Path(self._tmp.name)
        self.store = ManifestStore(self.repo_dir)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_manifest_reads_as_empty(self) -> None:
        document = self.store.read(REVIEW)
        self.assertEqual(document.entries, {})
        self.assertEqual(document.name, REVIEW)

    def test_written_layout_uses_manifest_keys(self) -> None:
        document = ManifestDocument(name=REVIEW)
        document.add_version("Rocket", 12, VersionRecord(id="1.0", post_id=34, revision=2))
        self.store.write(REVIEW, document)

        raw = json.loads((self.repo_dir / "manifest-review.json").read_text(encoding="utf-8"))
        self.assertEqual(raw, {"Rocket": {"topicId": 12, "versions": [{"id": "1.0", "postId": 34, "revision": 2}]}})

        reloaded = self.store.read(REVIEW)
        record = reloaded.find_version("Rocket", "1.0")
        self.assertEqual(record, VersionRecord(id="1.0", post_id=34, revision=2))

    def test_public_records_omit_revision(self) -> None:
        document = ManifestDocument(name=PUBLIC)
        document.add_version("Rocket", 12, VersionRecord(id="1.0", post_id=34))
        self.store.write(PUBLIC, document)
        raw = json.loads((self.repo_dir / "manifest-public.json").read_text(encoding="utf-8"))
        self.assertNotIn("revision", raw["Rocket"]["versions"][0])

    def test_empty_entries_are_dropped_on_read(self) -> None:
        path = self.repo_dir / "manifest-review.json"
        path.write_text(json.dumps({"Ghost": {"topicId": 1, "versions": []}}), encoding="utf-8")
        self.assertNotIn("Ghost", self.store.read(REVIEW))

    def test_malformed_manifest_raises(self) -> None:
        (self.repo_dir / "manifest-public.json").write_text("{not json", encoding="utf-8")
        with self.assertRaises(json.JSONDecodeError):
            self.store.read(PUBLIC)

    def test_unknown_manifest_name(self) -> None:
        with self.assertRaises(ValueError):
            self.store.read("drafts")


class ManifestDocumentTests(unittest.TestCase):
    def test_removing_last_version_removes_entry(self) -> None:
        document = ManifestDocument(name=REVIEW)
        document.add_version("Rocket", 5, VersionRecord(id="1.0", post_id=50, revision=1))
        document.add_version("Rocket", 5, VersionRecord(id="1.1", post_id=51, revision=1))

        document.remove_version("Rocket", "1.0")
        self.assertIn("Rocket", document)
        removed = document.remove_version("Rocket", "1.1")
        self.assertEqual(removed.id, "1.1")
        self.assertNotIn("Rocket", document)
        self.assertIsNone(document.remove_version("Rocket", "1.1"))

    def test_duplicate_version_ids_are_refused(self) -> None:
        document = ManifestDocument(name=REVIEW)
        document.add_version("Rocket", 5, VersionRecord(id="1.0", post_id=50, revision=1))
        with self.assertRaises(ValueError):
            document.add_version("Rocket", 5, VersionRecord(id="1.0", post_id=99, revision=1))

    def test_find_by_post_requires_matching_topic(self) -> None:
        document = ManifestDocument(name=REVIEW)
        document.add_version("Rocket", 5, VersionRecord(id="1.0", post_id=50, revision=1))
        document.add_version("Comet", 6, VersionRecord(id="2.0", post_id=60, revision=1))

        name, entry, record = document.find_by_post(6, 60)
        self.assertEqual((name, entry.topic_id, record.id), ("Comet", 6, "2.0"))
        self.assertIsNone(document.find_by_post(5, 60))
        self.assertIsNone(document.find_by_post(5, 999))


if __name__ == "__main__":
    unittest.main()
