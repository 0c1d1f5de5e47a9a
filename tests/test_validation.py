import unittest

from webrepo.models import METADATA_FIELDS, ManifestDocument, VersionRecord
from webrepo.validation import ValidationError, ensure_valid, is_existing_version, validate_metadata

from tests.fakes import make_metadata


class ValidateMetadataTests(unittest.TestCase):
    def test_complete_metadata_is_accepted(self) -> None:
        self.assertEqual(validate_metadata(make_metadata()), (True, ""))

    def test_missing_field_is_named(self) -> None:
        for field in METADATA_FIELDS:
            with self.subTest(field=field):
                metadata = make_metadata()
                del metadata[field]
                self.assertEqual(validate_metadata(metadata), (False, f"{field} missing."))

    def test_first_missing_field_wins(self) -> None:
        metadata = make_metadata()
        del metadata["icon"]
        del metadata["name"]
        self.assertEqual(validate_metadata(metadata), (False, "name missing."))

    def test_non_ascii_name_is_rejected(self) -> None:
        ok, reason = validate_metadata(make_metadata(name="Fusée"))
        self.assertFalse(ok)
        self.assertEqual(reason, "name must contain ascii characters only.")

    def test_non_ascii_version_is_rejected(self) -> None:
        ok, reason = validate_metadata(make_metadata(version="1.0β"))
        self.assertFalse(ok)
        self.assertEqual(reason, "version must contain ascii characters only.")

    def test_name_length_limit(self) -> None:
        self.assertTrue(validate_metadata(make_metadata(name="x" * 32))[0])
        ok, reason = validate_metadata(make_metadata(name="x" * 33))
        self.assertFalse(ok)
        self.assertIn("32", reason)

    def test_short_description_length_limit(self) -> None:
        self.assertTrue(validate_metadata(make_metadata(description_short="d" * 40))[0])
        ok, reason = validate_metadata(make_metadata(description_short="d" * 41))
        self.assertFalse(ok)
        self.assertTrue(reason.startswith("description_short"))

    def test_non_string_name_is_rejected(self) -> None:
        self.assertEqual(validate_metadata(make_metadata(name=42)), (False, "name must be a string."))

    def test_name_and_version_must_be_plain_directory_names(self) -> None:
        cases = [
            ({"version": ".."}, "version must be a plain directory name."),
            ({"version": "."}, "version must be a plain directory name."),
            ({"version": ""}, "version must be a plain directory name."),
            ({"name": ".."}, "name must be a plain directory name."),
            ({"name": "Other/Rocket"}, "name must be a plain directory name."),
            ({"name": "Other\\Rocket"}, "name must be a plain directory name."),
        ]
        for overrides, reason in cases:
            with self.subTest(**overrides):
                self.assertEqual(validate_metadata(make_metadata(**overrides)), (False, reason))
        self.assertTrue(validate_metadata(make_metadata(name="Rocket..2", version="1.0.0"))[0])

    def test_unhashable_name_is_rejected(self) -> None:
        self.assertEqual(validate_metadata(make_metadata(name=["Rocket"])), (False, "name must be a string."))

    def test_authors_must_be_a_list(self) -> None:
        self.assertEqual(validate_metadata(make_metadata(authors=5)), (False, "authors must be a list."))
        self.assertTrue(validate_metadata(make_metadata(authors="alice"))[0])

    def test_ensure_valid_raises_with_reason(self) -> None:
        metadata = make_metadata()
        del metadata["platform"]
        with self.assertRaises(ValidationError) as ctx:
            ensure_valid(metadata)
        self.assertEqual(ctx.exception.reason, "platform missing.")


class ExistingVersionTests(unittest.TestCase):
    def test_published_version_is_detected(self) -> None:
        public = ManifestDocument(name="public")
        public.add_version("Rocket", 7, VersionRecord(id="1.0", post_id=70))
        self.assertTrue(is_existing_version(public, "Rocket", "1.0"))
        self.assertFalse(is_existing_version(public, "Rocket", "1.1"))
        self.assertFalse(is_existing_version(public, "Comet", "1.0"))


if __name__ == "__main__":
    unittest.main()
