"""Submission metadata checks."""

from __future__ import annotations

from typing import Any, Mapping, Tuple

from .models import METADATA_FIELDS, ManifestDocument
from .utils import is_ascii

NAME_MAX_LENGTH = 32
DESCRIPTION_SHORT_MAX_LENGTH = 40
RESERVED_PATH_PARTS = frozenset({"", ".", ".."})


class ValidationError(Exception):
    """Raised when submitted metadata is incomplete or malformed."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DuplicateVersionError(Exception):
    """Raised when a submitted version has already been published."""


def path_component_error(key: str, value: str) -> str:
    """Reason ``value`` cannot name a directory under the repo, or an empty string."""
    if value in RESERVED_PATH_PARTS or "/" in value or "\\" in value:
        return f"{key} must be a plain directory name."
    return ""


def validate_metadata(metadata: Mapping[str, Any]) -> Tuple[bool, str]:
    """Return ``(ok, reason)`` for the first rule the metadata violates."""
    for key in METADATA_FIELDS:
        if metadata.get(key) is None:
            return False, f"{key} missing."

    name = metadata["name"]
    version = metadata["version"]
    description_short = metadata["description_short"]
    for key, value in (("name", name), ("version", version), ("description_short", description_short)):
        if not isinstance(value, str):
            return False, f"{key} must be a string."
    authors = metadata["authors"]
    if not isinstance(authors, (list, str)):
        return False, "authors must be a list."

    if len(name) > NAME_MAX_LENGTH:
        return False, f"name must be {NAME_MAX_LENGTH} characters or fewer."
    if not is_ascii(name):
        return False, "name must contain ascii characters only."
    if not is_ascii(version):
        return False, "version must contain ascii characters only."
    for key, value in (("name", name), ("version", version)):
        reason = path_component_error(key, value)
        if reason:
            return False, reason
    if len(description_short) > DESCRIPTION_SHORT_MAX_LENGTH:
        return False, f"description_short must be {DESCRIPTION_SHORT_MAX_LENGTH} characters or fewer."
    return True, ""


def ensure_valid(metadata: Mapping[str, Any]) -> None:
    ok, reason = validate_metadata(metadata)
    if not ok:
        raise ValidationError(reason)


def is_existing_version(public: ManifestDocument, name: str, version: str) -> bool:
    """True when ``name``/``version`` is already listed in the public manifest."""
    return public.has_version(name, version)


__all__ = [
    "DESCRIPTION_SHORT_MAX_LENGTH",
    "DuplicateVersionError",
    "NAME_MAX_LENGTH",
    "ValidationError",
    "ensure_valid",
    "is_existing_version",
    "path_component_error",
    "validate_metadata",
]
