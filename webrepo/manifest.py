"""Persistence for the review and public manifests.

Each manifest is read and written as a whole JSON document. There is no
locking: two requests that modify the same manifest concurrently can lose one
of the updates. The workload is human paced, so this is accepted.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import ManifestDocument

logger = logging.getLogger("webrepo.manifest")

REVIEW = "review"
PUBLIC = "public"
MANIFEST_NAMES = (REVIEW, PUBLIC)


class ManifestStore:
    def __init__(self, repo_dir: Path):
        self.repo_dir = repo_dir

    def path_for(self, name: str) -> Path:
        if name not in MANIFEST_NAMES:
            raise ValueError(f"Unknown manifest {name!r}.")
        return self.repo_dir / f"manifest-{name}.json"

    def read(self, name: str) -> ManifestDocument:
        path = self.path_for(name)
        if not path.exists():
            return ManifestDocument(name=name)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse %s: %s", path, exc)
            raise
        if not isinstance(payload, dict):
            raise ValueError(f"{path} must contain a JSON object.")
        return ManifestDocument.from_dict(name, payload)

    def write(self, name: str, document: ManifestDocument) -> None:
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document.to_dict(), indent=2), encoding="utf-8")
        logger.debug("Wrote %s manifest (%d projects)", name, len(document.entries))


__all__ = ["MANIFEST_NAMES", "ManifestStore", "PUBLIC", "REVIEW"]
