"""On-disk layout of uploads and published project versions."""

from __future__ import annotations

import json
import logging
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional

from .models import ProjectMetadata

logger = logging.getLogger("webrepo.storage")

PROJECT_ARCHIVE = "project.zip"
METADATA_FILE = "metadata.json"
LATEST_LINK = "webrepo_latest.zip"


def icon_filename(icon: str) -> str:
    return PurePosixPath(icon.replace("\\", "/")).name


class RepoStorage:
    """Paths and file moves under the repository root.

    ``<repo>/uploads/<zip_name>`` holds staged uploads and
    ``<repo>/<name>/<version>/`` holds ``project.zip``, ``metadata.json`` and
    the extracted icon.
    """

    def __init__(self, repo_dir: Path):
        self.repo_dir = repo_dir

    @property
    def uploads_dir(self) -> Path:
        return self.repo_dir / "uploads"

    def _inside_repo(self, *parts: str) -> Path:
        """Join ``parts`` under the repo, requiring exactly that many levels of depth."""
        path = self.repo_dir.joinpath(*parts)
        anchor = path.resolve()
        for _ in parts:
            anchor = anchor.parent
        if anchor != self.repo_dir.resolve():
            raise ValueError(f"Path {'/'.join(parts)!r} escapes the repository.")
        return path

    def upload_path(self, zip_name: str) -> Path:
        return self.uploads_dir / Path(zip_name).name

    def project_dir(self, name: str) -> Path:
        return self._inside_repo(name)

    def version_dir(self, name: str, version: str) -> Path:
        return self._inside_repo(name, version)

    def store_upload(self, data: bytes, filename: str) -> Path:
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_path(filename)
        path.write_bytes(data)
        return path

    def relocate_submission(self, metadata: ProjectMetadata, forum_link: str) -> Path:
        """Move a staged upload into its version directory and record its metadata.

        Filesystem errors are left to propagate.
        """
        if not metadata.zip_name:
            raise ValueError("Submission has no staged upload.")
        upload = self.upload_path(metadata.zip_name)
        target_dir = self.version_dir(metadata.name, metadata.version)
        target_dir.mkdir(parents=True, exist_ok=True)
        archive = target_dir / PROJECT_ARCHIVE
        shutil.copyfile(upload, archive)

        metadata.strip_transient()
        metadata.forum_link = forum_link
        self.write_metadata(metadata.name, metadata.version, metadata.to_dict())

        self.extract_icon(archive, metadata.icon, target_dir)
        upload.unlink()
        logger.info("Stored %s %s in %s", metadata.name, metadata.version, target_dir)
        return target_dir

    def extract_icon(self, archive: Path, icon: str, target_dir: Path) -> Optional[Path]:
        """Copy the ``icon`` entry of ``archive`` into ``target_dir``, flattened."""
        with zipfile.ZipFile(archive) as bundle:
            try:
                info = bundle.getinfo(icon)
            except KeyError:
                logger.warning("Icon %s not found in %s", icon, archive)
                return None
            destination = target_dir / icon_filename(icon)
            with bundle.open(info) as source, destination.open("wb") as sink:
                shutil.copyfileobj(source, sink)
        return destination

    def read_metadata(self, name: str, version: str) -> Dict[str, Any]:
        path = self.version_dir(name, version) / METADATA_FILE
        return json.loads(path.read_text(encoding="utf-8"))

    def write_metadata(self, name: str, version: str, payload: Dict[str, Any]) -> None:
        path = self.version_dir(name, version) / METADATA_FILE
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def link_icon(self, name: str, version: str, icon: str) -> Path:
        """Point ``<repo>/<name>/<icon>`` at the icon of ``version``."""
        filename = icon_filename(icon)
        link = self.project_dir(name) / filename
        link.unlink(missing_ok=True)
        link.symlink_to(Path(version) / filename)
        return link

    def link_latest(self, name: str, version: str) -> Path:
        link = self.repo_dir / LATEST_LINK
        link.unlink(missing_ok=True)
        link.symlink_to(Path(name) / version / PROJECT_ARCHIVE)
        return link

    def discard_upload(self, zip_name: Optional[str]) -> bool:
        if not zip_name:
            return False
        path = self.upload_path(zip_name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def remove_version(self, name: str, version: str) -> bool:
        target_dir = self.version_dir(name, version)
        if not target_dir.exists():
            return False
        shutil.rmtree(target_dir)
        project_dir = self.project_dir(name)
        try:
            next(project_dir.iterdir())
        except StopIteration:
            project_dir.rmdir()
        return True


__all__ = ["LATEST_LINK", "METADATA_FILE", "PROJECT_ARCHIVE", "RepoStorage", "icon_filename"]
