"""Dataclasses and shared type definitions for the web repo."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


METADATA_FIELDS = (
    "name",
    "version",
    "description_short",
    "description_long",
    "authors",
    "icon",
    "category",
    "platform",
    "zip_name",
    "update_notes",
)
TRANSIENT_FIELDS = ("metadata_url", "zip_name")


@dataclass
class ProjectMetadata:
    """Metadata declared by a submitter, plus fields added while processing."""

    name: str
    version: str
    description_short: str
    description_long: str
    authors: List[str]
    icon: str
    category: str
    platform: str
    zip_name: Optional[str]
    update_notes: str
    forum_link: Optional[str] = None
    timestamp: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectMetadata":
        known = set(METADATA_FIELDS) | {"forum_link", "timestamp"}
        authors = data.get("authors") or []
        if isinstance(authors, str):
            authors = [authors]
        elif not isinstance(authors, (list, tuple)):
            authors = [authors]
        return cls(
            name=str(data["name"]),
            version=str(data["version"]),
            description_short=str(data.get("description_short") or ""),
            description_long=str(data.get("description_long") or ""),
            authors=[str(author).strip() for author in authors],
            icon=str(data.get("icon") or ""),
            category=str(data.get("category") or ""),
            platform=str(data.get("platform") or ""),
            zip_name=str(data["zip_name"]) if data.get("zip_name") else None,
            update_notes=str(data.get("update_notes") or ""),
            forum_link=data.get("forum_link"),
            timestamp=data.get("timestamp"),
            extra={key: value for key, value in data.items() if key not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        payload.update(
            {
                "name": self.name,
                "version": self.version,
                "description_short": self.description_short,
                "description_long": self.description_long,
                "authors": list(self.authors),
                "icon": self.icon,
                "category": self.category,
                "platform": self.platform,
                "zip_name": self.zip_name,
                "update_notes": self.update_notes,
                "forum_link": self.forum_link,
                "timestamp": self.timestamp,
            }
        )
        return {key: value for key, value in payload.items() if value is not None}

    def strip_transient(self) -> None:
        """Drop upload-only fields before the metadata is stored permanently."""
        self.zip_name = None
        for key in TRANSIENT_FIELDS:
            self.extra.pop(key, None)


@dataclass
class VersionRecord:
    id: str
    post_id: Optional[int]
    revision: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionRecord":
        post_id = data.get("postId")
        revision = data.get("revision")
        return cls(
            id=str(data["id"]),
            post_id=int(post_id) if post_id is not None else None,
            revision=int(revision) if revision is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "postId": self.post_id}
        if self.revision is not None:
            payload["revision"] = self.revision
        return payload


@dataclass
class ProjectEntry:
    topic_id: Optional[int]
    versions: List[VersionRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectEntry":
        topic_id = data.get("topicId")
        return cls(
            topic_id=int(topic_id) if topic_id is not None else None,
            versions=[VersionRecord.from_dict(item) for item in data.get("versions") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topicId": self.topic_id,
            "versions": [record.to_dict() for record in self.versions],
        }

    def find_version(self, version: str) -> Optional[VersionRecord]:
        for record in self.versions:
            if record.id == version:
                return record
        return None

    def has_version(self, version: str) -> bool:
        return self.find_version(version) is not None


@dataclass
class ManifestDocument:
    """Project name -> entry mapping; entries without versions are never kept."""

    name: str
    entries: Dict[str, ProjectEntry] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ManifestDocument":
        entries: Dict[str, ProjectEntry] = {}
        for project, raw_entry in data.items():
            if not isinstance(raw_entry, dict):
                continue
            entry = ProjectEntry.from_dict(raw_entry)
            if entry.versions:
                entries[project] = entry
        return cls(name=name, entries=entries)

    def to_dict(self) -> Dict[str, Any]:
        return {project: entry.to_dict() for project, entry in self.entries.items() if entry.versions}

    def __contains__(self, project: object) -> bool:
        return project in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def get(self, project: str) -> Optional[ProjectEntry]:
        return self.entries.get(project)

    def topic_id(self, project: str) -> Optional[int]:
        entry = self.entries.get(project)
        return entry.topic_id if entry else None

    def find_version(self, project: str, version: str) -> Optional[VersionRecord]:
        entry = self.entries.get(project)
        if entry is None:
            return None
        return entry.find_version(version)

    def has_version(self, project: str, version: str) -> bool:
        return self.find_version(project, version) is not None

    def add_version(self, project: str, topic_id: Optional[int], record: VersionRecord) -> ProjectEntry:
        entry = self.entries.get(project)
        if entry is None:
            entry = ProjectEntry(topic_id=topic_id)
            self.entries[project] = entry
        elif entry.topic_id is None and topic_id is not None:
            entry.topic_id = topic_id
        if entry.has_version(record.id):
            raise ValueError(f"{project} {record.id} is already listed in the {self.name} manifest.")
        entry.versions.append(record)
        return entry

    def remove_version(self, project: str, version: str) -> Optional[VersionRecord]:
        """Remove and return a version record, dropping the entry once it is empty."""
        entry = self.entries.get(project)
        if entry is None:
            return None
        record = entry.find_version(version)
        if record is None:
            return None
        entry.versions = [item for item in entry.versions if item.id != version]
        if not entry.versions:
            del self.entries[project]
        return record

    def find_by_post(self, topic_id: int, post_id: int) -> Optional[Tuple[str, ProjectEntry, VersionRecord]]:
        for project, entry in self.entries.items():
            if entry.topic_id != topic_id:
                continue
            for record in entry.versions:
                if record.post_id == post_id:
                    return project, entry, record
        return None


__all__ = [
    "METADATA_FIELDS",
    "ManifestDocument",
    "ProjectEntry",
    "ProjectMetadata",
    "TRANSIENT_FIELDS",
    "VersionRecord",
]
