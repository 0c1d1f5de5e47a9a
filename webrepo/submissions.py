"""Submission workflow: review posts, approvals and rejections."""

from __future__ import annotations

import asyncio
import logging
import random
import re
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import quote

from .config import WebRepoSettings
from .forum import ForumError, NotifyResult
from .manifest import PUBLIC, REVIEW, ManifestStore
from .models import ProjectEntry, ProjectMetadata, VersionRecord
from .storage import RepoStorage
from .utils import normalize_quotes, utc_now
from .validation import (
    DuplicateVersionError,
    ValidationError,
    ensure_valid,
    is_existing_version,
    path_component_error,
)

logger = logging.getLogger("webrepo.submissions")

ARCHIVE_PREFIX = re.compile(r".*?\.codea/")


class SubmissionManager:
    def __init__(
        self,
        settings: WebRepoSettings,
        forum: Any,
        *,
        manifests: Optional[ManifestStore] = None,
        storage: Optional[RepoStorage] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.forum = forum
        self.manifests = manifests or ManifestStore(settings.repo_dir)
        self.storage = storage or RepoStorage(settings.repo_dir)
        self._random = rng or random.Random()

    async def accept_submission(self, payload: Mapping[str, Any]) -> None:
        """Validate a submission, refuse published versions, then submit it."""
        ensure_valid(payload)
        metadata = ProjectMetadata.from_dict(dict(payload))
        if is_existing_version(self.manifests.read(PUBLIC), metadata.name, metadata.version):
            self.storage.discard_upload(metadata.zip_name)
            raise DuplicateVersionError(f"{metadata.name} {metadata.version} has already been published.")
        await self.submit(metadata)

    async def submit(self, metadata: ProjectMetadata) -> None:
        logger.info("Submission received: %s %s", metadata.name, metadata.version)
        name = metadata.name
        version = metadata.version
        body = await self.compose_post(metadata)

        public = self.manifests.read(PUBLIC)
        review = self.manifests.read(REVIEW)
        topic_id = public.topic_id(name)
        if topic_id is None:
            topic_id = review.topic_id(name)

        existing = review.find_version(name, version)
        if existing is not None and existing.post_id is not None:
            logger.info("Revising review post %s for %s %s", existing.post_id, name, version)
            existing.revision = (existing.revision or 0) + 1
            self.manifests.write(REVIEW, review)
            body += f"\n\n---\nrevision #{existing.revision}"
            await self._edit_review_post(existing.post_id, body)
        else:
            revision = 1
            if existing is not None:
                # The earlier post never reached the forum; open a fresh one.
                revision = (existing.revision or 0) + 1
                body += f"\n\n---\nrevision #{revision}"
            title = f"{normalize_quotes(name)} (Project Thread)"
            topic_id, post_id, _ = await self._open_review_post(topic_id, title, body)
            self._record_review_post(name, version, topic_id, post_id, revision)

        forum_link = f"{self.settings.forum_topic_base}/{topic_id}" if topic_id is not None else None
        await asyncio.to_thread(self.storage.relocate_submission, metadata, forum_link)

    def _record_review_post(
        self,
        name: str,
        version: str,
        topic_id: Optional[int],
        post_id: Optional[int],
        revision: int,
    ) -> None:
        review = self.manifests.read(REVIEW)
        record = review.find_version(name, version)
        if record is None:
            if name not in review:
                logger.info("New review manifest entry for %s", name)
            review.add_version(name, topic_id, VersionRecord(id=version, post_id=post_id, revision=revision))
        else:
            record.post_id = post_id
            record.revision = revision
            entry = review.get(name)
            if entry is not None and entry.topic_id is None:
                entry.topic_id = topic_id
        self.manifests.write(REVIEW, review)

    async def compose_post(self, metadata: ProjectMetadata) -> str:
        host = self.settings.host
        pad_number = self._random.randint(1, 10)
        zip_path = quote(f"{metadata.name}/{metadata.version}/project.zip")
        icon_path = quote(f"{metadata.name}/{metadata.version}/{ARCHIVE_PREFIX.sub('', metadata.icon, count=1)}")
        author_msg = await self.compose_author_roster(metadata.authors)
        return (
            f"## Landing Request (Version: {metadata.version})\n"
            "\n"
            f"![](https://{host}/{icon_path})\n"
            "---\n"
            "### Course Corrections (Update notes):\n"
            f"{metadata.update_notes}\n"
            "\n"
            "### Callsign (Short desc.):\n"
            f"{metadata.description_short}\n"
            "\n"
            "### Ship Manifest (Long desc.):\n"
            f"{metadata.description_long}\n"
            "\n"
            f"### {author_msg}\n"
            "\n"
            "### Cargo (Category & platform):\n"
            f"{metadata.category} for {metadata.platform}.\n"
            "\n"
            f"[Download Zip](https://{host}/{zip_path})\n"
            "\n"
            "---\n"
            f":satellite: Approach pad #{pad_number} and await further instruction. :satellite:"
        )

    async def compose_author_roster(self, authors: List[str]) -> str:
        lines = ["Pilot:" if len(authors) == 1 else "Crew:"]
        for username in authors:
            try:
                info = await self.forum.get_user_info_by_name(username)
            except ForumError as exc:
                logger.debug("User lookup for %s failed: %s", username, exc)
                info = {}
            known = isinstance(info, dict) and info.get("user") is not None
            lines.append(f"@{username}" if known else username)
        return "\n".join(lines) + "\n"

    async def _open_review_post(
        self,
        topic_id: Optional[int],
        title: str,
        body: str,
    ) -> Tuple[Optional[int], Optional[int], NotifyResult]:
        try:
            if topic_id is None:
                topic_id, post_id = await self.forum.create_topic(title, body)
                logger.info("Created topic %s (%s)", topic_id, title)
            else:
                post_id = await self.forum.create_post(topic_id, body)
        except ForumError as exc:
            logger.warning("Failed to post review request: %s", exc)
            return topic_id, None, NotifyResult(False, str(exc))
        return topic_id, post_id, NotifyResult(True)

    async def _edit_review_post(self, post_id: int, body: str) -> NotifyResult:
        try:
            await self.forum.edit_post(post_id, body)
        except ForumError as exc:
            logger.warning("Failed to edit review post %s: %s", post_id, exc)
            return NotifyResult(False, str(exc))
        return NotifyResult(True)

    async def on_webhook(self, payload: Mapping[str, Any]) -> bool:
        like = payload.get("like")
        if not isinstance(like, Mapping):
            return False
        return await self.resolve_like(like)

    async def resolve_like(self, like: Mapping[str, Any]) -> bool:
        """Approve the version behind a liked review post when an admin reacted."""
        post = like.get("post") or {}
        user = like.get("user") or {}
        try:
            post_id = int(post["id"])
            topic_id = int(post["topic_id"])
            user_id = int(user["id"])
            username = str(user["username"])
        except (KeyError, TypeError, ValueError):
            logger.debug("Ignoring malformed like event")
            return False

        match = self.manifests.read(REVIEW).find_by_post(topic_id, post_id)
        if match is None:
            logger.debug("Like on unmanaged post %s", post_id)
            return False
        name, entry, record = match

        if not await self._is_admin(user_id):
            logger.debug("User %s is not in %s", username, self.settings.admin_group)
            return False
        if not await self._has_reaction(post_id, username):
            logger.debug("User %s has no %s reaction on post %s", username, self.settings.approval_reaction, post_id)
            return False
        return await self.approve(entry, name, record.id)

    async def _is_admin(self, user_id: int) -> bool:
        try:
            info = await self.forum.get_user_info(user_id)
        except ForumError as exc:
            logger.warning("Failed to load forum user %s: %s", user_id, exc)
            return False
        groups = info.get("groups") if isinstance(info, dict) else None
        return any(
            isinstance(group, dict) and group.get("name") == self.settings.admin_group
            for group in groups or []
        )

    async def _has_reaction(self, post_id: int, username: str) -> bool:
        try:
            reactions = await self.forum.get_reaction_users(post_id)
        except ForumError as exc:
            logger.warning("Failed to load reactions for post %s: %s", post_id, exc)
            return False
        for reaction in reactions:
            if reaction.get("id") != self.settings.approval_reaction:
                continue
            if any(member.get("username") == username for member in reaction.get("users") or []):
                return True
        return False

    async def approve(self, entry: ProjectEntry, name: str, version: str) -> bool:
        """Publish a reviewed version. Returns False when it is no longer under review."""
        review = self.manifests.read(REVIEW)
        public = self.manifests.read(PUBLIC)
        if not review.has_version(name, version):
            logger.info("%s %s is not under review; nothing to approve", name, version)
            return False
        logger.info("Approving: %s - %s", name, version)

        metadata = self.storage.read_metadata(name, version)
        metadata["timestamp"] = int(utc_now().timestamp())
        self.storage.write_metadata(name, version, metadata)
        if metadata.get("icon"):
            self.storage.link_icon(name, version, metadata["icon"])
        if name == self.settings.latest_project:
            self.storage.link_latest(name, version)

        record = review.remove_version(name, version)
        record.revision = None
        if public.has_version(name, version):
            logger.warning("%s %s is already public; dropping the review record only", name, version)
        else:
            public.add_version(name, entry.topic_id, record)
        self.manifests.write(PUBLIC, public)
        self.manifests.write(REVIEW, review)

        await self._post_confirmation(entry.topic_id, version)
        return True

    async def _post_confirmation(self, topic_id: Optional[int], version: str) -> NotifyResult:
        if topic_id is None:
            return NotifyResult(False, "project has no forum topic")
        try:
            await self.forum.create_post(topic_id, f":satellite: Version {version} touchdown confirmed. :satellite:")
        except ForumError as exc:
            logger.warning("Failed to post approval confirmation to topic %s: %s", topic_id, exc)
            return NotifyResult(False, str(exc))
        return NotifyResult(True)

    def reject(self, name: str, version: str, zip_name: Optional[str] = None) -> bool:
        """Withdraw a version from review and delete its files.

        The public manifest is never touched; files of a published version are kept.
        """
        for key, value in (("name", name), ("version", version)):
            reason = path_component_error(key, value)
            if reason:
                raise ValidationError(reason)
        review = self.manifests.read(REVIEW)
        record = review.remove_version(name, version)
        if record is not None:
            self.manifests.write(REVIEW, review)
            logger.info("Rejected: %s - %s", name, version)
        self.storage.discard_upload(zip_name)
        if not self.manifests.read(PUBLIC).has_version(name, version):
            self.storage.remove_version(name, version)
        return record is not None


__all__ = ["SubmissionManager"]
