"""Discourse forum API client used as the review interface."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import aiohttp

from .ratelimit import ForumRateLimiter

logger = logging.getLogger("webrepo.forum")

EDIT_REASON = "Submission revised."


class ForumError(Exception):
    """Raised when a forum API call fails or returns an unusable response."""


@dataclass(frozen=True)
class NotifyResult:
    """Outcome of a best-effort forum write. Callers may ignore it."""

    ok: bool
    detail: str = ""


def escape_non_ascii(text: str) -> str:
    """Encode every non-ASCII character as a numeric character reference."""
    return "".join(ch if ord(ch) <= 127 else f"&#{ord(ch)};" for ch in text)


class DiscourseClient:
    def __init__(
        self,
        host: str,
        api_key: str,
        username: str,
        *,
        category_id: int,
        rate_limiter: Optional[ForumRateLimiter] = None,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.host = host
        self.category_id = category_id
        self.rate_limiter = rate_limiter or ForumRateLimiter()
        self._headers = {"Api-Key": api_key, "Api-Username": username}
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        rate_limit: bool = False,
        allow_missing: bool = False,
    ) -> Any:
        if rate_limit:
            await self.rate_limiter.acquire()
        url = f"https://{self.host}{path}"
        logger.debug("%s %s", method, path)
        session = await self._get_session()
        try:
            async with session.request(method, url, json=payload, headers=self._headers) as resp:
                body = await resp.text()
                if resp.status == 404 and allow_missing:
                    return {}
                if resp.status >= 400:
                    raise ForumError(f"{method} {path} failed ({resp.status}): {body[:200]}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ForumError(f"{method} {path} failed: {exc}") from exc
        if not body:
            return {}
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise ForumError(f"{method} {path} returned invalid JSON") from exc

    async def create_topic(self, title: str, body: str) -> Tuple[int, int]:
        response = await self._request(
            "POST",
            "/posts.json",
            {"title": escape_non_ascii(title), "raw": escape_non_ascii(body), "category": self.category_id},
            rate_limit=True,
        )
        try:
            return int(response["topic_id"]), int(response["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ForumError("Topic creation response lacks topic_id/id") from exc

    async def create_post(self, topic_id: int, body: str) -> int:
        response = await self._request(
            "POST",
            "/posts.json",
            {"raw": escape_non_ascii(body), "topic_id": topic_id},
            rate_limit=True,
        )
        try:
            return int(response["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ForumError("Post creation response lacks id") from exc

    async def edit_post(self, post_id: int, body: str) -> None:
        await self._request(
            "PUT",
            f"/posts/{post_id}.json",
            {"post": {"raw": escape_non_ascii(body), "edit_reason": EDIT_REASON}},
            rate_limit=True,
        )

    async def get_user_info(self, user_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/admin/users/{user_id}.json")

    async def get_user_info_by_name(self, username: str) -> Dict[str, Any]:
        return await self._request("GET", f"/u/{quote(username)}.json", allow_missing=True)

    async def get_reaction_users(self, post_id: int) -> List[Dict[str, Any]]:
        response = await self._request("GET", f"/discourse-reactions/posts/{post_id}/reactions-users.json")
        reactions = response.get("reaction_users") if isinstance(response, dict) else None
        return reactions if isinstance(reactions, list) else []


__all__ = ["DiscourseClient", "EDIT_REASON", "ForumError", "NotifyResult", "escape_non_ascii"]
