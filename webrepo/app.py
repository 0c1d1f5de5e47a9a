"""HTTP surface: uploads, submissions, rejections and forum webhooks.

Published files under the repo directory are served by the fronting web server.
"""

from __future__ import annotations

import hmac
import json
import logging
import secrets
from typing import Optional

from aiohttp import web

from .config import WebRepoSettings
from .forum import DiscourseClient
from .ratelimit import ForumRateLimiter
from .submissions import SubmissionManager
from .validation import DuplicateVersionError, ValidationError
from .webhooks import SIGNATURE_HEADER, decode_event

logger = logging.getLogger("webrepo.app")

MAX_UPLOAD_BYTES = 64 * 1024 * 1024

SETTINGS_KEY = web.AppKey("settings", WebRepoSettings)
MANAGER_KEY = web.AppKey("manager", SubmissionManager)


def _admin_key_matches(settings: WebRepoSettings, key: object) -> bool:
    if not settings.admin_key or not isinstance(key, str):
        return False
    return hmac.compare_digest(settings.admin_key.encode("utf-8"), key.encode("utf-8"))


async def _read_json(request: web.Request) -> dict:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise web.HTTPBadRequest(text="Malformed JSON body.")
    if not isinstance(payload, dict):
        raise web.HTTPBadRequest(text="Expected a JSON object.")
    return payload


async def handle_upload(request: web.Request) -> web.Response:
    manager = request.app[MANAGER_KEY]
    form = await request.post()
    field = form.get("file")
    if not isinstance(field, web.FileField):
        return web.Response(status=500, text="Upload Failed.")
    filename = secrets.token_hex(16)
    manager.storage.store_upload(field.file.read(), filename)
    logger.info("Stored upload %s (%s)", filename, field.filename)
    return web.json_response({"filename": filename})


async def handle_submit(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    manager = request.app[MANAGER_KEY]
    payload = await _read_json(request)
    key = payload.pop("key", None)
    name = payload.get("name")
    if isinstance(name, str) and name in settings.reserved_names and not _admin_key_matches(settings, key):
        return web.Response(status=400, text="Reserved project name!")
    try:
        await manager.accept_submission(payload)
    except ValidationError as exc:
        logger.info("Submission refused: %s", exc.reason)
        return web.Response(status=400, text=exc.reason)
    except DuplicateVersionError as exc:
        logger.info("Submission refused: %s", exc)
        return web.Response(status=400, text=str(exc))
    return web.Response()


async def handle_reject(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    manager = request.app[MANAGER_KEY]
    payload = await _read_json(request)
    if not _admin_key_matches(settings, payload.get("key")):
        logger.warning("Failed authorisation on /api/reject")
        return web.Response(status=403)
    name = payload.get("name")
    version = payload.get("version")
    if not isinstance(name, str) or not isinstance(version, str):
        return web.Response(status=400, text="name and version are required.")
    zip_name = payload.get("zip_name")
    try:
        manager.reject(name, version, zip_name if isinstance(zip_name, str) else None)
    except ValidationError as exc:
        return web.Response(status=400, text=exc.reason)
    return web.Response()


async def handle_webhook(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    manager = request.app[MANAGER_KEY]
    body = await request.read()
    payload = decode_event(settings.webhook_secret, body, request.headers.get(SIGNATURE_HEADER))
    if payload is not None:
        await manager.on_webhook(payload)
    return web.Response()


def build_forum_client(settings: WebRepoSettings) -> DiscourseClient:
    return DiscourseClient(
        settings.forum_host,
        settings.forum_api_key,
        settings.forum_username,
        category_id=settings.forum_category_id,
        rate_limiter=ForumRateLimiter(settings.write_interval),
        timeout=settings.forum_timeout,
    )


def create_app(settings: WebRepoSettings, manager: Optional[SubmissionManager] = None) -> web.Application:
    if manager is None:
        manager = SubmissionManager(settings, build_forum_client(settings))
    settings.repo_dir.mkdir(parents=True, exist_ok=True)

    app = web.Application(client_max_size=MAX_UPLOAD_BYTES)
    app[SETTINGS_KEY] = settings
    app[MANAGER_KEY] = manager
    app.router.add_post("/api/upload", handle_upload)
    app.router.add_post("/api/submit", handle_submit)
    app.router.add_post("/api/reject", handle_reject)
    app.router.add_post("/api/webhook", handle_webhook)

    async def _close_forum(_app: web.Application) -> None:
        close = getattr(manager.forum, "close", None)
        if close is not None:
            await close()

    app.on_cleanup.append(_close_forum)
    return app


__all__ = ["MANAGER_KEY", "SETTINGS_KEY", "build_forum_client", "create_app"]
