"""Verification and decoding of Discourse webhook deliveries."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("webrepo.webhooks")

SIGNATURE_HEADER = "X-Discourse-Event-Signature"
SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Constant-time check of ``signature`` against the HMAC of ``body``."""
    if not secret or not signature:
        return False
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def decode_event(secret: str, body: bytes, signature: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the parsed payload of an authentic delivery, otherwise None."""
    if not verify_signature(secret, body, signature):
        logger.debug("Dropping webhook with missing or mismatched signature")
        return None
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Dropping signed webhook with an undecodable body")
        return None
    if not isinstance(payload, dict):
        return None
    return payload


__all__ = ["SIGNATURE_HEADER", "compute_signature", "decode_event", "verify_signature"]
