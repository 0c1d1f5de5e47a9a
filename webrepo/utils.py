"""Utility helpers for the web repo service."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Set

logger = logging.getLogger("webrepo.utils")


def int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%s. Falling back to %s.", name, raw, default)
        return default


def float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid float for %s=%s. Falling back to %s.", name, raw, default)
        return default


def path_from_env(name: str) -> Optional[Path]:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    return Path(value).expanduser()


def parse_name_list(raw: str) -> Set[str]:
    names: Set[str] = set()
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if chunk:
            names.add(chunk)
    return names


def normalize_quotes(text: str) -> str:
    """Replace typographic quotes with their plain ASCII counterparts."""
    return (
        text.replace("‘", "'")
        .replace("’", "'")
        .replace("“", '"')
        .replace("”", '"')
    )


def is_ascii(text: str) -> bool:
    return all(ord(ch) <= 127 for ch in text)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "float_from_env",
    "int_from_env",
    "is_ascii",
    "normalize_quotes",
    "parse_name_list",
    "path_from_env",
    "utc_now",
]
