"""Runtime settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet

from .utils import float_from_env, int_from_env, parse_name_list, path_from_env

PACKAGE_DIR = Path(__file__).resolve().parent
BASE_DIR = PACKAGE_DIR.parent


@dataclass(frozen=True)
class WebRepoSettings:
    host: str = "codeawebrepo.co.uk"
    repo_dir: Path = BASE_DIR / "repo"
    port: int = 80
    admin_key: str = ""
    reserved_names: FrozenSet[str] = field(default_factory=frozenset)
    latest_project: str = "WebRepo"
    forum_host: str = "talk.codea.io"
    forum_api_key: str = ""
    forum_username: str = ""
    forum_category_id: int = 20
    webhook_secret: str = ""
    admin_group: str = "moonbase_admin"
    approval_reaction: str = "rocket"
    write_interval: float = 5.0
    forum_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "WebRepoSettings":
        repo_dir = path_from_env("WEBREPO_REPO_DIR") or Path("repo")
        if not repo_dir.is_absolute():
            repo_dir = (BASE_DIR / repo_dir).resolve()
        write_interval = float_from_env("DISCOURSE_WRITE_INTERVAL", 5.0)
        if write_interval < 0:
            raise ValueError(f"DISCOURSE_WRITE_INTERVAL must be >= 0, got: {write_interval}")
        return cls(
            host=os.getenv("WEBREPO_HOST", "codeawebrepo.co.uk").strip(),
            repo_dir=repo_dir,
            port=int_from_env("WEBREPO_PORT", 80),
            admin_key=os.getenv("WEBREPO_ADMIN_KEY", ""),
            reserved_names=frozenset(parse_name_list(os.getenv("WEBREPO_RESERVED_NAMES", ""))),
            latest_project=os.getenv("WEBREPO_LATEST_PROJECT", "WebRepo").strip(),
            forum_host=os.getenv("DISCOURSE_HOST", "talk.codea.io").strip(),
            forum_api_key=os.getenv("DISCOURSE_API_KEY", ""),
            forum_username=os.getenv("DISCOURSE_USERNAME", ""),
            forum_category_id=int_from_env("DISCOURSE_CATEGORY_ID", 20),
            webhook_secret=os.getenv("DISCOURSE_WEBHOOK_SECRET", ""),
            admin_group=os.getenv("DISCOURSE_ADMIN_GROUP", "moonbase_admin").strip(),
            approval_reaction=os.getenv("DISCOURSE_APPROVAL_REACTION", "rocket").strip(),
            write_interval=write_interval,
            forum_timeout=float_from_env("DISCOURSE_TIMEOUT", 30.0),
        )

    @property
    def forum_topic_base(self) -> str:
        return f"https://{self.forum_host}/t"


__all__ = ["BASE_DIR", "WebRepoSettings"]
