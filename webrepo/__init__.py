"""Package review repository driven by a Discourse forum."""

from . import config, forum, manifest, models, ratelimit, storage, submissions, utils, validation, webhooks  # noqa: F401

__all__ = [
    "config",
    "forum",
    "manifest",
    "models",
    "ratelimit",
    "storage",
    "submissions",
    "utils",
    "validation",
    "webhooks",
]
