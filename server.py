import logging
import os

from aiohttp import web
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("WEBREPO_LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("webrepo")

from webrepo.app import create_app  # noqa: E402
from webrepo.config import WebRepoSettings  # noqa: E402


def main() -> None:
    settings = WebRepoSettings.from_env()
    if not settings.webhook_secret:
        logger.warning("DISCOURSE_WEBHOOK_SECRET is not set; forum approvals are disabled.")
    if not settings.forum_api_key:
        logger.warning("DISCOURSE_API_KEY is not set; forum calls will fail.")
    logger.info("Serving %s on port %s", settings.repo_dir, settings.port)
    web.run_app(create_app(settings), port=settings.port, print=None)


if __name__ == "__main__":
    main()
