"""
Main entry point for the property listing bot.

Run with:  python -m listing_bot
"""

import asyncio
import logging

from listing_bot.config import settings


def setup_logging() -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if not settings.debug:
        logging.getLogger("aiogram.event").setLevel(logging.WARNING)


async def main() -> None:
    """Initialize and start the bot."""
    setup_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting listing bot...")
    logger.info("Database: %s@%s:%s/%s",
                settings.postgres_user, settings.postgres_host,
                settings.postgres_port, settings.postgres_db)
    if not settings.storage_url:
        logger.warning("STORAGE_URL is not set, photo uploads will fail")

    # Import adapter here to avoid loading aiogram before logging is configured
    from listing_bot.adapters.telegram.bot import TelegramAdapter

    adapter = TelegramAdapter()

    try:
        await adapter.start()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        await adapter.stop()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
