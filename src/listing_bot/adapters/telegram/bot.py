"""
Telegram adapter — implements PlatformAdapter using aiogram 3.x.

Runs one bot identity from TELEGRAM_BOT_TOKEN in polling mode. The same
adapter can be used without polling just to send messages (the admin API
does this to tell hosts about review results).
"""

import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand, BotCommandScopeAllPrivateChats

from listing_bot.adapters.base import OutgoingMessage, PlatformAdapter
from listing_bot.adapters.telegram.handlers import router as handlers_router
from listing_bot.adapters.telegram.listing_handlers import close_uploader
from listing_bot.adapters.telegram.listing_handlers import router as listing_router
from listing_bot.config import settings

logger = logging.getLogger(__name__)

PARSE_MODES = {
    "html": ParseMode.HTML,
    "markdown": ParseMode.MARKDOWN_V2,
    "plain": None,
}


class TelegramAdapter(PlatformAdapter):
    """Telegram implementation of the platform adapter."""

    def __init__(self, token: str | None = None) -> None:
        token = token or settings.telegram_bot_token
        if not token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")
        self.bot = Bot(
            token=token,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
        self.dp = Dispatcher()
        self._register_routers()

    def _register_routers(self) -> None:
        """Attach all handler routers to the dispatcher."""
        self.dp.include_router(handlers_router)
        self.dp.include_router(listing_router)

    async def send_message(self, message: OutgoingMessage) -> None:
        """Send a text message via Telegram."""
        await self.bot.send_message(
            chat_id=int(message.chat_id),
            text=message.text,
            parse_mode=PARSE_MODES.get(message.format_type),
        )

    async def start(self) -> None:
        """Register the command menu and start polling for updates."""
        logger.info("Starting Telegram bot (polling mode)...")
        me = await self.bot.me()
        logger.info("Bot identity: @%s (id=%d)", me.username, me.id)

        await self._set_commands()
        await self.dp.start_polling(self.bot)

    async def _set_commands(self) -> None:
        """Register the command menu for private chats."""
        commands = [
            BotCommand(command="newlisting", description="List a new property"),
            BotCommand(command="mylistings", description="My listings"),
            BotCommand(command="editlisting", description="Edit a listing"),
            BotCommand(command="help", description="How to use the bot"),
        ]

        try:
            await self.bot.set_my_commands(commands)
            await self.bot.set_my_commands(commands, scope=BotCommandScopeAllPrivateChats())
            logger.info("Command menu registered")
        except Exception as e:
            logger.warning("Failed to set bot commands: %s", e)

    async def stop(self) -> None:
        """Shut down the bot session and the photo uploader."""
        logger.info("Stopping Telegram bot...")
        await close_uploader()
        await self.bot.session.close()
