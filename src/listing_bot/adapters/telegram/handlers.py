"""
Telegram message handlers for general commands.

Each handler converts Telegram-specific objects into platform-agnostic
data and delegates to core logic. Listing wizard handlers live in
listing_handlers.py.
"""

import logging

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from listing_bot.db.repositories import get_or_create_user
from listing_bot.db.session import async_session_factory

logger = logging.getLogger(__name__)
router = Router(name="telegram_handlers")

HELP_TEXT = (
    "<b>Commands:</b>\n"
    "/newlisting — list a new property\n"
    "/mylistings — your listings and their review status\n"
    "/editlisting &lt;id&gt; — edit one of your listings\n"
    "/help — this message\n\n"
    "A new listing has four steps: basic info, details, contact and photos "
    "(at least 3). Your progress is saved as a draft, so you can come back "
    "to it later with /newlisting.\n"
    "New listings are reviewed before they are published."
)


@router.message(CommandStart())
async def handle_start(message: Message) -> None:
    """
    Handle /start — register the user and mark the bot as started.

    Telegram only lets the bot message users who have started it, which
    the admin API relies on to report review results.
    """
    tg_user = message.from_user
    if tg_user is None:
        return

    async with async_session_factory() as session:
        user = await get_or_create_user(
            session, telegram_id=tg_user.id, full_name=tg_user.full_name or "Unknown"
        )
        user.is_bot_started = True
        await session.commit()

    await message.answer(
        "👋 <b>Welcome!</b>\n\n"
        "I help you list rental properties.\n\n"
        f"{HELP_TEXT}"
    )


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    await message.answer(HELP_TEXT)
