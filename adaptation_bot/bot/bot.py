"""
Telegram bot initialization and configuration.
"""

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from adaptation_bot.config import Settings


def create_bot(settings: Settings) -> Bot:
    """Create configured Telegram bot instance."""
    return Bot(
        token=settings.telegram_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher() -> Dispatcher:
    """
    Create dispatcher.

    Order form state lives in the conversation engine's session store,
    so aiogram FSM storage is left at its default.
    """
    return Dispatcher()
