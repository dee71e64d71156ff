"""
Telegram implementation of the notifier.
"""

import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from adaptation_bot.core.errors import NotifyError
from adaptation_bot.core.notifier import Notifier

logger = logging.getLogger(__name__)


class TelegramNotifier(Notifier):
    """Sends messages through the bot."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def _deliver(self, user_id: int, text: str) -> None:
        try:
            await self.bot.send_message(chat_id=user_id, text=text)
        except TelegramAPIError as e:
            raise NotifyError(f"Telegram rejected message to {user_id}: {e}") from e

    async def send_message(self, user_id: int, text: str) -> bool:
        try:
            await self._deliver(user_id, text)
        except NotifyError as e:
            logger.error(str(e), exc_info=True)
            return False
        logger.debug(f"Message sent to {user_id}")
        return True
