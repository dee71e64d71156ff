"""
Start, help and cancel command handlers.
"""

import logging

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message, ReplyKeyboardRemove

from adaptation_bot.bot.messages import render_reply
from adaptation_bot.core.conversation.engine import ConversationEngine

logger = logging.getLogger(__name__)

router = Router(name="start")


HELP_MESSAGE = """🤖 <b>Как оформить заказ:</b>

1. Отправьте /start и введите номер заказа
2. Выберите количество адаптаций и для каждой — локализацию и валюту
3. Укажите банк, сумму выигрыша и текст надписи
4. Проверьте заказ и оплатите счёт в @CryptoBot

Оплата проверяется автоматически, после неё заказ сразу уходит в работу.
Когда видео будет готово, я пришлю ссылку.

<b>Команды:</b>
/start — начать новый заказ
/cancel — отменить заказ
/help — эта справка"""


@router.message(CommandStart())
async def handle_start(message: Message, engine: ConversationEngine) -> None:
    """Handle /start command."""
    logger.info(f"User start {message.from_user.id}")
    reply = engine.start(message.from_user.id, message.chat.id)
    text, _ = render_reply(reply)
    await message.answer(text, reply_markup=ReplyKeyboardRemove())


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    """Handle /help command."""
    await message.answer(HELP_MESSAGE)


@router.message(Command("cancel"))
async def handle_cancel(message: Message, engine: ConversationEngine) -> None:
    """Handle /cancel command."""
    reply = await engine.cancel(message.from_user.id)
    text, markup = render_reply(reply)
    await message.answer(text, reply_markup=markup)
