"""
Order form handlers.
Pass user input to the conversation engine and render its replies.
"""

import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, Message

from adaptation_bot.bot.keyboards.order import parse_choice_data
from adaptation_bot.bot.messages import render_reply
from adaptation_bot.core.conversation.engine import ConversationEngine
from adaptation_bot.core.conversation.replies import Prompt

logger = logging.getLogger(__name__)

router = Router(name="orders")


# Replies shown as a popup instead of replacing the message
ALERT_PROMPTS = {Prompt.PAYMENT_PENDING, Prompt.GATEWAY_UNAVAILABLE}


@router.callback_query(F.data.startswith("order:"))
async def handle_order_choice(callback: CallbackQuery, engine: ConversationEngine) -> None:
    """Handle any order form button."""
    parsed = parse_choice_data(callback.data)
    if parsed is None:
        await callback.answer("Неизвестная команда", show_alert=True)
        return

    kind, value = parsed
    reply = await engine.handle_choice(
        callback.from_user.id, callback.message.chat.id, kind, value
    )
    text, markup = render_reply(reply)

    if reply.prompt in ALERT_PROMPTS:
        await callback.answer(text, show_alert=True)
        return

    await callback.answer()
    try:
        await callback.message.edit_text(text, reply_markup=markup)
    except TelegramBadRequest as e:
        # Message too old to edit or unchanged
        logger.debug(f"Could not edit message, sending a new one: {e}")
        await callback.message.answer(text, reply_markup=markup)


@router.message(F.text & ~F.text.startswith("/"))
async def handle_order_text(message: Message, engine: ConversationEngine) -> None:
    """Handle free text input."""
    reply = await engine.handle_text(message.from_user.id, message.text)
    text, markup = render_reply(reply)
    await message.answer(text, reply_markup=markup)
