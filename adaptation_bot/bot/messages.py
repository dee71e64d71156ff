"""
Rendering of engine replies into Telegram messages.
"""

import html
from typing import Optional

from aiogram.types import InlineKeyboardMarkup

from adaptation_bot.bot.keyboards.order import (
    get_confirmation_keyboard,
    get_currency_keyboard,
    get_item_count_keyboard,
    get_localization_keyboard,
    get_payment_keyboard,
)
from adaptation_bot.core.conversation.replies import Prompt, Reply


def format_order_progress(item_number: int, item_count: int) -> str:
    """Format per-item progress indicator."""
    filled = "●" * item_number
    empty = "○" * (item_count - item_number)
    return f"[{filled}{empty}] Адаптация {item_number} из {item_count}"


def render_reply(reply: Reply) -> tuple[str, Optional[InlineKeyboardMarkup]]:
    """Text and keyboard for a reply."""
    data = reply.data
    prompt = reply.prompt
    text = ""
    markup = None

    if prompt == Prompt.ENTER_ORDER_NUMBER:
        text = (
            "👋 Добро пожаловать! Я помогу оформить заказ и оплатить его криптовалютой.\n\n"
            "📋 Для начала введите номер вашего заказа:"
        )

    elif prompt == Prompt.SELECT_ITEM_COUNT:
        text = (
            f"🔢 Номер заказа: {data['order_number']}\n\n"
            "🎬 Сколько адаптаций нужно?"
        )
        markup = get_item_count_keyboard(data["options"])

    elif prompt == Prompt.SELECT_LOCALIZATION:
        text = (
            f"{format_order_progress(data['item_number'], data['item_count'])}\n\n"
            "🌍 Выберите локализацию:"
        )
        markup = get_localization_keyboard(data["options"])

    elif prompt == Prompt.SELECT_CURRENCY:
        text = (
            f"{format_order_progress(data['item_number'], data['item_count'])}\n\n"
            f"🌍 Локализация: {data['localization']}\n\n"
            "💱 Выберите валюту:"
        )
        markup = get_currency_keyboard(data["options"])

    elif prompt == Prompt.ENTER_BANK:
        text = (
            f"✅ Адаптации:\n{data['items']}\n\n"
            "🏦 Введите название банка:"
        )

    elif prompt == Prompt.ENTER_WINNING_AMOUNT:
        text = (
            f"🏦 Банк: {html.escape(data['bank'] or '')}\n\n"
            "🎉 Введите сумму выигрыша (только цифры, например: 1000):"
        )

    elif prompt == Prompt.ENTER_ADDITIONAL_INFO:
        text = (
            f"🎉 Сумма выигрыша: {data['winning_amount']}\n\n"
            "🔤 Введите текст надписи\n"
            "(или отправьте «нет», если надпись не нужна):"
        )

    elif prompt == Prompt.CONFIRM_ORDER:
        text = f"{data['summary']}\n\n➡️ Всё верно? Создать счёт для оплаты?"
        markup = get_confirmation_keyboard()

    elif prompt == Prompt.PAY_INVOICE:
        text = (
            "💳 <b>Счёт для оплаты создан!</b>\n\n"
            f"💰 Сумма: {data['amount']} USDT\n"
            f"📝 Заказ #{data['order_number']}\n\n"
            f"⏰ Счёт действителен {data.get('expires_in_minutes', 15)} мин. "
            "Оплата будет проверена автоматически."
        )
        markup = get_payment_keyboard(data["invoice_id"], data.get("pay_url"))

    elif prompt == Prompt.PAYMENT_PENDING:
        text = "⏳ Оплата ещё не поступила. Проверьте чуть позже."
        if data.get("invoice_id"):
            markup = get_payment_keyboard(data["invoice_id"])

    elif prompt == Prompt.GATEWAY_UNAVAILABLE:
        text = "⚠️ Платёжная система временно недоступна."
        if data.get("invoice_id"):
            markup = get_payment_keyboard(data["invoice_id"])

    elif prompt == Prompt.PAYMENT_EXPIRED:
        text = "⌛ Счёт больше не действителен. Чтобы оформить заказ заново, отправьте /start"

    elif prompt == Prompt.PAYMENT_COMPLETED:
        text = "✅ Оплата подтверждена, заказ передан в работу."

    elif prompt == Prompt.PAYMENT_FAILED:
        text = (
            "⚠️ Оплату не удалось обработать автоматически.\n"
            f"Счёт: {data.get('invoice_id')}. Менеджер свяжется с вами."
        )

    elif prompt == Prompt.RECOVER_ORDER_NUMBER:
        text = (
            "🔎 Мы нашли оплаченный счёт, но данные заказа потерялись.\n\n"
            f"🧾 Счёт: {data.get('invoice_id')}\n"
            "📋 Введите номер вашего заказа, чтобы мы его восстановили:"
        )

    elif prompt == Prompt.ORDER_CANCELLED:
        text = "❌ Заказ отменён.\n\nЧтобы начать заново, отправьте /start"

    elif prompt == Prompt.NO_SESSION:
        text = "Чтобы оформить заказ, отправьте /start"

    if reply.error:
        text = f"❌ {reply.error}\n\n{text}" if text else f"❌ {reply.error}"

    return text, markup
