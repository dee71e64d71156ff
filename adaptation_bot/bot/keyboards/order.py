"""
Inline keyboards for order flow.
"""

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from adaptation_bot.core.conversation.replies import CONFIRM_NO, CONFIRM_YES, ChoiceKind


def choice_data(kind: ChoiceKind, value: str = "") -> str:
    """Callback data for a choice button."""
    return f"order:{kind.value}:{value}"


def parse_choice_data(data: str) -> Optional[tuple[ChoiceKind, str]]:
    """Inverse of ``choice_data``; None for foreign callback data."""
    parts = data.split(":", 2)
    if len(parts) != 3 or parts[0] != "order":
        return None
    try:
        kind = ChoiceKind(parts[1])
    except ValueError:
        return None
    return kind, parts[2]


def get_item_count_keyboard(options: list[int]) -> InlineKeyboardMarkup:
    """Keyboard for number of adaptations."""
    builder = InlineKeyboardBuilder()
    for count in options:
        builder.button(text=str(count), callback_data=choice_data(ChoiceKind.ITEM_COUNT, str(count)))
    builder.adjust(3)
    builder.row(
        InlineKeyboardButton(text="❌ Отмена", callback_data=choice_data(ChoiceKind.CANCEL_PAYMENT)),
    )
    return builder.as_markup()


def get_localization_keyboard(options: list[tuple[str, str]]) -> InlineKeyboardMarkup:
    """Keyboard for localization of one adaptation."""
    builder = InlineKeyboardBuilder()
    for localization_id, name in options:
        builder.button(text=name, callback_data=choice_data(ChoiceKind.LOCALIZATION, localization_id))
    builder.adjust(2)
    return builder.as_markup()


def get_currency_keyboard(options: list[str]) -> InlineKeyboardMarkup:
    """Keyboard for currency of one adaptation."""
    builder = InlineKeyboardBuilder()
    for currency in options:
        builder.button(text=currency, callback_data=choice_data(ChoiceKind.CURRENCY, currency))
    builder.adjust(3)
    return builder.as_markup()


def get_confirmation_keyboard() -> InlineKeyboardMarkup:
    """Keyboard for final order confirmation."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text="✅ Да, создать счёт",
            callback_data=choice_data(ChoiceKind.CONFIRM, CONFIRM_YES),
        ),
    )
    builder.row(
        InlineKeyboardButton(
            text="❌ Нет, начать заново",
            callback_data=choice_data(ChoiceKind.CONFIRM, CONFIRM_NO),
        ),
    )
    return builder.as_markup()


def get_payment_keyboard(invoice_id: str, pay_url: Optional[str] = None) -> InlineKeyboardMarkup:
    """Keyboard under the invoice message."""
    builder = InlineKeyboardBuilder()
    if pay_url:
        builder.row(InlineKeyboardButton(text="💳 Оплатить", url=pay_url))
    builder.row(
        InlineKeyboardButton(
            text="✅ Проверить оплату",
            callback_data=choice_data(ChoiceKind.CHECK_PAYMENT, invoice_id),
        ),
    )
    builder.row(
        InlineKeyboardButton(
            text="❌ Отменить оплату",
            callback_data=choice_data(ChoiceKind.CANCEL_PAYMENT),
        ),
    )
    return builder.as_markup()
