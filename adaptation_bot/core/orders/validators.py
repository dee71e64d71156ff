"""
Validators for order data.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from adaptation_bot.core.orders.models import NO_INSCRIPTION, Catalog


class OrderNumberValidator:
    """Validate order numbers."""

    ORDER_NUMBER_PATTERN = re.compile(r'^[0-9]+$')

    @classmethod
    def validate(cls, order_number: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate order number.

        Returns:
            Tuple of (is_valid, order_number, error_message)
        """
        order_number = order_number.strip()

        if not cls.ORDER_NUMBER_PATTERN.match(order_number):
            return False, None, (
                "Номер заказа должен состоять только из цифр.\n"
                "Например: 12345"
            )

        return True, order_number, None


class ItemCountValidator:
    """Validate number of adaptations against the offered options."""

    @classmethod
    def validate(cls, value: str, catalog: Catalog) -> Tuple[bool, Optional[int], Optional[str]]:
        """
        Validate item count choice.

        Returns:
            Tuple of (is_valid, item_count, error_message)
        """
        try:
            count = int(value.strip())
        except ValueError:
            count = None

        if count not in catalog.item_counts:
            return False, None, "Пожалуйста, выберите количество из предложенных вариантов"

        return True, count, None


class LocalizationValidator:
    """Validate localization choice."""

    @classmethod
    def validate(cls, value: str, catalog: Catalog) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate localization id.

        Returns:
            Tuple of (is_valid, localization_id, error_message)
        """
        localization = catalog.get_localization(value.strip())
        if localization is None:
            return False, None, "Пожалуйста, выберите локализацию из предложенных"
        return True, localization.id, None


class CurrencyValidator:
    """Validate currency choice."""

    @classmethod
    def validate(cls, value: str, catalog: Catalog) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate currency code.

        Returns:
            Tuple of (is_valid, currency, error_message)
        """
        currency = value.strip().upper()
        if currency not in catalog.currencies:
            return False, None, "Пожалуйста, выберите валюту из предложенных"
        return True, currency, None


class BankValidator:
    """Validate bank name."""

    MIN_LENGTH = 2

    @classmethod
    def validate(cls, bank: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate bank name.

        Returns:
            Tuple of (is_valid, bank, error_message)
        """
        bank = bank.strip()

        if not bank:
            return False, None, "Название банка не может быть пустым"

        if len(bank) < cls.MIN_LENGTH:
            return False, None, "Пожалуйста, введите корректное название банка"

        return True, bank, None


class WinningAmountValidator:
    """Validate winning amount."""

    MAX_AMOUNT = Decimal("1000000")

    @classmethod
    def validate(cls, amount_str: str) -> Tuple[bool, Optional[Decimal], Optional[str]]:
        """
        Validate winning amount.

        Returns:
            Tuple of (is_valid, amount, error_message)
        """
        amount_str = amount_str.strip().replace(',', '.')

        if not amount_str:
            return False, None, "Сумма не может быть пустой"

        try:
            amount = Decimal(amount_str)
        except InvalidOperation:
            return False, None, "Не удалось распознать сумму. Введите число, например: 1000"

        if not amount.is_finite():
            return False, None, "Не удалось распознать сумму. Введите число, например: 1000"

        if amount <= 0:
            return False, None, "Сумма должна быть больше нуля"

        if amount > cls.MAX_AMOUNT:
            return False, None, f"Максимальная сумма: {cls.MAX_AMOUNT}"

        return True, amount, None


class AdditionalInfoValidator:
    """Normalize additional info / inscription text."""

    NO_TOKENS = {"no", "нет"}

    @classmethod
    def validate(cls, text: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Normalize inscription. Never rejects.

        Returns:
            Tuple of (is_valid, additional_info, error_message)
        """
        text = text.strip()

        if not text or text.lower() in cls.NO_TOKENS:
            return True, NO_INSCRIPTION, None

        return True, text, None
