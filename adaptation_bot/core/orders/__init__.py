"""
Orders module for the adaptation bot.
Handles order data, pricing and input validation.
"""

from adaptation_bot.core.orders.models import (
    Catalog,
    DEFAULT_CATALOG,
    Localization,
    NO_INSCRIPTION,
    Order,
    OrderItem,
    compute_total,
)
from adaptation_bot.core.orders.states import OrderState
from adaptation_bot.core.orders.validators import (
    AdditionalInfoValidator,
    BankValidator,
    CurrencyValidator,
    ItemCountValidator,
    LocalizationValidator,
    OrderNumberValidator,
    WinningAmountValidator,
)

__all__ = [
    # Models
    "Catalog",
    "DEFAULT_CATALOG",
    "Localization",
    "NO_INSCRIPTION",
    "Order",
    "OrderItem",
    "compute_total",
    # States
    "OrderState",
    # Validators
    "AdditionalInfoValidator",
    "BankValidator",
    "CurrencyValidator",
    "ItemCountValidator",
    "LocalizationValidator",
    "OrderNumberValidator",
    "WinningAmountValidator",
]
