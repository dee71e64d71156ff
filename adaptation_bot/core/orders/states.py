"""
Conversation states for order collection.
"""

from enum import Enum


class OrderState(str, Enum):
    """States for order collection flow."""

    # Order identity
    AWAITING_ORDER_NUMBER = "awaiting_order_number"
    SELECTING_ITEM_COUNT = "selecting_item_count"

    # Per-item loop
    SELECTING_LOCALIZATION = "selecting_localization"
    SELECTING_CURRENCY = "selecting_currency"

    # Order details
    ENTERING_BANK = "entering_bank"
    ENTERING_WINNING_AMOUNT = "entering_winning_amount"
    ENTERING_ADDITIONAL_INFO = "entering_additional_info"

    # Confirmation and payment
    CONFIRMATION = "confirmation"
    AWAITING_PAYMENT = "awaiting_payment"

    # Paid invoice with no ledger entry
    RECOVERING_ORDER_NUMBER = "recovering_order_number"

    # Terminal
    COMPLETED = "completed"
    CANCELLED = "cancelled"
