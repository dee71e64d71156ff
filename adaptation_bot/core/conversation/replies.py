"""
Replies produced by the conversation engine.
The bot layer turns them into messages and keyboards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Prompt(str, Enum):
    """What the user should be shown next."""
    ENTER_ORDER_NUMBER = "enter_order_number"
    SELECT_ITEM_COUNT = "select_item_count"
    SELECT_LOCALIZATION = "select_localization"
    SELECT_CURRENCY = "select_currency"
    ENTER_BANK = "enter_bank"
    ENTER_WINNING_AMOUNT = "enter_winning_amount"
    ENTER_ADDITIONAL_INFO = "enter_additional_info"
    CONFIRM_ORDER = "confirm_order"
    PAY_INVOICE = "pay_invoice"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_EXPIRED = "payment_expired"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_FAILED = "payment_failed"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    RECOVER_ORDER_NUMBER = "recover_order_number"
    ORDER_CANCELLED = "order_cancelled"
    NO_SESSION = "no_session"


class ChoiceKind(str, Enum):
    """Kinds of button input."""
    ITEM_COUNT = "count"
    LOCALIZATION = "loc"
    CURRENCY = "cur"
    CONFIRM = "confirm"
    CHECK_PAYMENT = "check"
    CANCEL_PAYMENT = "cancel_payment"


CONFIRM_YES = "yes"
CONFIRM_NO = "no"


@dataclass
class Reply:
    """Prompt selection plus the data needed to render it."""
    prompt: Prompt
    error: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.error is not None
