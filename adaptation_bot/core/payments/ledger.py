"""
In-memory index of invoices awaiting confirmation.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from adaptation_bot.core.orders import Order
from adaptation_bot.core.scheduler import utc_now

logger = logging.getLogger(__name__)


class PaymentStatus(str, Enum):
    """Local lifecycle of an invoice."""
    PENDING = "pending"
    PAID = "paid"                # paid, completion in progress
    RESOLVED = "resolved"        # task created, user notified
    EXPIRED = "expired"
    ABANDONED = "abandoned"


# One-way transitions; nothing leads back to PENDING.
TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({
        PaymentStatus.PAID, PaymentStatus.EXPIRED, PaymentStatus.ABANDONED,
    }),
    PaymentStatus.PAID: frozenset({PaymentStatus.RESOLVED, PaymentStatus.ABANDONED}),
    PaymentStatus.RESOLVED: frozenset(),
    PaymentStatus.EXPIRED: frozenset(),
    PaymentStatus.ABANDONED: frozenset(),
}


@dataclass
class PendingPayment:
    """Invoice issued for an order and not settled yet."""
    invoice_id: str
    order_snapshot: Order
    user_id: int
    chat_id: int
    amount: Decimal
    pay_url: str = ""
    created_at: datetime = field(default_factory=utc_now)
    checked_at: Optional[datetime] = None
    attempts: int = 0
    status: PaymentStatus = PaymentStatus.PENDING
    needs_review: bool = False
    reason: Optional[str] = None

    def __post_init__(self):
        # Detach from the live session order
        self.order_snapshot = self.order_snapshot.snapshot()

    @property
    def order_number(self) -> str:
        return self.order_snapshot.order_number or "—"

    def record_check(self, now: datetime) -> None:
        """Count a gateway poll."""
        self.attempts += 1
        self.checked_at = now

    def transition(self, status: PaymentStatus) -> None:
        """Move to a new status, rejecting moves the lifecycle does not allow."""
        if status not in TRANSITIONS[self.status]:
            raise ValueError(
                f"Invoice {self.invoice_id}: cannot move from {self.status.value} to {status.value}"
            )
        self.status = status


class PaymentLedger:
    """
    Pending invoices keyed by invoice id.

    Also keeps entries flagged for manual review and a bounded set of
    invoice ids already turned into tasks.
    """

    def __init__(self, resolved_capacity: int = 1000):
        self._entries: dict[str, PendingPayment] = {}
        self._review: dict[str, PendingPayment] = {}
        self._resolved: OrderedDict[str, None] = OrderedDict()
        self.resolved_capacity = resolved_capacity

    def put(self, invoice_id: str, record: PendingPayment, replace: bool = False) -> PendingPayment:
        """
        Insert a fresh record with zero attempts.

        An existing entry for the same invoice is kept as is unless
        ``replace`` is set.

        Returns:
            The entry stored under ``invoice_id``
        """
        existing = self._entries.get(invoice_id)
        if existing is not None and not replace:
            logger.warning(f"Invoice {invoice_id} already in ledger, keeping existing entry")
            return existing

        record.invoice_id = invoice_id
        record.attempts = 0
        record.checked_at = None
        self._entries[invoice_id] = record
        logger.info(f"Invoice {invoice_id} registered for user {record.user_id} ({record.amount})")
        return record

    def get(self, invoice_id: str) -> Optional[PendingPayment]:
        return self._entries.get(invoice_id)

    def remove(self, invoice_id: str) -> Optional[PendingPayment]:
        return self._entries.pop(invoice_id, None)

    def entries(self) -> list[PendingPayment]:
        """Snapshot of all pending entries."""
        return [self._entries[key] for key in list(self._entries) if key in self._entries]

    def list_due_for_check(self, now: datetime, debounce: float) -> list[PendingPayment]:
        """Pending entries never checked or last checked more than ``debounce`` seconds ago."""
        cutoff = now - timedelta(seconds=debounce)
        due = []
        for invoice_id in list(self._entries):
            entry = self._entries.get(invoice_id)
            if entry is None or entry.status != PaymentStatus.PENDING:
                continue
            if entry.checked_at is None or entry.checked_at <= cutoff:
                due.append(entry)
        return due

    def find_by_user(self, user_id: int) -> list[PendingPayment]:
        return [entry for entry in self.entries() if entry.user_id == user_id]

    # Review list

    def flag_for_review(self, entry: PendingPayment, reason: str) -> None:
        """Move entry out of the pending index into the review list."""
        entry.needs_review = True
        entry.reason = reason
        self._entries.pop(entry.invoice_id, None)
        self._review[entry.invoice_id] = entry
        logger.warning(f"Invoice {entry.invoice_id} (order {entry.order_number}) flagged for review: {reason}")

    def needs_review(self) -> list[PendingPayment]:
        return list(self._review.values())

    def get_review(self, invoice_id: str) -> Optional[PendingPayment]:
        return self._review.get(invoice_id)

    def clear_review(self, invoice_id: str) -> Optional[PendingPayment]:
        """Operator has handled the entry manually."""
        return self._review.pop(invoice_id, None)

    # Resolved invoices

    def mark_resolved(self, invoice_id: str) -> None:
        self._resolved[invoice_id] = None
        self._resolved.move_to_end(invoice_id)
        while len(self._resolved) > self.resolved_capacity:
            self._resolved.popitem(last=False)

    def is_resolved(self, invoice_id: str) -> bool:
        return invoice_id in self._resolved

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, invoice_id: object) -> bool:
        return invoice_id in self._entries
