"""
Payment operations requested from the conversation: issuing invoices,
manual payment checks, orphan recovery and cancellation.
"""

import logging
from decimal import Decimal
from enum import Enum

from adaptation_bot.core.errors import OrphanPaymentError, ValidationError
from adaptation_bot.core.orders import Order, compute_total
from adaptation_bot.core.payments.ledger import PaymentLedger, PendingPayment
from adaptation_bot.core.payments.reconciler import PaymentReconciler
from adaptation_bot.core.scheduler import Clock, utc_now
from adaptation_bot.integrations.payments.base import InvoiceGateway, InvoiceStatus

logger = logging.getLogger(__name__)


class PaymentCheckResult(str, Enum):
    """Outcome of a manual payment check."""
    RESOLVED = "resolved"
    PENDING = "pending"
    EXPIRED = "expired"
    FAILED = "failed"


class PaymentService:
    """Boundary between the conversation engine and the reconciler."""

    def __init__(
        self,
        ledger: PaymentLedger,
        gateway: InvoiceGateway,
        reconciler: PaymentReconciler,
        unit_price: Decimal,
        fee_multiplier: Decimal,
        invoice_expires_in: int = 900,
        clock: Clock = utc_now,
    ):
        self.ledger = ledger
        self.gateway = gateway
        self.reconciler = reconciler
        self.unit_price = unit_price
        self.fee_multiplier = fee_multiplier
        self.invoice_expires_in = invoice_expires_in
        self.clock = clock

    def quote(self, order: Order) -> Decimal:
        """Price shown to the user before confirming."""
        return compute_total(order, self.unit_price, self.fee_multiplier)

    async def request_invoice(self, order: Order, user_id: int, chat_id: int) -> PendingPayment:
        """
        Issue invoice for the order and register it in the ledger.

        Raises:
            GatewayError: if the gateway could not create the invoice
        """
        snapshot = order.snapshot()
        amount = compute_total(snapshot, self.unit_price, self.fee_multiplier)

        invoice = await self.gateway.create_invoice(
            amount,
            f"Заказ адаптации видео #{snapshot.order_number}",
            snapshot.order_number,
        )

        entry = PendingPayment(
            invoice_id=invoice.invoice_id,
            order_snapshot=snapshot,
            user_id=user_id,
            chat_id=chat_id,
            amount=amount,
            pay_url=invoice.pay_url,
            created_at=self.clock(),
        )
        return self.ledger.put(invoice.invoice_id, entry)

    async def check_payment(self, invoice_id: str) -> PaymentCheckResult:
        """
        Manual "check payment" request.

        Raises:
            OrphanPaymentError: paid invoice unknown to the ledger
            GatewayError: if the gateway could not be reached
        """
        entry = self.ledger.get(invoice_id)

        if entry is None:
            if self.ledger.is_resolved(invoice_id):
                return PaymentCheckResult.RESOLVED
            if self.ledger.get_review(invoice_id) is not None:
                # Paid, but the task is left to the operator
                logger.info(f"Invoice {invoice_id} is waiting for manual review")
                return PaymentCheckResult.FAILED
            status = await self.gateway.get_invoice_status(invoice_id)
            if status == InvoiceStatus.PAID:
                raise OrphanPaymentError(invoice_id)
            if status == InvoiceStatus.ACTIVE:
                return PaymentCheckResult.PENDING
            return PaymentCheckResult.EXPIRED

        status = await self.gateway.get_invoice_status(invoice_id)
        if status == InvoiceStatus.PAID:
            if await self.reconciler.complete(entry) or self.ledger.is_resolved(invoice_id):
                return PaymentCheckResult.RESOLVED
            return PaymentCheckResult.FAILED
        if status == InvoiceStatus.EXPIRED:
            return PaymentCheckResult.EXPIRED
        return PaymentCheckResult.PENDING

    async def recover_orphan(
        self,
        invoice_id: str,
        order_number: str,
        user_id: int,
        chat_id: int,
    ) -> bool:
        """
        Complete a paid invoice whose ledger entry was lost.

        Raises:
            ValidationError: order number does not match the invoice
            GatewayError: if the gateway could not be reached
        """
        if self.ledger.is_resolved(invoice_id):
            logger.info(f"Invoice {invoice_id} already resolved, nothing to recover")
            return True
        if self.ledger.get_review(invoice_id) is not None:
            logger.info(f"Invoice {invoice_id} is waiting for manual review, not recovering")
            return False

        invoice = await self.gateway.get_invoice(invoice_id)
        if invoice is None or invoice.status != InvoiceStatus.PAID:
            logger.warning(f"Recovery requested for invoice {invoice_id} that is not paid")
            return False

        if invoice.external_order_id and invoice.external_order_id != order_number:
            raise ValidationError(
                "Номер заказа не совпадает с оплаченным счётом. Проверьте номер и попробуйте ещё раз"
            )

        snapshot = Order(
            order_number=order_number,
            additional_info=f"Восстановлен после оплаты счёта {invoice_id}",
        )
        entry = PendingPayment(
            invoice_id=invoice_id,
            order_snapshot=snapshot,
            user_id=user_id,
            chat_id=chat_id,
            amount=invoice.amount,
            pay_url=invoice.pay_url,
            created_at=self.clock(),
        )
        logger.info(f"Recovering orphan payment {invoice_id} for order {order_number}")
        return await self.reconciler.complete(entry)

    async def cancel_for_user(self, user_id: int) -> int:
        """
        Cancel every pending invoice of the user.

        Returns:
            Number of cancelled invoices
        """
        cancelled = 0
        for entry in self.ledger.find_by_user(user_id):
            if await self.reconciler.cancel(entry.invoice_id):
                cancelled += 1
        return cancelled
