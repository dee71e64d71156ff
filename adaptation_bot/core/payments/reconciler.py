"""
Payment reconciliation.

Polls the gateway for pending invoices and turns paid ones into tasks.
Runs on its own timer, independent of user conversations.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from adaptation_bot.core.conversation.session import SessionStore
from adaptation_bot.core.errors import GatewayError, StoreError
from adaptation_bot.core.notifier import Notifier
from adaptation_bot.core.orders import DEFAULT_CATALOG, Catalog
from adaptation_bot.core.payments.ledger import PaymentLedger, PaymentStatus, PendingPayment
from adaptation_bot.core.scheduler import Clock, Sleep, utc_now
from adaptation_bot.integrations.payments.base import InvoiceGateway, InvoiceStatus
from adaptation_bot.integrations.tasks.base import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """What one reconciliation pass did."""
    checked: int = 0
    resolved: int = 0
    expired: int = 0
    abandoned: int = 0
    failed: int = 0


def format_payment_confirmed(entry: PendingPayment, task_id: str) -> str:
    return (
        "🎉 <b>Оплата подтверждена!</b>\n\n"
        f"✅ Заказ #{entry.order_number} создан и передан в работу.\n"
        f"🧾 Счёт: {entry.invoice_id}\n"
        f"📋 Задача: {task_id}\n\n"
        "Мы пришлём ссылку, когда адаптация будет готова."
    )


def format_task_failed(entry: PendingPayment) -> str:
    return (
        "⚠️ <b>Оплата получена, но заказ не удалось сохранить.</b>\n\n"
        f"🔢 Номер заказа: #{entry.order_number}\n"
        f"🧾 Счёт: {entry.invoice_id}\n\n"
        "Менеджер оформит заказ вручную, ничего делать не нужно."
    )


def format_operator_alert(entry: PendingPayment, reason: str) -> str:
    return (
        "🚨 <b>Требуется ручная обработка</b>\n\n"
        f"🔢 Заказ: #{entry.order_number}\n"
        f"🧾 Счёт: {entry.invoice_id}\n"
        f"👤 Пользователь: {entry.user_id}\n"
        f"💰 Сумма: {entry.amount}\n"
        f"❗ Причина: {reason}"
    )


def format_invoice_expired(entry: PendingPayment) -> str:
    return (
        f"⌛ Счёт {entry.invoice_id} для заказа #{entry.order_number} больше не действителен.\n\n"
        "Чтобы оформить заказ заново, отправьте /start"
    )


class PaymentReconciler:
    """Advances ledger entries and runs the completion pipeline."""

    def __init__(
        self,
        ledger: PaymentLedger,
        gateway: InvoiceGateway,
        task_store: TaskStore,
        notifier: Notifier,
        sessions: Optional[SessionStore] = None,
        max_attempts: int = 12,
        debounce: float = 10.0,
        task_retries: int = 3,
        task_backoff: float = 2.0,
        operator_id: Optional[int] = None,
        catalog: Catalog = DEFAULT_CATALOG,
        clock: Clock = utc_now,
        sleep: Sleep = asyncio.sleep,
    ):
        self.ledger = ledger
        self.gateway = gateway
        self.task_store = task_store
        self.notifier = notifier
        self.sessions = sessions
        self.max_attempts = max_attempts
        self.debounce = debounce
        self.task_retries = task_retries
        self.task_backoff = task_backoff
        self.operator_id = operator_id
        self.catalog = catalog
        self.clock = clock
        self.sleep = sleep
        self._lock = asyncio.Lock()

    async def tick(self) -> TickResult:
        """One reconciliation pass over the due entries."""
        result = TickResult()
        async with self._lock:
            now = self.clock()
            for entry in self.ledger.list_due_for_check(now, self.debounce):
                # Removed by a cancel earlier in this pass
                if self.ledger.get(entry.invoice_id) is not entry:
                    continue
                result.checked += 1
                try:
                    await self._check_entry(entry, result)
                except Exception as e:
                    # One broken entry must not stall the rest of the pass
                    logger.error(f"Reconcile of invoice {entry.invoice_id} failed: {e}", exc_info=True)
                    result.failed += 1

        if result.checked:
            logger.info(
                f"Reconcile tick: checked={result.checked} resolved={result.resolved} "
                f"expired={result.expired} abandoned={result.abandoned} failed={result.failed}"
            )
        return result

    async def _check_entry(self, entry: PendingPayment, result: TickResult) -> None:
        entry.record_check(self.clock())

        try:
            status = await self.gateway.get_invoice_status(entry.invoice_id)
        except GatewayError as e:
            logger.warning(f"Status poll failed for invoice {entry.invoice_id}: {e}")
            status = InvoiceStatus.UNKNOWN

        if status == InvoiceStatus.PAID:
            if await self._complete(entry):
                result.resolved += 1
            else:
                result.failed += 1
            return

        if status == InvoiceStatus.EXPIRED:
            entry.transition(PaymentStatus.EXPIRED)
            self._release(entry)
            result.expired += 1
            logger.info(f"Invoice {entry.invoice_id} expired after {entry.attempts} checks")
            await self.notifier.send_message(entry.user_id, format_invoice_expired(entry))
            return

        if entry.attempts > self.max_attempts:
            entry.transition(PaymentStatus.ABANDONED)
            entry.reason = f"no payment after {entry.attempts} checks"
            self._release(entry)
            result.abandoned += 1
            logger.info(f"Invoice {entry.invoice_id} abandoned: {entry.reason}")
            await self.notifier.send_message(entry.user_id, format_invoice_expired(entry))
            return

        logger.debug(
            f"Invoice {entry.invoice_id} still {status.value} (check {entry.attempts}/{self.max_attempts})"
        )

    async def complete(self, entry: PendingPayment) -> bool:
        """
        Completion pipeline for a paid invoice.

        Safe to call more than once for one invoice: only the first call
        reaches the task store.

        Returns:
            True if the task was created by this call
        """
        async with self._lock:
            return await self._complete(entry)

    async def _complete(self, entry: PendingPayment) -> bool:
        if self.ledger.is_resolved(entry.invoice_id) or entry.status != PaymentStatus.PENDING:
            logger.info(f"Invoice {entry.invoice_id} already {entry.status.value}, skipping completion")
            return False

        entry.transition(PaymentStatus.PAID)
        try:
            task_id = await self._create_task(entry)
        except StoreError as e:
            await self._escalate(entry, f"task store error: {e}")
            return False
        except Exception as e:
            # Payment is confirmed, so anything else still ends in review
            logger.error(f"Unexpected error completing invoice {entry.invoice_id}: {e}", exc_info=True)
            await self._escalate(entry, f"unexpected error: {e!r}")
            return False

        self.ledger.mark_resolved(entry.invoice_id)
        entry.transition(PaymentStatus.RESOLVED)
        self._release(entry)
        logger.info(f"Order {entry.order_number} paid with invoice {entry.invoice_id}, task {task_id}")

        await self.notifier.send_message(entry.user_id, format_payment_confirmed(entry, task_id))
        return True

    async def _create_task(self, entry: PendingPayment) -> str:
        """
        Create the task with bounded retries.

        Raises:
            StoreError: the last store error once every attempt failed
        """
        payload = entry.order_snapshot.to_task_payload(entry.user_id, self.catalog)
        payload["invoice_id"] = entry.invoice_id

        for attempt in range(1, self.task_retries + 1):
            try:
                return await self.task_store.create_task(payload)
            except StoreError as e:
                logger.warning(
                    f"Task creation for invoice {entry.invoice_id} failed "
                    f"(attempt {attempt}/{self.task_retries}): {e}"
                )
                if attempt >= self.task_retries:
                    raise
                await self.sleep(self.task_backoff * attempt)
        raise StoreError("no task creation attempts configured")

    async def _escalate(self, entry: PendingPayment, reason: str) -> None:
        """Payment received but no task: keep the entry for review and tell people."""
        entry.transition(PaymentStatus.ABANDONED)
        self.ledger.flag_for_review(entry, reason)
        if self.sessions is not None:
            self.sessions.release_invoice(entry.user_id, entry.invoice_id)

        logger.error(
            f"Invoice {entry.invoice_id} for order {entry.order_number} is paid but task creation failed"
        )
        await self.notifier.send_message(entry.user_id, format_task_failed(entry))
        if self.operator_id is not None:
            await self.notifier.send_message(self.operator_id, format_operator_alert(entry, reason))
        else:
            logger.warning("OPERATOR_TELEGRAM_ID not set, review alert not sent")

    async def cancel(self, invoice_id: str) -> bool:
        """
        Drop a pending invoice on user request.

        The gateway is asked to delete the invoice first. If that fails
        because the invoice is already paid, the payment is completed
        instead of being dropped.

        Returns:
            True if the invoice was cancelled
        """
        async with self._lock:
            entry = self.ledger.get(invoice_id)
            if entry is None:
                return True

            try:
                await self.gateway.cancel_invoice(invoice_id)
            except GatewayError as e:
                logger.warning(f"Gateway cancel failed for invoice {invoice_id}: {e}")
                try:
                    status = await self.gateway.get_invoice_status(invoice_id)
                except GatewayError:
                    status = InvoiceStatus.UNKNOWN
                if status == InvoiceStatus.PAID:
                    logger.info(f"Invoice {invoice_id} was paid before cancel, completing it")
                    await self._complete(entry)
                    return False

            self.ledger.remove(invoice_id)
            logger.info(f"Invoice {invoice_id} cancelled by user {entry.user_id}")
            return True

    def _release(self, entry: PendingPayment) -> None:
        self.ledger.remove(entry.invoice_id)
        if self.sessions is not None:
            self.sessions.release_invoice(entry.user_id, entry.invoice_id)
