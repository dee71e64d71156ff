"""
Conversation engine.

Per-user state machine that builds an Order from sequential inputs,
then hands the confirmed order to the payment service.
"""

import logging
from typing import Awaitable, Callable, Optional

from adaptation_bot.core.conversation.replies import (
    CONFIRM_NO,
    CONFIRM_YES,
    ChoiceKind,
    Prompt,
    Reply,
)
from adaptation_bot.core.conversation.session import Session, SessionStore
from adaptation_bot.core.errors import GatewayError, OrphanPaymentError, ValidationError
from adaptation_bot.core.orders import (
    DEFAULT_CATALOG,
    AdditionalInfoValidator,
    BankValidator,
    Catalog,
    CurrencyValidator,
    ItemCountValidator,
    LocalizationValidator,
    OrderItem,
    OrderNumberValidator,
    OrderState,
    WinningAmountValidator,
)
from adaptation_bot.core.payments.service import PaymentCheckResult, PaymentService

logger = logging.getLogger(__name__)


Handler = Callable[[Session, str], Awaitable[Reply]]

EXPECTED_CHOICE = {
    OrderState.SELECTING_ITEM_COUNT: ChoiceKind.ITEM_COUNT,
    OrderState.SELECTING_LOCALIZATION: ChoiceKind.LOCALIZATION,
    OrderState.SELECTING_CURRENCY: ChoiceKind.CURRENCY,
    OrderState.CONFIRMATION: ChoiceKind.CONFIRM,
}

USE_BUTTONS = "Пожалуйста, выберите вариант с помощью кнопок"
STALE_BUTTON = "Эта кнопка больше не активна, выберите вариант из последнего сообщения"


def _validated(result):
    """Unpack validator tuple, raising ValidationError on rejection."""
    is_valid, value, error = result
    if not is_valid:
        raise ValidationError(error)
    return value


class ConversationEngine:
    """Routes user input through the order form."""

    def __init__(
        self,
        sessions: SessionStore,
        payments: PaymentService,
        catalog: Catalog = DEFAULT_CATALOG,
        session_idle_timeout: float = 3600.0,
    ):
        self.sessions = sessions
        self.payments = payments
        self.catalog = catalog
        self.session_idle_timeout = session_idle_timeout

        self._text_handlers: dict[OrderState, Handler] = {
            OrderState.AWAITING_ORDER_NUMBER: self._on_order_number,
            OrderState.ENTERING_BANK: self._on_bank,
            OrderState.ENTERING_WINNING_AMOUNT: self._on_winning_amount,
            OrderState.ENTERING_ADDITIONAL_INFO: self._on_additional_info,
            OrderState.RECOVERING_ORDER_NUMBER: self._on_recovery_order_number,
        }
        self._choice_handlers: dict[OrderState, Handler] = {
            OrderState.SELECTING_ITEM_COUNT: self._on_item_count,
            OrderState.SELECTING_LOCALIZATION: self._on_localization,
            OrderState.SELECTING_CURRENCY: self._on_currency,
            OrderState.CONFIRMATION: self._on_confirmation,
        }

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def start(self, user_id: int, chat_id: int) -> Reply:
        """Start (or restart) the order form."""
        session = self.sessions.start(user_id, chat_id)
        logger.info(f"User {user_id} started a new order")
        return self.reply_for_state(session)

    async def handle_text(self, user_id: int, text: str) -> Reply:
        """Free text input, routed by the current state."""
        session = self.sessions.get(user_id)
        if session is None:
            return Reply(Prompt.NO_SESSION)

        handler = self._text_handlers.get(session.state)
        if handler is None:
            return self.reply_for_state(session, error=USE_BUTTONS)

        return await self._dispatch(handler, session, text)

    async def handle_choice(
        self,
        user_id: int,
        chat_id: int,
        kind: ChoiceKind,
        value: str = "",
    ) -> Reply:
        """Button input."""
        if kind == ChoiceKind.CHECK_PAYMENT:
            return await self.check_payment(user_id, chat_id, value or None)
        if kind == ChoiceKind.CANCEL_PAYMENT:
            return await self.cancel(user_id)

        session = self.sessions.get(user_id)
        if session is None:
            return Reply(Prompt.NO_SESSION)

        if EXPECTED_CHOICE.get(session.state) != kind:
            return self.reply_for_state(session, error=STALE_BUTTON)

        return await self._dispatch(self._choice_handlers[session.state], session, value)

    async def cancel(self, user_id: int) -> Reply:
        """Drop the session and any invoice the user is still paying."""
        session = self.sessions.discard(user_id)
        if session is not None:
            session.state = OrderState.CANCELLED

        cancelled = await self.payments.cancel_for_user(user_id)
        logger.info(f"User {user_id} cancelled the order ({cancelled} invoices cancelled)")
        return Reply(Prompt.ORDER_CANCELLED, data={"cancelled_invoices": cancelled})

    async def check_payment(
        self,
        user_id: int,
        chat_id: int,
        invoice_id: Optional[str] = None,
    ) -> Reply:
        """Manual payment check, also used after a restart."""
        session = self.sessions.get(user_id)
        if invoice_id is None and session is not None:
            invoice_id = session.invoice_id
        if invoice_id is None:
            return Reply(Prompt.NO_SESSION)

        data = {"invoice_id": invoice_id}
        try:
            result = await self.payments.check_payment(invoice_id)
        except OrphanPaymentError as e:
            logger.warning(f"User {user_id} has a paid invoice {e.invoice_id} with no ledger entry")
            session = self.sessions.start(user_id, chat_id)
            session.state = OrderState.RECOVERING_ORDER_NUMBER
            session.invoice_id = e.invoice_id
            return self.reply_for_state(session)
        except GatewayError as e:
            logger.warning(f"Payment check for invoice {invoice_id} failed: {e}")
            return Reply(
                Prompt.GATEWAY_UNAVAILABLE,
                error="Не удалось проверить оплату, попробуйте чуть позже",
                data=data,
            )

        if result == PaymentCheckResult.RESOLVED:
            return Reply(Prompt.PAYMENT_COMPLETED, data=data)
        if result == PaymentCheckResult.FAILED:
            return Reply(Prompt.PAYMENT_FAILED, data=data)
        if result == PaymentCheckResult.EXPIRED:
            if session is not None and session.invoice_id == invoice_id:
                self.sessions.discard(user_id)
            return Reply(Prompt.PAYMENT_EXPIRED, data=data)
        return Reply(Prompt.PAYMENT_PENDING, data=data)

    def sweep_idle(self) -> int:
        """Expire idle sessions, keeping those still waiting for a live invoice."""
        ledger = self.payments.ledger
        return self.sessions.sweep_idle(
            self.session_idle_timeout,
            keep=lambda s: s.invoice_id is not None and s.invoice_id in ledger,
        )

    async def _dispatch(self, handler: Handler, session: Session, value: str) -> Reply:
        try:
            reply = await handler(session, value)
        except ValidationError as e:
            logger.debug(f"Rejected input from user {session.user_id} in {session.state.value}: {e.message}")
            return self.reply_for_state(session, error=e.message)
        self.sessions.touch(session)
        return reply

    # =========================================================================
    # PROMPTS
    # =========================================================================

    def reply_for_state(self, session: Session, error: Optional[str] = None) -> Reply:
        """Prompt matching the current state of the session."""
        order = session.order
        state = session.state

        if state == OrderState.AWAITING_ORDER_NUMBER:
            return Reply(Prompt.ENTER_ORDER_NUMBER, error)

        if state == OrderState.SELECTING_ITEM_COUNT:
            return Reply(Prompt.SELECT_ITEM_COUNT, error, {
                "order_number": order.order_number,
                "options": list(self.catalog.item_counts),
            })

        if state == OrderState.SELECTING_LOCALIZATION:
            return Reply(Prompt.SELECT_LOCALIZATION, error, {
                "item_number": session.current_item_index + 1,
                "item_count": order.item_count,
                "options": [(loc.id, loc.name) for loc in self.catalog.localizations],
            })

        if state == OrderState.SELECTING_CURRENCY:
            return Reply(Prompt.SELECT_CURRENCY, error, {
                "item_number": session.current_item_index + 1,
                "item_count": order.item_count,
                "localization": self.catalog.localization_name(session.current_item.localization),
                "options": list(self.catalog.currencies),
            })

        if state == OrderState.ENTERING_BANK:
            return Reply(Prompt.ENTER_BANK, error, {"items": order.format_items_summary(self.catalog)})

        if state == OrderState.ENTERING_WINNING_AMOUNT:
            return Reply(Prompt.ENTER_WINNING_AMOUNT, error, {"bank": order.bank})

        if state == OrderState.ENTERING_ADDITIONAL_INFO:
            return Reply(Prompt.ENTER_ADDITIONAL_INFO, error, {"winning_amount": order.winning_amount})

        if state == OrderState.CONFIRMATION:
            total = self.payments.quote(order)
            return Reply(Prompt.CONFIRM_ORDER, error, {
                "summary": order.format_full_summary(total, self.catalog),
                "total": total,
                "additional_info": order.additional_info,
            })

        if state == OrderState.AWAITING_PAYMENT:
            return Reply(Prompt.PAYMENT_PENDING, error, {"invoice_id": session.invoice_id})

        if state == OrderState.RECOVERING_ORDER_NUMBER:
            return Reply(Prompt.RECOVER_ORDER_NUMBER, error, {"invoice_id": session.invoice_id})

        return Reply(Prompt.NO_SESSION, error)

    # =========================================================================
    # STATE HANDLERS
    # =========================================================================

    async def _on_order_number(self, session: Session, text: str) -> Reply:
        order_number = _validated(OrderNumberValidator.validate(text))
        session.order.order_number = order_number
        session.state = OrderState.SELECTING_ITEM_COUNT
        return self.reply_for_state(session)

    async def _on_item_count(self, session: Session, value: str) -> Reply:
        item_count = _validated(ItemCountValidator.validate(value, self.catalog))
        session.order.item_count = item_count
        session.order.items = [OrderItem() for _ in range(item_count)]
        session.current_item_index = 0
        session.state = OrderState.SELECTING_LOCALIZATION
        return self.reply_for_state(session)

    async def _on_localization(self, session: Session, value: str) -> Reply:
        localization = _validated(LocalizationValidator.validate(value, self.catalog))
        session.current_item.localization = localization
        session.state = OrderState.SELECTING_CURRENCY
        return self.reply_for_state(session)

    async def _on_currency(self, session: Session, value: str) -> Reply:
        currency = _validated(CurrencyValidator.validate(value, self.catalog))
        session.current_item.currency = currency

        if session.current_item_index + 1 < (session.order.item_count or 0):
            session.current_item_index += 1
            session.state = OrderState.SELECTING_LOCALIZATION
        else:
            session.state = OrderState.ENTERING_BANK
        return self.reply_for_state(session)

    async def _on_bank(self, session: Session, text: str) -> Reply:
        session.order.bank = _validated(BankValidator.validate(text))
        session.state = OrderState.ENTERING_WINNING_AMOUNT
        return self.reply_for_state(session)

    async def _on_winning_amount(self, session: Session, text: str) -> Reply:
        session.order.winning_amount = _validated(WinningAmountValidator.validate(text))
        session.state = OrderState.ENTERING_ADDITIONAL_INFO
        return self.reply_for_state(session)

    async def _on_additional_info(self, session: Session, text: str) -> Reply:
        session.order.additional_info = _validated(AdditionalInfoValidator.validate(text))
        session.state = OrderState.CONFIRMATION
        return self.reply_for_state(session)

    async def _on_confirmation(self, session: Session, value: str) -> Reply:
        if value == CONFIRM_NO:
            self.sessions.discard(session.user_id)
            session.state = OrderState.CANCELLED
            logger.info(f"User {session.user_id} declined order {session.order.order_number}")
            return Reply(Prompt.ORDER_CANCELLED, data={"cancelled_invoices": 0})

        if value != CONFIRM_YES:
            raise ValidationError(STALE_BUTTON)

        try:
            entry = await self.payments.request_invoice(
                session.order, session.user_id, session.chat_id
            )
        except GatewayError as e:
            logger.error(f"Invoice creation for order {session.order.order_number} failed: {e}")
            return self.reply_for_state(
                session,
                error="Не удалось создать счёт для оплаты. Попробуйте ещё раз",
            )

        session.invoice_id = entry.invoice_id
        session.state = OrderState.AWAITING_PAYMENT
        return Reply(Prompt.PAY_INVOICE, data={
            "invoice_id": entry.invoice_id,
            "pay_url": entry.pay_url,
            "amount": entry.amount,
            "order_number": entry.order_number,
            "expires_in_minutes": max(1, self.payments.invoice_expires_in // 60),
        })

    async def _on_recovery_order_number(self, session: Session, text: str) -> Reply:
        order_number = _validated(OrderNumberValidator.validate(text))
        invoice_id = session.invoice_id
        data = {"invoice_id": invoice_id, "order_number": order_number}

        try:
            completed = await self.payments.recover_orphan(
                invoice_id, order_number, session.user_id, session.chat_id
            )
        except GatewayError as e:
            logger.warning(f"Recovery of invoice {invoice_id} failed: {e}")
            return self.reply_for_state(
                session,
                error="Не удалось связаться с платёжной системой, попробуйте ещё раз",
            )

        self.sessions.discard(session.user_id)
        session.state = OrderState.COMPLETED if completed else OrderState.CANCELLED
        return Reply(Prompt.PAYMENT_COMPLETED if completed else Prompt.PAYMENT_FAILED, data=data)
