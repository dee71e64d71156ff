"""Pytest fixtures: in-memory gateway, task store and notifier."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from adaptation_bot.core.conversation.engine import ConversationEngine
from adaptation_bot.core.conversation.session import SessionStore
from adaptation_bot.core.errors import GatewayError, StoreError
from adaptation_bot.core.notifier import Notifier
from adaptation_bot.core.orders import Catalog, Localization, Order, OrderItem
from adaptation_bot.core.payments.ledger import PaymentLedger
from adaptation_bot.core.payments.reconciler import PaymentReconciler
from adaptation_bot.core.payments.service import PaymentService
from adaptation_bot.integrations.payments.base import Invoice, InvoiceGateway, InvoiceStatus
from adaptation_bot.integrations.tasks.base import CompletedTask, TaskStore


OPERATOR_ID = 999

TEST_CATALOG = Catalog(
    localizations=(Localization("A", "Alpha"), Localization("B", "Beta")),
    currencies=("USD", "EUR"),
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordedSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeGateway(InvoiceGateway):
    """Gateway whose statuses are scripted per invoice."""

    def __init__(self):
        self.invoices: dict[str, Invoice] = {}
        self.scripts: dict[str, list[InvoiceStatus]] = {}
        self.status_calls: list[str] = []
        self.cancelled: list[str] = []
        self.fail_create = False
        self.fail_status = False
        self.fail_cancel = False
        self._next_id = 100

    def script(self, invoice_id: str, *statuses: InvoiceStatus) -> None:
        """Statuses returned by successive polls; the last one repeats."""
        self.scripts[invoice_id] = list(statuses)

    async def create_invoice(self, amount, description, external_order_id) -> Invoice:
        if self.fail_create:
            raise GatewayError("createInvoice failed")
        self._next_id += 1
        invoice = Invoice(
            invoice_id=str(self._next_id),
            pay_url=f"https://t.me/CryptoBot?start=IV{self._next_id}",
            amount=amount,
            external_order_id=external_order_id,
        )
        self.invoices[invoice.invoice_id] = invoice
        return invoice

    async def get_invoice_status(self, invoice_id: str) -> InvoiceStatus:
        self.status_calls.append(invoice_id)
        if self.fail_status:
            raise GatewayError("getInvoices failed")
        script = self.scripts.get(invoice_id)
        if script:
            status = script.pop(0) if len(script) > 1 else script[0]
            if invoice_id in self.invoices:
                self.invoices[invoice_id].status = status
            return status
        invoice = self.invoices.get(invoice_id)
        return invoice.status if invoice else InvoiceStatus.UNKNOWN

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        if self.fail_status:
            raise GatewayError("getInvoices failed")
        return self.invoices.get(invoice_id)

    async def cancel_invoice(self, invoice_id: str) -> bool:
        if self.fail_cancel:
            raise GatewayError("deleteInvoice failed")
        self.cancelled.append(invoice_id)
        return True

    @property
    def name(self) -> str:
        return "fake"


class FakeTaskStore(TaskStore):
    def __init__(self):
        self.created: list[dict] = []
        self.fail_times = 0
        self.completed: list[CompletedTask] = []
        self.notified: list[str] = []
        self.fail_mark = False

    async def create_task(self, order_payload: dict) -> str:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise StoreError("store unavailable")
        self.created.append(order_payload)
        return f"page-{len(self.created)}"

    async def list_completed_unnotified(self) -> list[CompletedTask]:
        return [task for task in self.completed if task.task_id not in self.notified]

    async def mark_notified(self, task_id: str) -> None:
        if self.fail_mark:
            raise StoreError("update failed")
        self.notified.append(task_id)

    @property
    def name(self) -> str:
        return "fake"


class FakeNotifier(Notifier):
    def __init__(self):
        self.messages: list[tuple[int, str]] = []
        self.unreachable: set[int] = set()

    async def send_message(self, user_id: int, text: str) -> bool:
        if user_id in self.unreachable:
            return False
        self.messages.append((user_id, text))
        return True

    def to(self, user_id: int) -> list[str]:
        return [text for uid, text in self.messages if uid == user_id]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def task_store() -> FakeTaskStore:
    return FakeTaskStore()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def ledger() -> PaymentLedger:
    return PaymentLedger()


@pytest.fixture
def sessions(clock) -> SessionStore:
    return SessionStore(clock=clock)


@pytest.fixture
def reconciler(ledger, gateway, task_store, notifier, sessions, clock, sleep) -> PaymentReconciler:
    return PaymentReconciler(
        ledger=ledger,
        gateway=gateway,
        task_store=task_store,
        notifier=notifier,
        sessions=sessions,
        max_attempts=12,
        debounce=10.0,
        task_retries=3,
        task_backoff=2.0,
        operator_id=OPERATOR_ID,
        catalog=TEST_CATALOG,
        clock=clock,
        sleep=sleep,
    )


@pytest.fixture
def service(ledger, gateway, reconciler, clock) -> PaymentService:
    return PaymentService(
        ledger=ledger,
        gateway=gateway,
        reconciler=reconciler,
        unit_price=Decimal("10"),
        fee_multiplier=Decimal("1.03"),
        clock=clock,
    )


@pytest.fixture
def engine(sessions, service) -> ConversationEngine:
    return ConversationEngine(
        sessions=sessions,
        payments=service,
        catalog=TEST_CATALOG,
        session_idle_timeout=3600.0,
    )


def make_order(order_number: str = "12345", item_count: int = 2) -> Order:
    """Complete order as built by the conversation."""
    items = [OrderItem("A", "USD"), OrderItem("B", "EUR"), OrderItem("A", "EUR")]
    return Order(
        order_number=order_number,
        item_count=item_count,
        items=[OrderItem(items[i % 3].localization, items[i % 3].currency) for i in range(item_count)],
        bank="Chase",
        winning_amount=Decimal("1500"),
        additional_info="Без надписи",
    )


@pytest.fixture
def order() -> Order:
    return make_order()


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def catalog() -> Catalog:
    return TEST_CATALOG


@pytest.fixture
def operator_id() -> int:
    return OPERATOR_ID
