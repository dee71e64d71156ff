"""Tests for the conversation engine."""
import copy
from decimal import Decimal

import pytest

from adaptation_bot.core.conversation.engine import STALE_BUTTON, USE_BUTTONS
from adaptation_bot.core.conversation.replies import CONFIRM_NO, CONFIRM_YES, ChoiceKind, Prompt
from adaptation_bot.core.orders import NO_INSCRIPTION, OrderState
from adaptation_bot.integrations.payments.base import InvoiceStatus

USER = 1
CHAT = 10


async def fill_order(engine, items=(("A", "USD"), ("B", "EUR"))):
    """Walk the form up to the confirmation step."""
    engine.start(USER, CHAT)
    await engine.handle_text(USER, "12345")
    await engine.handle_choice(USER, CHAT, ChoiceKind.ITEM_COUNT, str(len(items)))
    for localization, currency in items:
        await engine.handle_choice(USER, CHAT, ChoiceKind.LOCALIZATION, localization)
        await engine.handle_choice(USER, CHAT, ChoiceKind.CURRENCY, currency)
    await engine.handle_text(USER, "Chase")
    await engine.handle_text(USER, "1500")
    return await engine.handle_text(USER, "no")


async def test_full_order_scenario(engine, sessions):
    reply = engine.start(USER, CHAT)
    assert reply.prompt == Prompt.ENTER_ORDER_NUMBER

    reply = await engine.handle_text(USER, "12345")
    assert reply.prompt == Prompt.SELECT_ITEM_COUNT
    assert reply.data["options"] == [1, 2, 3, 4, 5, 6]

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.ITEM_COUNT, "2")
    assert reply.prompt == Prompt.SELECT_LOCALIZATION
    assert (reply.data["item_number"], reply.data["item_count"]) == (1, 2)

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.LOCALIZATION, "A")
    assert reply.prompt == Prompt.SELECT_CURRENCY
    assert reply.data["localization"] == "Alpha"

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CURRENCY, "USD")
    assert reply.prompt == Prompt.SELECT_LOCALIZATION
    assert reply.data["item_number"] == 2

    await engine.handle_choice(USER, CHAT, ChoiceKind.LOCALIZATION, "B")
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CURRENCY, "EUR")
    assert reply.prompt == Prompt.ENTER_BANK
    assert "Alpha — USD" in reply.data["items"]
    assert "Beta — EUR" in reply.data["items"]

    reply = await engine.handle_text(USER, "Chase")
    assert reply.prompt == Prompt.ENTER_WINNING_AMOUNT

    reply = await engine.handle_text(USER, "1500")
    assert reply.prompt == Prompt.ENTER_ADDITIONAL_INFO

    reply = await engine.handle_text(USER, "no")
    assert reply.prompt == Prompt.CONFIRM_ORDER
    assert reply.data["total"] == Decimal("2") * Decimal("10") * Decimal("1.03")
    assert reply.data["additional_info"] == NO_INSCRIPTION

    session = sessions.get(USER)
    assert session.state == OrderState.CONFIRMATION
    assert session.order.is_complete()
    assert session.order.winning_amount == Decimal("1500")


async def test_confirm_issues_invoice(engine, sessions, ledger):
    await fill_order(engine)

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)

    assert reply.prompt == Prompt.PAY_INVOICE
    assert reply.data["amount"] == Decimal("20.60")
    assert reply.data["order_number"] == "12345"
    assert reply.data["pay_url"]
    assert reply.data["expires_in_minutes"] == 15

    session = sessions.get(USER)
    assert session.state == OrderState.AWAITING_PAYMENT
    assert session.invoice_id == reply.data["invoice_id"]

    entry = ledger.get(reply.data["invoice_id"])
    assert entry.user_id == USER
    assert entry.chat_id == CHAT
    assert entry.attempts == 0
    assert entry.order_snapshot is not session.order


async def test_snapshot_survives_later_session_edits(engine, sessions, ledger):
    await fill_order(engine)
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)

    sessions.get(USER).order.bank = "Changed"

    assert ledger.get(reply.data["invoice_id"]).order_snapshot.bank == "Chase"


async def test_decline_discards_session(engine, sessions, ledger):
    await fill_order(engine)

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_NO)

    assert reply.prompt == Prompt.ORDER_CANCELLED
    assert USER not in sessions
    assert len(ledger) == 0


async def test_invoice_failure_keeps_confirmation(engine, sessions, ledger, gateway):
    await fill_order(engine)
    gateway.fail_create = True

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)

    assert reply.prompt == Prompt.CONFIRM_ORDER
    assert reply.is_error
    assert sessions.get(USER).state == OrderState.CONFIRMATION
    assert len(ledger) == 0


@pytest.mark.parametrize("steps, bad_input", [
    ([], "12a"),
    ([("text", "12345"), ("count", "2"), ("loc", "A"), ("cur", "USD"), ("loc", "B"), ("cur", "EUR")], "x"),
    ([("text", "12345"), ("count", "1"), ("loc", "A"), ("cur", "USD"), ("text", "Chase")], "-5"),
    ([("text", "12345"), ("count", "1"), ("loc", "A"), ("cur", "USD"), ("text", "Chase")], "1000000.01"),
])
async def test_invalid_text_leaves_state_unchanged(engine, sessions, steps, bad_input):
    engine.start(USER, CHAT)
    kinds = {"count": ChoiceKind.ITEM_COUNT, "loc": ChoiceKind.LOCALIZATION, "cur": ChoiceKind.CURRENCY}
    for kind, value in steps:
        if kind == "text":
            await engine.handle_text(USER, value)
        else:
            await engine.handle_choice(USER, CHAT, kinds[kind], value)

    session = sessions.get(USER)
    state_before = session.state
    order_before = copy.deepcopy(session.order.to_dict())

    reply = await engine.handle_text(USER, bad_input)

    assert reply.is_error
    assert session.state == state_before
    assert session.order.to_dict() == order_before


@pytest.mark.parametrize("kind, value", [
    (ChoiceKind.ITEM_COUNT, "0"),
    (ChoiceKind.ITEM_COUNT, "7"),
])
async def test_invalid_item_count(engine, sessions, kind, value):
    engine.start(USER, CHAT)
    await engine.handle_text(USER, "12345")

    reply = await engine.handle_choice(USER, CHAT, kind, value)

    assert reply.prompt == Prompt.SELECT_ITEM_COUNT
    assert reply.is_error
    assert sessions.get(USER).order.item_count is None


async def test_unknown_localization_rejected(engine, sessions):
    engine.start(USER, CHAT)
    await engine.handle_text(USER, "12345")
    await engine.handle_choice(USER, CHAT, ChoiceKind.ITEM_COUNT, "1")

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.LOCALIZATION, "ZZ")

    assert reply.prompt == Prompt.SELECT_LOCALIZATION
    assert reply.is_error
    assert sessions.get(USER).current_item.localization is None


async def test_text_in_button_state(engine, sessions):
    engine.start(USER, CHAT)
    await engine.handle_text(USER, "12345")

    reply = await engine.handle_text(USER, "2")

    assert reply.prompt == Prompt.SELECT_ITEM_COUNT
    assert reply.error == USE_BUTTONS
    assert sessions.get(USER).state == OrderState.SELECTING_ITEM_COUNT


async def test_stale_button(engine, sessions):
    engine.start(USER, CHAT)
    await engine.handle_text(USER, "12345")
    await engine.handle_choice(USER, CHAT, ChoiceKind.ITEM_COUNT, "1")

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.ITEM_COUNT, "3")

    assert reply.error == STALE_BUTTON
    assert sessions.get(USER).order.item_count == 1


async def test_input_without_session(engine):
    assert (await engine.handle_text(USER, "12345")).prompt == Prompt.NO_SESSION
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.LOCALIZATION, "A")
    assert reply.prompt == Prompt.NO_SESSION


async def test_start_replaces_session(engine, sessions):
    engine.start(USER, CHAT)
    await engine.handle_text(USER, "12345")

    engine.start(USER, CHAT)

    session = sessions.get(USER)
    assert session.state == OrderState.AWAITING_ORDER_NUMBER
    assert session.order.order_number is None


async def test_cancel_while_paying(engine, sessions, ledger, gateway):
    await fill_order(engine)
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)
    invoice_id = reply.data["invoice_id"]

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CANCEL_PAYMENT)

    assert reply.prompt == Prompt.ORDER_CANCELLED
    assert reply.data["cancelled_invoices"] == 1
    assert USER not in sessions
    assert ledger.get(invoice_id) is None
    assert gateway.cancelled == [invoice_id]


async def test_cancel_completes_invoice_paid_meanwhile(engine, sessions, ledger, gateway, task_store):
    await fill_order(engine)
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)
    invoice_id = reply.data["invoice_id"]
    gateway.fail_cancel = True
    gateway.script(invoice_id, InvoiceStatus.PAID)

    reply = await engine.cancel(USER)

    assert reply.data["cancelled_invoices"] == 0
    assert len(task_store.created) == 1
    assert ledger.is_resolved(invoice_id)
    assert USER not in sessions


async def test_manual_check_pending(engine, gateway):
    await fill_order(engine)
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CHECK_PAYMENT, reply.data["invoice_id"])

    assert reply.prompt == Prompt.PAYMENT_PENDING


async def test_manual_check_paid(engine, sessions, gateway, task_store, notifier):
    await fill_order(engine)
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)
    invoice_id = reply.data["invoice_id"]
    gateway.script(invoice_id, InvoiceStatus.PAID)

    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CHECK_PAYMENT, invoice_id)
    assert reply.prompt == Prompt.PAYMENT_COMPLETED
    assert USER not in sessions

    # Second press after completion
    reply = await engine.check_payment(USER, CHAT, invoice_id)
    assert reply.prompt == Prompt.PAYMENT_COMPLETED
    assert len(task_store.created) == 1
    assert len(notifier.to(USER)) == 1


async def test_manual_check_expired(engine, sessions, gateway):
    await fill_order(engine)
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)
    invoice_id = reply.data["invoice_id"]
    gateway.script(invoice_id, InvoiceStatus.EXPIRED)

    reply = await engine.check_payment(USER, CHAT)

    assert reply.prompt == Prompt.PAYMENT_EXPIRED
    assert USER not in sessions


async def test_manual_check_gateway_down(engine, sessions, gateway):
    await fill_order(engine)
    reply = await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)
    gateway.fail_status = True

    reply = await engine.check_payment(USER, CHAT, reply.data["invoice_id"])

    assert reply.prompt == Prompt.GATEWAY_UNAVAILABLE
    assert sessions.get(USER).state == OrderState.AWAITING_PAYMENT


async def test_sweep_keeps_sessions_waiting_for_payment(engine, sessions, clock):
    await fill_order(engine)
    await engine.handle_choice(USER, CHAT, ChoiceKind.CONFIRM, CONFIRM_YES)
    engine.start(2, 20)
    clock.advance(3601)

    assert engine.sweep_idle() == 1
    assert USER in sessions
    assert 2 not in sessions
