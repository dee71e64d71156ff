"""Tests for the session store."""
from adaptation_bot.core.orders import OrderState


def test_start_and_discard(sessions):
    session = sessions.start(1, 10)

    assert sessions.get(1) is session
    assert session.state == OrderState.AWAITING_ORDER_NUMBER
    assert sessions.discard(1) is session
    assert sessions.get(1) is None
    assert sessions.discard(1) is None


def test_release_invoice(sessions):
    session = sessions.start(1, 10)
    session.invoice_id = "101"

    sessions.release_invoice(1, "102")
    assert 1 in sessions

    sessions.release_invoice(1, "101")
    assert 1 not in sessions
    assert session.state == OrderState.COMPLETED


def test_sweep_idle(sessions, clock):
    sessions.start(1, 10)
    clock.advance(100)
    sessions.start(2, 20)
    clock.advance(50)

    assert sessions.sweep_idle(120) == 1
    assert 1 not in sessions
    assert 2 in sessions


def test_sweep_idle_keep(sessions, clock):
    sessions.start(1, 10).invoice_id = "101"
    sessions.start(2, 20)
    clock.advance(200)

    removed = sessions.sweep_idle(120, keep=lambda s: s.invoice_id is not None)

    assert removed == 1
    assert len(sessions) == 1
    assert 1 in sessions


def test_touch_postpones_sweep(sessions, clock):
    session = sessions.start(1, 10)
    clock.advance(100)
    sessions.touch(session)
    clock.advance(50)

    assert sessions.sweep_idle(120) == 0
