"""
Operator commands: review of paid orders that could not be saved
and manual delivery of finished video links.
"""

import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from adaptation_bot.config import Settings
from adaptation_bot.core.delivery import DeliverySweep
from adaptation_bot.core.errors import StoreError
from adaptation_bot.core.payments.ledger import PaymentLedger

logger = logging.getLogger(__name__)

router = Router(name="operator")


def is_operator(message: Message, settings: Settings) -> bool:
    """Single operator identity check."""
    return (
        settings.operator_telegram_id is not None
        and message.from_user is not None
        and message.from_user.id == settings.operator_telegram_id
    )


@router.message(Command("pending"))
async def handle_pending(message: Message, ledger: PaymentLedger, settings: Settings) -> None:
    """List payments flagged for manual review."""
    if not is_operator(message, settings):
        logger.warning(f"User {message.from_user.id} tried to use /pending")
        return

    entries = ledger.needs_review()
    if not entries:
        await message.answer(f"✅ Нет платежей на проверке. В ожидании оплаты: {len(ledger)}")
        return

    lines = [f"🚨 <b>Платежи на проверке: {len(entries)}</b>", ""]
    for entry in entries:
        lines.append(
            f"🧾 {entry.invoice_id} — заказ #{entry.order_number}, "
            f"пользователь {entry.user_id}, {entry.amount}\n"
            f"   ❗ {entry.reason}"
        )
    lines.append("")
    lines.append("После ручной обработки: /resolve &lt;invoice_id&gt;")
    await message.answer("\n".join(lines))


@router.message(Command("resolve"), F.text)
async def handle_resolve(
    message: Message,
    command: CommandObject,
    ledger: PaymentLedger,
    settings: Settings,
) -> None:
    """Remove a handled payment from the review list."""
    if not is_operator(message, settings):
        logger.warning(f"User {message.from_user.id} tried to use /resolve")
        return

    invoice_id = (command.args or "").strip()
    if not invoice_id:
        await message.answer("Использование: /resolve &lt;invoice_id&gt;")
        return

    entry = ledger.clear_review(invoice_id)
    if entry is None:
        await message.answer(f"❌ Счёт {invoice_id} не найден среди платежей на проверке")
        return

    ledger.mark_resolved(invoice_id)
    logger.info(f"Operator resolved invoice {invoice_id} (order {entry.order_number})")
    await message.answer(f"✅ Счёт {invoice_id} отмечен как обработанный")


@router.message(Command("find_links"))
async def handle_find_links(message: Message, delivery: DeliverySweep, settings: Settings) -> None:
    """List finished orders whose links were not sent yet."""
    if not is_operator(message, settings):
        logger.warning(f"User {message.from_user.id} tried to use /find_links")
        return

    try:
        tasks = await delivery.task_store.list_completed_unnotified()
    except StoreError as e:
        logger.error(f"Error searching for completed orders: {e}")
        await message.answer("❌ Не удалось получить список готовых заказов")
        return

    if not tasks:
        await message.answer("📭 Нет готовых заказов с неотправленными ссылками")
        return

    lines = [f"📹 <b>Готовых заказов: {len(tasks)}</b>", ""]
    for task in tasks:
        user = task.user_id if task.user_id is not None else "?"
        lines.append(f"🔢 #{task.order_number}, пользователь {user}")
    lines.append("")
    lines.append("Отправить ссылки: /send_links")
    await message.answer("\n".join(lines))


@router.message(Command("send_links"))
async def handle_send_links(message: Message, delivery: DeliverySweep, settings: Settings) -> None:
    """Run the delivery sweep now."""
    if not is_operator(message, settings):
        logger.warning(f"User {message.from_user.id} tried to use /send_links")
        return

    try:
        result = await delivery.run()
    except StoreError as e:
        logger.error(f"Manual delivery sweep failed: {e}")
        await message.answer("❌ Не удалось отправить ссылки, попробуйте позже")
        return

    logger.info(f"Operator ran delivery sweep: {result.sent} sent, {result.errors} errors")
    await message.answer(f"📤 Отправлено ссылок: {result.sent}\n⚠️ Ошибок: {result.errors}")
