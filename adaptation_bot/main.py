"""
Adaptation order bot - Main entry point.
"""

import asyncio
import logging
import sys
from typing import Optional

from aiogram import Bot, Dispatcher

from adaptation_bot.bot.bot import create_bot, create_dispatcher
from adaptation_bot.bot.handlers import register_handlers
from adaptation_bot.bot.notifier import TelegramNotifier
from adaptation_bot.config import Settings, get_settings
from adaptation_bot.core.conversation.engine import ConversationEngine
from adaptation_bot.core.conversation.session import SessionStore
from adaptation_bot.core.delivery import DeliverySweep
from adaptation_bot.core.payments.ledger import PaymentLedger
from adaptation_bot.core.payments.reconciler import PaymentReconciler
from adaptation_bot.core.payments.service import PaymentService
from adaptation_bot.core.scheduler import PeriodicTask, Scheduler
from adaptation_bot.integrations.payments import get_invoice_gateway
from adaptation_bot.integrations.tasks import get_task_store


# Fix for Windows asyncio
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


logger = logging.getLogger(__name__)


def setup_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_app(
    settings: Settings,
    bot: Bot,
    dp: Dispatcher,
    bot_username: Optional[str] = None,
) -> Scheduler:
    """
    Wire services together and expose them to handlers.

    Handlers receive ``engine``, ``ledger``, ``delivery`` and ``settings`` as keyword
    arguments through dispatcher workflow data.

    Returns:
        Scheduler with the background jobs, not yet started
    """
    sessions = SessionStore()
    ledger = PaymentLedger()
    gateway = get_invoice_gateway(settings, bot_username)
    task_store = get_task_store(settings)
    notifier = TelegramNotifier(bot)

    reconciler = PaymentReconciler(
        ledger=ledger,
        gateway=gateway,
        task_store=task_store,
        notifier=notifier,
        sessions=sessions,
        max_attempts=settings.max_payment_attempts,
        debounce=settings.payment_check_debounce,
        task_retries=settings.task_create_retries,
        task_backoff=settings.task_create_backoff,
        operator_id=settings.operator_telegram_id,
    )
    payments = PaymentService(
        ledger=ledger,
        gateway=gateway,
        reconciler=reconciler,
        unit_price=settings.unit_price,
        fee_multiplier=settings.fee_multiplier,
        invoice_expires_in=settings.invoice_expires_in,
    )
    engine = ConversationEngine(
        sessions=sessions,
        payments=payments,
        session_idle_timeout=settings.session_idle_timeout,
    )
    delivery = DeliverySweep(task_store, notifier)

    dp["engine"] = engine
    dp["ledger"] = ledger
    dp["delivery"] = delivery
    dp["settings"] = settings

    async def sweep_sessions() -> int:
        return engine.sweep_idle()

    scheduler = Scheduler()
    scheduler.add(PeriodicTask("reconcile", settings.reconcile_interval, reconciler.tick))
    scheduler.add(PeriodicTask("delivery", settings.delivery_sweep_interval, delivery.run))
    scheduler.add(PeriodicTask("sessions", settings.session_sweep_interval, sweep_sessions))
    return scheduler


async def main() -> None:
    """Main function to run the bot."""
    settings = get_settings()
    setup_logging(settings)

    bot = create_bot(settings)
    dp = create_dispatcher()

    # Register handlers
    register_handlers(dp)
    me = await bot.get_me()
    scheduler = build_app(settings, bot, dp, bot_username=me.username)

    async def on_startup() -> None:
        logger.info("Starting adaptation order bot...")
        scheduler.start()
        logger.info("Background jobs started")

    async def on_shutdown() -> None:
        logger.info("Shutting down adaptation order bot...")
        await scheduler.stop()
        logger.info("Cleanup complete")

    # Register startup/shutdown hooks
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    # Start polling
    logger.info("Bot is starting...")
    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await bot.session.close()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
