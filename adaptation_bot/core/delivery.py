"""
Sends finished adaptations to customers.
Scans the task store for completed tasks nobody was notified about.
"""

import asyncio
import logging
from dataclasses import dataclass

from adaptation_bot.core.errors import StoreError
from adaptation_bot.core.notifier import Notifier
from adaptation_bot.integrations.tasks.base import CompletedTask, TaskStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    sent: int = 0
    errors: int = 0


def format_result_ready(task: CompletedTask) -> str:
    return (
        "🎉 <b>Ваш заказ готов!</b>\n\n"
        f"🔢 Номер заказа: #{task.order_number}\n"
        f"📹 Ссылка на видео: {task.result_url}\n\n"
        "Спасибо, что воспользовались нашими услугами! ✨"
    )


class DeliverySweep:
    """Periodic scan for completed-but-unnotified tasks."""

    def __init__(self, task_store: TaskStore, notifier: Notifier):
        self.task_store = task_store
        self.notifier = notifier
        self._lock = asyncio.Lock()

    async def run(self) -> SweepResult:
        """One pass over the task store. Concurrent calls run one after another."""
        async with self._lock:
            return await self._run()

    async def _run(self) -> SweepResult:
        result = SweepResult()
        tasks = await self.task_store.list_completed_unnotified()

        for task in tasks:
            if not task.result_url or task.user_id is None:
                logger.warning(f"Missing data for completed order {task.order_number}, skipping")
                result.errors += 1
                continue

            if not await self.notifier.send_message(task.user_id, format_result_ready(task)):
                result.errors += 1
                continue

            try:
                await self.task_store.mark_notified(task.task_id)
            except StoreError as e:
                # The link was delivered; the next sweep may send it again
                logger.error(f"Could not mark task {task.task_id} as notified: {e}")
                result.errors += 1
                continue
            result.sent += 1

        if tasks:
            logger.info(f"Delivery sweep: {result.sent} sent, {result.errors} errors")
        return result
