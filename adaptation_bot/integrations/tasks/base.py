"""
Base interface for task stores.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class CompletedTask:
    """Finished task whose result has not been sent to the customer yet."""

    task_id: str
    user_id: Optional[int]
    order_number: str
    result_url: Optional[str]


class TaskStore(ABC):
    """Abstract base class for the downstream task board."""

    @abstractmethod
    async def create_task(self, order_payload: dict[str, Any]) -> str:
        """
        Create task for a paid order.

        Args:
            order_payload: Output of ``Order.to_task_payload``

        Returns:
            Task id

        Raises:
            StoreError: if the task could not be created
        """
        pass

    @abstractmethod
    async def list_completed_unnotified(self) -> list[CompletedTask]:
        """Tasks with a result link whose customer was not notified yet."""
        pass

    @abstractmethod
    async def mark_notified(self, task_id: str) -> None:
        """Record that the customer received the result."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name."""
        pass
