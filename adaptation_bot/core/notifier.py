"""
Base interface for sending messages to users.
"""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Delivers plain messages to users outside of a conversation turn."""

    @abstractmethod
    async def send_message(self, user_id: int, text: str) -> bool:
        """
        Send message to user.

        Returns:
            True if delivered. Failures are logged by the implementation
            and reported as False, never raised.
        """
        pass
