"""
Per-user conversation sessions.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from adaptation_bot.core.orders import Order, OrderItem, OrderState
from adaptation_bot.core.scheduler import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """In-memory conversation state of one user."""
    user_id: int
    chat_id: int
    state: OrderState = OrderState.AWAITING_ORDER_NUMBER
    order: Order = field(default_factory=Order)
    current_item_index: int = 0
    invoice_id: Optional[str] = None
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def current_item(self) -> OrderItem:
        """Item being filled in the per-item loop."""
        return self.order.items[self.current_item_index]


class SessionStore:
    """Owns the sessions of all active users."""

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock
        self._sessions: dict[int, Session] = {}

    def start(self, user_id: int, chat_id: int) -> Session:
        """Create a fresh session, replacing any existing one."""
        if user_id in self._sessions:
            logger.debug(f"Replacing session of user {user_id}")
        session = Session(user_id=user_id, chat_id=chat_id, updated_at=self.clock())
        self._sessions[user_id] = session
        return session

    def get(self, user_id: int) -> Optional[Session]:
        return self._sessions.get(user_id)

    def touch(self, session: Session) -> None:
        """Mark session as active now."""
        session.updated_at = self.clock()

    def discard(self, user_id: int) -> Optional[Session]:
        return self._sessions.pop(user_id, None)

    def release_invoice(self, user_id: int, invoice_id: str) -> None:
        """Drop the session once its invoice has been settled."""
        session = self._sessions.get(user_id)
        if session is not None and session.invoice_id == invoice_id:
            session.state = OrderState.COMPLETED
            self.discard(user_id)

    def sweep_idle(
        self,
        max_idle: float,
        keep: Optional[Callable[[Session], bool]] = None,
    ) -> int:
        """
        Remove sessions idle for longer than ``max_idle`` seconds.

        Sessions for which ``keep`` returns True survive regardless of age.

        Returns:
            Number of removed sessions
        """
        cutoff = self.clock() - timedelta(seconds=max_idle)
        removed = 0
        for user_id in list(self._sessions):
            session = self._sessions.get(user_id)
            if session is None or session.updated_at > cutoff:
                continue
            if keep is not None and keep(session):
                continue
            del self._sessions[user_id]
            removed += 1

        if removed:
            logger.info(f"Removed {removed} idle sessions")
        return removed

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._sessions
