"""
Order models for the adaptation bot.
"""

import copy
import html
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional


NO_INSCRIPTION = "Без надписи"

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Localization:
    """Target localization for one adaptation."""
    id: str
    name: str


@dataclass(frozen=True)
class Catalog:
    """Fixed choices offered to the user while building an order."""
    localizations: tuple[Localization, ...]
    currencies: tuple[str, ...]
    item_counts: tuple[int, ...] = (1, 2, 3, 4, 5, 6)

    def get_localization(self, localization_id: str) -> Optional[Localization]:
        """Find localization by id."""
        for localization in self.localizations:
            if localization.id == localization_id:
                return localization
        return None

    def localization_name(self, localization_id: Optional[str]) -> str:
        """Display name for a localization id, falling back to the id itself."""
        localization = self.get_localization(localization_id) if localization_id else None
        return localization.name if localization else (localization_id or "—")


DEFAULT_CATALOG = Catalog(
    localizations=(
        Localization("EN", "🇺🇸 EN (английский)"),
        Localization("UK", "🇬🇧 UK (британский английский)"),
        Localization("UA", "🇺🇦 UA (украинский)"),
        Localization("RU", "🇷🇺 RU (русский)"),
        Localization("DE", "🇩🇪 DE (немецкий)"),
        Localization("FR", "🇫🇷 FR (французский)"),
        Localization("ES", "🇪🇸 ES (испанский)"),
        Localization("IT", "🇮🇹 IT (итальянский)"),
        Localization("OTHER", "🌍 Другое"),
    ),
    currencies=("USD", "EUR", "GBP", "UAH", "RUB", "USDT"),
)


@dataclass
class OrderItem:
    """Single adaptation in the order."""
    localization: Optional[str] = None
    currency: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "localization": self.localization,
            "currency": self.currency,
        }


@dataclass
class Order:
    """Order being collected from the user."""
    order_number: Optional[str] = None
    item_count: Optional[int] = None
    items: list[OrderItem] = field(default_factory=list)
    bank: Optional[str] = None
    winning_amount: Optional[Decimal] = None
    additional_info: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def is_complete(self) -> bool:
        """Check if order has all required data."""
        return (
            self.order_number is not None and
            self.item_count is not None and
            len(self.items) == self.item_count and
            all(item.localization and item.currency for item in self.items) and
            self.bank is not None and
            self.winning_amount is not None and
            self.additional_info is not None
        )

    def snapshot(self) -> "Order":
        """Independent copy, unaffected by later edits of this order."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "order_number": self.order_number,
            "item_count": self.item_count,
            "items": [item.to_dict() for item in self.items],
            "bank": self.bank,
            "winning_amount": str(self.winning_amount) if self.winning_amount is not None else None,
            "additional_info": self.additional_info,
            "created_at": self.created_at.isoformat(),
        }

    def to_task_payload(self, user_id: int, catalog: Catalog = DEFAULT_CATALOG) -> dict:
        """Payload handed to the task store once the order is paid."""
        return {
            "order_number": self.order_number,
            "user_id": user_id,
            "adaptations_count": self.item_count or 0,
            "localizations": [catalog.localization_name(item.localization) for item in self.items],
            "currencies": [item.currency for item in self.items if item.currency],
            "bank": self.bank or "",
            "winning_amount": self.winning_amount if self.winning_amount is not None else Decimal("0"),
            "additional_info": self.additional_info or NO_INSCRIPTION,
        }

    def format_items_summary(self, catalog: Catalog = DEFAULT_CATALOG) -> str:
        """Format items as text summary."""
        lines = []
        for i, item in enumerate(self.items, 1):
            lines.append(
                f"{i}. {catalog.localization_name(item.localization)} — {item.currency or '—'}"
            )
        return "\n".join(lines)

    def format_full_summary(self, total: Decimal, catalog: Catalog = DEFAULT_CATALOG) -> str:
        """Format complete order summary for confirmation."""
        lines = [
            f"📋 <b>Заказ #{self.order_number}</b>",
            "",
            f"🎬 Адаптаций: {self.item_count}",
            self.format_items_summary(catalog),
            "",
            f"🏦 Банк: {html.escape(self.bank or '')}",
            f"🎉 Сумма выигрыша: {self.winning_amount}",
            f"🔤 Надпись: {html.escape(self.additional_info or '')}",
            "",
            f"💰 <b>Сумма к оплате: {total} USDT</b>",
        ]
        return "\n".join(lines)


def compute_total(order: Order, unit_price: Decimal, fee_multiplier: Decimal) -> Decimal:
    """
    Price of the order: item_count × unit_price × fee_multiplier.

    Rounded to cents. Takes no state besides its arguments.
    """
    if order.item_count is None:
        raise ValueError("Order has no item count")
    total = Decimal(order.item_count) * Decimal(unit_price) * Decimal(fee_multiplier)
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)
