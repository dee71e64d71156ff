"""
Base interface for invoice gateways.
Allows switching between CryptoBot and other payment providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class InvoiceStatus(str, Enum):
    """Invoice status as reported by the gateway."""
    ACTIVE = "active"
    PAID = "paid"
    EXPIRED = "expired"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "InvoiceStatus":
        """Map raw gateway status to enum, unknown values included."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Invoice:
    """Invoice issued by the gateway."""

    invoice_id: str
    pay_url: str
    amount: Decimal
    status: InvoiceStatus = InvoiceStatus.ACTIVE
    external_order_id: Optional[str] = None


class InvoiceGateway(ABC):
    """Abstract base class for payment gateways."""

    @abstractmethod
    async def create_invoice(
        self,
        amount: Decimal,
        description: str,
        external_order_id: str,
    ) -> Invoice:
        """
        Issue a new invoice.

        Args:
            amount: Amount due
            description: Text shown to the payer
            external_order_id: Our order number, echoed back in the payload

        Returns:
            Invoice with id and payment URL

        Raises:
            GatewayError: on network or validation failure
        """
        pass

    @abstractmethod
    async def get_invoice_status(self, invoice_id: str) -> InvoiceStatus:
        """Current status of the invoice."""
        pass

    @abstractmethod
    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """Full invoice, or None if the gateway does not know it."""
        pass

    @abstractmethod
    async def cancel_invoice(self, invoice_id: str) -> bool:
        """Ask the gateway to drop an unpaid invoice."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway name."""
        pass
