"""
Invoice gateway factory and initialization.
"""

from adaptation_bot.config import Settings
from adaptation_bot.integrations.payments.base import Invoice, InvoiceGateway, InvoiceStatus
from adaptation_bot.integrations.payments.cryptobot import CryptoBotGateway


def get_invoice_gateway(settings: Settings, bot_username: str | None = None) -> InvoiceGateway:
    """
    Get invoice gateway instance.

    Args:
        settings: Application settings
        bot_username: Bot username for the "paid" button link

    Returns:
        Invoice gateway instance
    """
    return CryptoBotGateway(
        api_token=settings.cryptobot_api_token,
        base_url=settings.cryptobot_base_url,
        asset=settings.cryptobot_asset,
        expires_in=settings.invoice_expires_in,
        bot_username=bot_username,
    )


__all__ = [
    "Invoice",
    "InvoiceGateway",
    "InvoiceStatus",
    "CryptoBotGateway",
    "get_invoice_gateway",
]
