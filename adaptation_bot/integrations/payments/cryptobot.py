"""
CryptoBot (Crypto Pay API) gateway implementation.
"""

import asyncio
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import aiohttp

from adaptation_bot.core.errors import GatewayError
from adaptation_bot.integrations.payments.base import Invoice, InvoiceGateway, InvoiceStatus

logger = logging.getLogger(__name__)


def parse_invoice(data: Dict[str, Any]) -> Invoice:
    """Build Invoice from a Crypto Pay API invoice object."""
    external_order_id = None
    payload = data.get("payload")
    if payload:
        try:
            external_order_id = json.loads(payload).get("orderId")
        except (ValueError, AttributeError):
            external_order_id = None

    try:
        amount = Decimal(str(data.get("amount", "0")))
    except InvalidOperation:
        amount = Decimal("0")

    return Invoice(
        invoice_id=str(data["invoice_id"]),
        pay_url=data.get("bot_invoice_url") or data.get("pay_url") or "",
        amount=amount,
        status=InvoiceStatus.parse(data.get("status")),
        external_order_id=str(external_order_id) if external_order_id is not None else None,
    )


class CryptoBotGateway(InvoiceGateway):
    """Invoice gateway backed by @CryptoBot."""

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://pay.crypt.bot/api",
        asset: str = "USDT",
        expires_in: int = 900,
        bot_username: Optional[str] = None,
        timeout: float = 15.0,
    ):
        if not api_token:
            raise ValueError(
                "CryptoBot API token not provided. "
                "Set CRYPTOBOT_API_TOKEN in .env file."
            )
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.asset = asset
        self.expires_in = expires_in
        self.bot_username = bot_username
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _build_headers(self) -> Dict[str, str]:
        return {"Crypto-Pay-API-Token": self.api_token}

    async def _call(self, method: str, payload: Dict[str, Any]) -> Any:
        """Call API method and return its ``result`` field."""
        url = f"{self.base_url}/{method}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, json=payload, headers=self._build_headers()) as resp:
                    text = await resp.text()
                    if resp.status >= 400:
                        logger.error("CryptoBot %s failed (%s): %s", method, resp.status, text)
                        raise GatewayError(f"CryptoBot {method} error {resp.status}")
                    data = json.loads(text)
        except aiohttp.ClientError as e:
            raise GatewayError(f"CryptoBot {method} request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise GatewayError(f"CryptoBot {method} timed out") from e
        except ValueError as e:
            raise GatewayError(f"CryptoBot {method} returned non-JSON response") from e

        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else data
            logger.error("CryptoBot %s returned error: %s", method, error)
            raise GatewayError(f"CryptoBot {method} error: {error}")
        return data.get("result")

    @staticmethod
    def _to_invoice(method: str, data: Any) -> Invoice:
        try:
            return parse_invoice(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise GatewayError(f"CryptoBot {method} returned malformed invoice") from e

    async def create_invoice(
        self,
        amount: Decimal,
        description: str,
        external_order_id: str,
    ) -> Invoice:
        """Create invoice in CryptoBot."""
        payload: Dict[str, Any] = {
            "asset": self.asset,
            "amount": str(amount),
            "description": description,
            "payload": json.dumps({"orderId": external_order_id}),
            "allow_comments": False,
            "allow_anonymous": False,
            "expires_in": self.expires_in,
        }
        if self.bot_username:
            payload["paid_btn_name"] = "viewItem"
            payload["paid_btn_url"] = f"https://t.me/{self.bot_username}"

        result = await self._call("createInvoice", payload)
        invoice = self._to_invoice("createInvoice", result)
        logger.info(f"Invoice {invoice.invoice_id} created for order {external_order_id}: {amount}")
        return invoice

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """Fetch invoice by id."""
        result = await self._call("getInvoices", {"invoice_ids": str(invoice_id)})
        items = (result.get("items") if isinstance(result, dict) else None) or []
        if not items:
            return None
        return self._to_invoice("getInvoices", items[0])

    async def get_invoice_status(self, invoice_id: str) -> InvoiceStatus:
        """Fetch invoice status."""
        invoice = await self.get_invoice(invoice_id)
        if invoice is None:
            logger.warning(f"Invoice {invoice_id} not found at CryptoBot")
            return InvoiceStatus.UNKNOWN
        logger.debug(f"Invoice {invoice_id} status: {invoice.status.value}")
        return invoice.status

    async def cancel_invoice(self, invoice_id: str) -> bool:
        """Delete unpaid invoice."""
        try:
            numeric_id = int(invoice_id)
        except ValueError as e:
            raise GatewayError(f"Invalid CryptoBot invoice id: {invoice_id}") from e
        result = await self._call("deleteInvoice", {"invoice_id": numeric_id})
        return bool(result)

    @property
    def name(self) -> str:
        return "cryptobot"
