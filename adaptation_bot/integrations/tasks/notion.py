"""
Notion task store implementation.
Paid orders become pages in a Notion database; the team fills in
VideoLink when the adaptation is ready.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from adaptation_bot.core.errors import StoreError
from adaptation_bot.integrations.tasks.base import CompletedTask, TaskStore

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"

USER_ID_FIELDS = ("userID", "User", "TelegramID", "UserId", "Telegram ID")
ORDER_NUMBER_FIELDS = ("OrderNumber", "Order", "Номер заказа")


def _rich_text(content: str) -> Dict[str, Any]:
    return {"rich_text": [{"type": "text", "text": {"content": content}}]}


def build_task_properties(payload: Dict[str, Any], invoice_id: Optional[str] = None) -> Dict[str, Any]:
    """Map order payload to Notion page properties."""
    localizations = payload.get("localizations") or []
    currencies = payload.get("currencies") or []

    properties = {
        "Name": {
            "title": [{"type": "text", "text": {"content": f"Заказ №{payload['order_number']}"}}],
        },
        "OrderNumber": _rich_text(str(payload["order_number"])),
        "userID": {"number": int(payload["user_id"])},
        "AdaptationsCount": {"number": int(payload.get("adaptations_count") or 0)},
        "Localization": _rich_text(", ".join(localizations)),
        "Bank": _rich_text(payload.get("bank") or ""),
        "WinningAmount": {"number": float(payload.get("winning_amount") or 0)},
        "Currency": {"select": {"name": currencies[0] if currencies else "USD"}},
        "AdditionalInfo": _rich_text(payload.get("additional_info") or "Не указано"),
        "VideoLink": {"url": None},
        "PaymentStatus": {"select": {"name": "paid"}},
        "Status": {"select": {"name": "В обработке"}},
        "Created": {"date": {"start": datetime.now(timezone.utc).isoformat()}},
    }
    if invoice_id:
        properties["InvoiceId"] = _rich_text(str(invoice_id))
    return properties


def get_property_value(prop: Optional[Dict[str, Any]]) -> Any:
    """Plain value of a Notion property."""
    if not prop:
        return None

    prop_type = prop.get("type")
    if prop_type in ("rich_text", "title"):
        text = "".join(item.get("plain_text", "") for item in prop.get(prop_type) or [])
        return text or None
    if prop_type in ("number", "url", "checkbox"):
        return prop.get(prop_type)
    if prop_type in ("select", "status"):
        return (prop.get(prop_type) or {}).get("name")

    logger.debug(f"Unsupported Notion property type: {prop_type}")
    return None


def parse_completed_task(page: Dict[str, Any]) -> CompletedTask:
    """Extract notification data from a Notion page."""
    properties = page.get("properties", {})

    user_id = None
    for field in USER_ID_FIELDS:
        value = get_property_value(properties.get(field))
        if value is None:
            continue
        try:
            user_id = int(value)
            break
        except (TypeError, ValueError):
            continue

    order_number = "Unknown"
    for field in ORDER_NUMBER_FIELDS:
        value = get_property_value(properties.get(field))
        if value:
            order_number = str(value)
            break

    return CompletedTask(
        task_id=page["id"],
        user_id=user_id,
        order_number=order_number,
        result_url=get_property_value(properties.get("VideoLink")),
    )


class NotionTaskStore(TaskStore):
    """Task store backed by a Notion database."""

    def __init__(
        self,
        api_key: str,
        database_id: str,
        data_source_id: Optional[str] = None,
        notion_version: str = "2022-06-28",
        timeout: float = 20.0,
        base_url: str = NOTION_API_URL,
    ):
        if not api_key or not database_id:
            raise ValueError(
                "Notion credentials not provided. "
                "Set NOTION_API_KEY and NOTION_DATABASE_ID in .env file."
            )
        self.api_key = api_key
        self.database_id = database_id
        self.data_source_id = data_source_id
        self.notion_version = notion_version
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.base_url = base_url.rstrip("/")

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Notion-Version": self.notion_version,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, json=data, headers=self._build_headers()) as resp:
                    text = await resp.text()
                    if resp.status >= 400:
                        logger.error("Notion %s %s failed (%s): %s", method, path, resp.status, text)
                        raise StoreError(f"Notion error {resp.status}")
                    body = json.loads(text)
        except aiohttp.ClientError as e:
            raise StoreError(f"Notion request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise StoreError(f"Notion {method} {path} timed out") from e
        except ValueError as e:
            raise StoreError(f"Notion {method} {path} returned non-JSON response") from e

        if not isinstance(body, dict):
            raise StoreError(f"Notion {method} {path} returned unexpected response")
        return body

    async def create_task(self, order_payload: Dict[str, Any]) -> str:
        """Create page for paid order."""
        properties = build_task_properties(order_payload, order_payload.get("invoice_id"))
        logger.info(f"Creating Notion task for order {order_payload.get('order_number')}")

        response = await self._request(
            "POST",
            "/pages",
            {"parent": {"database_id": self.database_id}, "properties": properties},
        )
        task_id = response.get("id")
        if not task_id:
            raise StoreError("Notion response has no page id")

        logger.info(f"Notion task created, page ID: {task_id}")
        return task_id

    async def list_completed_unnotified(self) -> list[CompletedTask]:
        """Query pages with a video link and no notification mark."""
        if self.data_source_id:
            path = f"/data_sources/{self.data_source_id}/query"
        else:
            path = f"/databases/{self.database_id}/query"

        response = await self._request(
            "POST",
            path,
            {
                "filter": {
                    "and": [
                        {"property": "VideoLink", "url": {"is_not_empty": True}},
                        {"property": "NotificationSent", "checkbox": {"equals": False}},
                    ]
                },
                "sorts": [{"property": "Created", "direction": "descending"}],
            },
        )
        results = response.get("results", [])
        logger.debug(f"Found {len(results)} completed orders with links")
        return [parse_completed_task(page) for page in results]

    async def mark_notified(self, task_id: str) -> None:
        """Set NotificationSent checkbox."""
        await self._request(
            "PATCH",
            f"/pages/{task_id}",
            {"properties": {"NotificationSent": {"checkbox": True}}},
        )
        logger.info(f"Notification marked as sent for page {task_id}")

    @property
    def name(self) -> str:
        return "notion"
