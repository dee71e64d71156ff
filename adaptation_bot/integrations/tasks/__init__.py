"""
Task store factory and initialization.
"""

from adaptation_bot.config import Settings
from adaptation_bot.integrations.tasks.base import CompletedTask, TaskStore
from adaptation_bot.integrations.tasks.notion import NotionTaskStore


def get_task_store(settings: Settings) -> TaskStore:
    """Get task store instance."""
    return NotionTaskStore(
        api_key=settings.notion_api_key,
        database_id=settings.notion_database_id,
        data_source_id=settings.notion_data_source_id,
        notion_version=settings.notion_version,
    )


__all__ = [
    "CompletedTask",
    "TaskStore",
    "NotionTaskStore",
    "get_task_store",
]
