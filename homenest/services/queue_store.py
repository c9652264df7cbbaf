"""Typed access to one channel's queue item and settings tables."""

from typing import Any, Optional, Union
from supabase import Client
from homenest.models.queue import (
    CallQueueItem,
    CallQueueSettings,
    EmailQueueItem,
    EmailQueueSettings,
    QueueChannel,
    QueueStatus,
)
from homenest.services.supabase_client import to_model
from homenest.utils.errors import QueueValidationError, SupabaseError

QueueItem = Union[CallQueueItem, EmailQueueItem]
QueueSettings = Union[CallQueueSettings, EmailQueueSettings]

_ITEM_MODELS = {QueueChannel.CALL: CallQueueItem, QueueChannel.EMAIL: EmailQueueItem}
_SETTINGS_MODELS = {QueueChannel.CALL: CallQueueSettings, QueueChannel.EMAIL: EmailQueueSettings}


class QueueStore:
    """Queue rows for a channel, validated into queue models on read."""

    def __init__(self, client: Client, channel: QueueChannel):
        self.client = client
        self.channel = QueueChannel(channel)
        self.items_table = self.channel.items_table
        self.settings_table = self.channel.settings_table
        self.item_model = _ITEM_MODELS[self.channel]
        self.settings_model = _SETTINGS_MODELS[self.channel]

    async def check_table(self) -> None:
        try:
            self.client.table(self.items_table).select("id").limit(1).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to access table {self.items_table}: {e}")

    async def get_max_position(self, queue_number: int) -> int:
        """Highest position in the queue number, 0 when empty."""
        try:
            result = (
                self.client.table(self.items_table)
                .select("position")
                .eq("queue_number", queue_number)
                .order("position", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to read max position: {e}")
        if not result.data:
            return 0
        return result.data[0].get("position") or 0

    async def insert_items(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        try:
            result = self.client.table(self.items_table).insert(rows).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to insert {self.items_table} items: {e}")
        return result.data or []

    async def list_items(
        self,
        queue_number: int,
        statuses: Optional[list[QueueStatus]] = None,
    ) -> list[QueueItem]:
        """Items of a queue number in position order, optionally filtered by status."""
        try:
            query = (
                self.client.table(self.items_table)
                .select("*")
                .eq("queue_number", queue_number)
            )
            if statuses:
                query = query.in_("status", [QueueStatus(s).value for s in statuses])
            result = query.order("position").execute()
        except Exception as e:
            raise SupabaseError(f"Failed to fetch {self.items_table} items: {e}")
        return [to_model(self.item_model, row) for row in result.data or []]

    async def next_queued_item(self, queue_number: int) -> Optional[QueueItem]:
        """Lowest-position queued item."""
        try:
            result = (
                self.client.table(self.items_table)
                .select("*")
                .eq("queue_number", queue_number)
                .eq("status", QueueStatus.QUEUED.value)
                .order("position")
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to fetch next queued item: {e}")
        return to_model(self.item_model, result.data[0]) if result.data else None

    async def get_item(self, item_id: str) -> Optional[QueueItem]:
        return await self.find_item("id", item_id)

    async def find_item(self, column: str, value: str) -> Optional[QueueItem]:
        try:
            result = self.client.table(self.items_table).select("*").eq(column, value).limit(1).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to fetch {self.items_table} item: {e}")
        return to_model(self.item_model, result.data[0]) if result.data else None

    async def update_item(self, item_id: str, values: dict[str, Any]) -> None:
        try:
            self.client.table(self.items_table).update(values).eq("id", item_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to update {self.items_table} item: {e}")

    async def update_items_with_status(
        self,
        queue_number: int,
        status: QueueStatus,
        values: dict[str, Any],
    ) -> None:
        try:
            (
                self.client.table(self.items_table)
                .update(values)
                .eq("queue_number", queue_number)
                .eq("status", QueueStatus(status).value)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to update {self.items_table} items: {e}")

    async def count_items(self, queue_number: int, statuses: list[QueueStatus], batch_id: Optional[str] = None) -> int:
        try:
            query = (
                self.client.table(self.items_table)
                .select("id", count="exact")
                .eq("queue_number", queue_number)
                .in_("status", [QueueStatus(s).value for s in statuses])
            )
            if batch_id:
                query = query.eq("batch_id", batch_id)
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to count {self.items_table} items: {e}")
        if result.count is not None:
            return result.count
        return len(result.data or [])

    async def delete_queue(self, queue_number: int) -> None:
        try:
            self.client.table(self.items_table).delete().eq("queue_number", queue_number).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to clear {self.items_table}: {e}")

    async def delete_items(self, queue_number: int, item_ids: list[str]) -> None:
        if not item_ids:
            return
        try:
            (
                self.client.table(self.items_table)
                .delete()
                .eq("queue_number", queue_number)
                .in_("id", item_ids)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to remove {self.items_table} items: {e}")

    async def get_settings(self, queue_number: int) -> QueueSettings:
        """Settings row for a queue number; defaults when none is stored yet."""
        try:
            result = (
                self.client.table(self.settings_table)
                .select("*")
                .eq("queue_number", queue_number)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to fetch {self.settings_table}: {e}")
        if not result.data:
            return self.settings_model(queue_number=queue_number)
        return to_model(self.settings_model, result.data[0])

    async def save_settings(self, queue_number: int, values: dict[str, Any]) -> QueueSettings:
        """Update the settings row for a queue number, creating it if missing."""
        try:
            existing = (
                self.client.table(self.settings_table)
                .select("id")
                .eq("queue_number", queue_number)
                .limit(1)
                .execute()
            )
            if existing.data:
                self.client.table(self.settings_table).update(values).eq("queue_number", queue_number).execute()
            else:
                self.client.table(self.settings_table).insert({"queue_number": queue_number, **values}).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to save {self.settings_table}: {e}")
        return await self.get_settings(queue_number)


def validate_queue_number(queue_number: int, queue_count: int) -> None:
    """Raise QueueValidationError unless 1 <= queue_number <= queue_count."""
    if isinstance(queue_number, bool) or not isinstance(queue_number, int) or not 1 <= queue_number <= queue_count:
        raise QueueValidationError(f"Queue number must be between 1 and {queue_count}, got {queue_number}")
