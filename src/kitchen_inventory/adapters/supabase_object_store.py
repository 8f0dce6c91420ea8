"""Supabase-backed object store."""

import asyncio
from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from kitchen_inventory.adapters.polling_sync_adapter import OBJECT_ID_FIELD, ObjectStore

UPDATED_AT_FIELD = "updatedAt"


def _encode_fields(fields: dict[str, object]) -> dict[str, object]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


def _to_record(row: dict[str, object]) -> dict[str, object]:
    record = dict(row)
    record[OBJECT_ID_FIELD] = str(record.pop("id"))
    return record


@dataclass
class SupabaseObjectStore(ObjectStore):
    """Supabase implementation of the polling object store.

    Each collection is a table with an ``id`` primary key; JSON collections
    live in jsonb columns and ``lastSync`` in a timestamptz column. The
    ``updatedAt`` timestamptz column must be set to ``now()`` by a trigger on
    insert and update; polling compares those server-side stamps.
    """

    client: Client
    stamp_field: str = UPDATED_AT_FIELD

    async def initialize(self) -> None:
        """The client is created eagerly; nothing to connect."""

    async def find_first(
        self,
        collection: str,
        filters: dict[str, object],
        *,
        newer_than: tuple[str, datetime] | None = None,
    ) -> dict[str, object] | None:
        """Return the first row matching the filters."""
        query = self.client.table(collection).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        if newer_than is not None:
            column, since = newer_than
            query = query.gt(column, since.isoformat()).order(column, desc=True)
        response = await asyncio.to_thread(query.limit(1).execute)
        if not response.data:
            return None
        return _to_record(response.data[0])

    async def create(
        self, collection: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Insert a row and return it."""
        response = await asyncio.to_thread(
            self.client.table(collection).insert(_encode_fields(fields)).execute
        )
        if not response.data:
            raise RuntimeError(f"Failed to insert into {collection}")
        return _to_record(response.data[0])

    async def update(
        self, collection: str, object_id: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Update a row by id and return it as stored."""
        response = await asyncio.to_thread(
            self.client.table(collection)
            .update(_encode_fields(fields))
            .eq("id", object_id)
            .execute
        )
        return _to_record(response.data[0]) if response.data else {}

    async def close(self) -> None:
        """The supabase client holds no resources that need closing."""
