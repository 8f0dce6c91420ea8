"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from kitchen_inventory.adapters.polling_sync_adapter import (
    OBJECT_ID_FIELD,
    ObjectStore,
    parse_timestamp,
)
from kitchen_inventory.config import Settings
from kitchen_inventory.domain.models import SyncSnapshot
from kitchen_inventory.domain.sync import PairingFailure, PairingResult
from kitchen_inventory.services.assistant import AssistantClient
from kitchen_inventory.services.inventory import InventoryStore
from kitchen_inventory.services.storage import InMemoryStorage
from kitchen_inventory.services.sync import SnapshotCallback, SyncAdapter

# 2026-10-14 is a Wednesday.
WEDNESDAY_EVENING = datetime(2026, 10, 14, 18, 30)


@dataclass
class FakeSyncAdapter(SyncAdapter):
    """Scriptable sync adapter that records traffic."""

    service_name: str = "Fake"
    is_initialized: bool = False
    init_ok: bool = True
    auth_ok: bool = True
    save_ok: bool = True
    remote: SyncSnapshot | None = None
    codes: dict[str, SyncSnapshot] = field(default_factory=dict)
    saved: list[SyncSnapshot] = field(default_factory=list)
    callbacks: list[SnapshotCallback] = field(default_factory=list)
    release_save: asyncio.Event | None = None
    closed: bool = False

    async def initialize(self) -> bool:
        self.is_initialized = self.init_ok
        return self.init_ok

    async def authenticate(self) -> bool:
        return self.auth_ok

    async def get_pairing_code(self) -> str | None:
        return "123456"

    async def use_sync_code(self, code: str) -> PairingResult:
        if code not in self.codes:
            return PairingResult.fail(PairingFailure.CODE_NOT_FOUND)
        return PairingResult.ok(self.codes[code])

    async def save_snapshot(self, snapshot: SyncSnapshot) -> bool:
        if self.release_save is not None:
            await self.release_save.wait()
        self.saved.append(snapshot)
        return self.save_ok

    async def load_snapshot(self) -> SyncSnapshot | None:
        return self.remote

    def listen_to_changes(self, callback: SnapshotCallback) -> None:
        if self.callbacks:
            return
        self.callbacks.append(callback)

    def emit(self, snapshot: SyncSnapshot) -> None:
        for callback in self.callbacks:
            callback(snapshot)

    async def close(self) -> None:
        self.closed = True


@dataclass
class InMemoryObjectStore(ObjectStore):
    """Object store keeping records in dictionaries.

    Every write is stamped from a server clock that advances one second per
    write, independent of any device clock.
    """

    collections: dict[str, list[dict[str, object]]] = field(default_factory=dict)
    stamp_field: str = "updatedAt"
    server_time: datetime = datetime(2026, 10, 14, 10, 0, tzinfo=UTC)
    fail: bool = False
    closed: bool = False
    _next_id: int = 0

    def _tick(self) -> datetime:
        self.server_time += timedelta(seconds=1)
        return self.server_time

    async def initialize(self) -> None:
        if self.fail:
            raise ConnectionError("store unavailable")

    async def find_first(
        self,
        collection: str,
        filters: dict[str, object],
        *,
        newer_than: tuple[str, datetime] | None = None,
    ) -> dict[str, object] | None:
        if self.fail:
            raise ConnectionError("store unavailable")
        for record in self.collections.get(collection, []):
            if any(record.get(key) != value for key, value in filters.items()):
                continue
            if newer_than is not None:
                column, since = newer_than
                stamp = parse_timestamp(record.get(column))
                if stamp is None or stamp <= since:
                    continue
            return dict(record)
        return None

    async def create(
        self, collection: str, fields: dict[str, object]
    ) -> dict[str, object]:
        if self.fail:
            raise ConnectionError("store unavailable")
        self._next_id += 1
        record = {
            **fields,
            OBJECT_ID_FIELD: f"obj{self._next_id}",
            self.stamp_field: self._tick(),
        }
        self.collections.setdefault(collection, []).append(record)
        return dict(record)

    async def update(
        self, collection: str, object_id: str, fields: dict[str, object]
    ) -> dict[str, object]:
        if self.fail:
            raise ConnectionError("store unavailable")
        for record in self.collections.get(collection, []):
            if record[OBJECT_ID_FIELD] == object_id:
                record.update(fields)
                record[self.stamp_field] = self._tick()
                return {self.stamp_field: record[self.stamp_field]}
        return {}

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeAssistantClient(AssistantClient):
    """Assistant client returning a canned answer."""

    answer: str = "[]"
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(
        self, *, model: str, messages: list[dict[str, object]], max_tokens: int
    ) -> str:
        self.calls.append(
            {"model": model, "messages": messages, "max_tokens": max_tokens}
        )
        return self.answer


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def store(storage: InMemoryStorage) -> InventoryStore:
    return InventoryStore(storage=storage, clock=lambda: WEDNESDAY_EVENING)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        sync_default="auto",
        firebase_enabled=False,
        leancloud_enabled=False,
        supabase_enabled=False,
        qwen_api_key="qwen-key",
        deepseek_api_key="deepseek-key",
    )
