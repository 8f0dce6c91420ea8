"""Tests for wiring the inventory store to sync."""

import asyncio

from kitchen_inventory.domain.models import IngredientType, SyncSnapshot
from kitchen_inventory.domain.sync import PairingFailure, SyncConfig
from kitchen_inventory.services.inventory import InventoryStore
from kitchen_inventory.services.kitchen import KitchenSyncService
from kitchen_inventory.services.sync import SyncCoordinator
from tests.conftest import FakeSyncAdapter

LEANCLOUD_ONLY = SyncConfig(default_sync="leancloud", enabled=frozenset({"leancloud"}))


def _snapshot(name: str) -> SyncSnapshot:
    return SyncSnapshot.model_validate(
        {"ingredients": [{"id": 1, "name": name, "type": "蔬菜", "quantity": 1, "unit": "根"}]}
    )


def _service(
    store: InventoryStore,
    adapter: FakeSyncAdapter,
    config: SyncConfig = LEANCLOUD_ONLY,
) -> KitchenSyncService:
    coordinator = SyncCoordinator(
        factories={"leancloud": lambda: adapter}, settle_delay_seconds=0.01
    )
    return KitchenSyncService(store=store, coordinator=coordinator, config=config)


def test_start_pulls_cloud_copy(store: InventoryStore) -> None:
    adapter = FakeSyncAdapter(remote=_snapshot("云端葱"))
    service = _service(store, adapter)

    async def scenario() -> bool:
        started = await service.start()
        await service.close()
        return started

    assert asyncio.run(scenario()) is True
    assert store.ingredients[0].name == "云端葱"
    assert adapter.saved == []
    assert adapter.closed is True


def test_start_offline_keeps_local_data(store: InventoryStore) -> None:
    store.add_ingredient("葱", IngredientType.VEGETABLE, 1, "根")
    adapter = FakeSyncAdapter(init_ok=False, remote=_snapshot("云端葱"))
    service = _service(store, adapter)

    assert asyncio.run(service.start()) is False
    assert store.ingredients[0].name == "葱"


def test_local_mutation_is_pushed(store: InventoryStore) -> None:
    adapter = FakeSyncAdapter()
    service = _service(store, adapter)

    async def scenario() -> None:
        await service.start()
        store.add_ingredient("葱", IngredientType.VEGETABLE, 1, "根")
        await service.flush()
        await asyncio.sleep(0.05)
        store.add_ingredient("蒜", IngredientType.SEASONING, 1, "颗")
        await service.flush()
        await service.close()

    asyncio.run(scenario())

    assert [len(s.ingredients) for s in adapter.saved] == [1, 2]


def test_mutation_outside_event_loop_stays_local(store: InventoryStore) -> None:
    adapter = FakeSyncAdapter()
    service = _service(store, adapter)
    asyncio.run(service.start())

    store.add_ingredient("葱", IngredientType.VEGETABLE, 1, "根")

    assert adapter.saved == []
    assert store.ingredients[0].name == "葱"


def test_remote_change_replaces_local_without_push(store: InventoryStore) -> None:
    adapter = FakeSyncAdapter()
    service = _service(store, adapter)

    async def scenario() -> None:
        await service.start()
        adapter.emit(_snapshot("远程"))
        await service.flush()
        await service.close()

    asyncio.run(scenario())

    assert [i.name for i in store.ingredients] == ["远程"]
    assert adapter.saved == []


def test_use_sync_code_validates_and_adopts(store: InventoryStore) -> None:
    adapter = FakeSyncAdapter(codes={"123456": _snapshot("共享")})
    service = _service(store, adapter)

    async def scenario():  # type: ignore[no-untyped-def]
        await service.start()
        invalid = await service.use_sync_code("12a")
        unknown = await service.use_sync_code("999999")
        adopted = await service.use_sync_code(" 123456 ")
        await service.close()
        return invalid, unknown, adopted

    invalid, unknown, adopted = asyncio.run(scenario())

    assert invalid.failure is PairingFailure.INVALID_CODE
    assert unknown.failure is PairingFailure.CODE_NOT_FOUND
    assert adopted.success is True
    assert [i.name for i in store.ingredients] == ["共享"]
    assert [i.name for s in adapter.saved for i in s.ingredients] == ["共享"]


def test_use_sync_code_when_offline(store: InventoryStore) -> None:
    service = _service(store, FakeSyncAdapter(), SyncConfig("auto", frozenset()))

    result = asyncio.run(service.use_sync_code("123456"))

    assert result.failure is PairingFailure.NOT_INITIALIZED
    assert asyncio.run(service.pairing_code()) is None
