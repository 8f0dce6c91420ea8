"""Tests for container wiring."""

import asyncio
import logging

from kitchen_inventory.adapters.json_file_storage import JsonFileStorage
from kitchen_inventory.adapters.polling_sync_adapter import PollingSyncAdapter
from kitchen_inventory.containers import build_container, build_sync_factories
from kitchen_inventory.services.storage import InMemoryStorage
from kitchen_inventory.services.sync import SyncCoordinator


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.storage, JsonFileStorage)
    assert container.kitchen_sync_service.store is container.inventory_store
    assert container.assistant_service.vision_client is not None
    assert container.assistant_service.chat_client is not None
    assert container.sync_coordinator.service_name == "离线"
    asyncio.run(container.close_resources())


def test_build_container_without_api_keys(settings) -> None:
    settings.qwen_api_key = None
    settings.deepseek_api_key = None

    container = build_container(settings, storage=InMemoryStorage())

    assert container.assistant_service.vision_client is None
    assert container.assistant_service.chat_client is None
    asyncio.run(container.close_resources())


def test_leancloud_factory_builds_polling_adapter(settings) -> None:
    settings.leancloud_app_id = "app"
    settings.leancloud_app_key = "key"
    settings.leancloud_server_url = "https://lc.example.com/"
    storage = InMemoryStorage()

    adapter = build_sync_factories(settings, storage)["leancloud"]()

    assert isinstance(adapter, PollingSyncAdapter)
    assert adapter.service_name == "LeanCloud"
    assert adapter.storage is storage
    asyncio.run(adapter.close())


def test_enabled_leancloud_backend_is_selected(settings) -> None:
    settings.leancloud_enabled = True
    settings.leancloud_app_id = "app"
    settings.leancloud_app_key = "key"
    settings.leancloud_server_url = "https://lc.example.com"
    storage = InMemoryStorage()
    coordinator = SyncCoordinator(factories=build_sync_factories(settings, storage))

    async def scenario() -> bool:
        selected = await coordinator.select(settings.sync_config())
        assert coordinator.service_name == "LeanCloud"
        await coordinator.close()
        return selected

    assert asyncio.run(scenario()) is True
    assert str(storage.get("lc_userId")).startswith("user_")


def test_log_level_setting_reaches_package_logger(settings) -> None:
    settings.log_level = "DEBUG"

    container = build_container(settings, storage=InMemoryStorage())

    assert logging.getLogger("kitchen_inventory").level == logging.DEBUG
    asyncio.run(container.close_resources())


def test_sync_config_reflects_toggles(settings) -> None:
    settings.leancloud_enabled = True
    settings.sync_default = " LeanCloud "

    config = settings.sync_config()

    assert config.default_sync == "leancloud"
    assert config.enabled == frozenset({"leancloud"})
