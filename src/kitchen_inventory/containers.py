"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from kitchen_inventory.adapters.firestore_sync_adapter import (
    FirebaseConfig,
    FirestoreSyncAdapter,
)
from kitchen_inventory.adapters.json_file_storage import JsonFileStorage
from kitchen_inventory.adapters.leancloud_object_store import LeanCloudObjectStore
from kitchen_inventory.adapters.openai_assistant_client import OpenAICompatibleClient
from kitchen_inventory.adapters.polling_sync_adapter import PollingSyncAdapter
from kitchen_inventory.adapters.supabase_object_store import SupabaseObjectStore
from kitchen_inventory.app_logging import configure_logging
from kitchen_inventory.config import Settings
from kitchen_inventory.services.assistant import AssistantService
from kitchen_inventory.services.inventory import InventoryStore
from kitchen_inventory.services.kitchen import KitchenSyncService
from kitchen_inventory.services.storage import KeyValueStorage
from kitchen_inventory.services.sync import (
    BACKEND_FIREBASE,
    BACKEND_LEANCLOUD,
    BACKEND_SUPABASE,
    AdapterFactory,
    SyncAdapter,
    SyncCoordinator,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    storage: KeyValueStorage
    inventory_store: InventoryStore
    sync_coordinator: SyncCoordinator
    kitchen_sync_service: KitchenSyncService
    assistant_service: AssistantService
    close_resources: Callable[[], Awaitable[None]]


def build_sync_factories(
    settings: Settings, storage: KeyValueStorage
) -> dict[str, AdapterFactory]:
    """Return lazy adapter constructors keyed by backend name."""

    def firebase() -> SyncAdapter:
        return FirestoreSyncAdapter.create(
            FirebaseConfig(
                api_key=settings.firebase_api_key or "",
                project_id=settings.firebase_project_id or "",
                app_id=settings.firebase_app_id,
            ),
            storage,
        )

    def leancloud() -> SyncAdapter:
        return PollingSyncAdapter(
            store=LeanCloudObjectStore.from_credentials(
                app_id=settings.leancloud_app_id or "",
                app_key=settings.leancloud_app_key or "",
                server_url=settings.leancloud_server_url or "",
            ),
            storage=storage,
            service_name="LeanCloud",
            poll_interval_seconds=settings.sync_poll_interval_seconds,
        )

    def supabase() -> SyncAdapter:
        return PollingSyncAdapter(
            store=SupabaseObjectStore(
                create_client(settings.supabase_url or "", settings.supabase_key or "")
            ),
            storage=storage,
            service_name="Supabase",
            identity_key="sb_userId",
            poll_interval_seconds=settings.sync_poll_interval_seconds,
        )

    return {
        BACKEND_FIREBASE: firebase,
        BACKEND_LEANCLOUD: leancloud,
        BACKEND_SUPABASE: supabase,
    }


def build_container(
    settings: Settings | None = None, storage: KeyValueStorage | None = None
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    resolved_storage = storage or JsonFileStorage.create(resolved_settings.data_dir)
    inventory_store = InventoryStore(storage=resolved_storage)
    inventory_store.load()
    sync_coordinator = SyncCoordinator(
        factories=build_sync_factories(resolved_settings, resolved_storage),
        settle_delay_seconds=resolved_settings.sync_settle_delay_seconds,
    )
    kitchen_sync_service = KitchenSyncService(
        store=inventory_store,
        coordinator=sync_coordinator,
        config=resolved_settings.sync_config(),
    )
    vision_client = (
        OpenAICompatibleClient.create(
            resolved_settings.qwen_api_key, resolved_settings.qwen_base_url
        )
        if resolved_settings.qwen_api_key
        else None
    )
    chat_client = (
        OpenAICompatibleClient.create(
            resolved_settings.deepseek_api_key, resolved_settings.deepseek_base_url
        )
        if resolved_settings.deepseek_api_key
        else None
    )
    assistant_service = AssistantService(
        vision_client=vision_client,
        chat_client=chat_client,
        vision_model=resolved_settings.qwen_model,
        chat_model=resolved_settings.deepseek_model,
    )

    async def close_resources() -> None:
        await kitchen_sync_service.close()
        if vision_client is not None:
            await vision_client.close()
        if chat_client is not None:
            await chat_client.close()

    return AppContainer(
        settings=resolved_settings,
        storage=resolved_storage,
        inventory_store=inventory_store,
        sync_coordinator=sync_coordinator,
        kitchen_sync_service=kitchen_sync_service,
        assistant_service=assistant_service,
        close_resources=close_resources,
    )
