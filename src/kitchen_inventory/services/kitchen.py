"""Wires the inventory store to the sync coordinator."""

import asyncio
import logging
from dataclasses import dataclass, field

from kitchen_inventory.domain.models import SyncSnapshot
from kitchen_inventory.domain.sync import (
    PairingFailure,
    PairingResult,
    SyncConfig,
    is_valid_pairing_code,
)
from kitchen_inventory.services.inventory import InventoryStore
from kitchen_inventory.services.sync import SyncCoordinator

_logger = logging.getLogger(__name__)


@dataclass
class KitchenSyncService:
    """Keeps the local store and the remote backend in step.

    Local saves are pushed fire-and-forget; remote changes replace the local
    collections wholesale (last writer wins).
    """

    store: InventoryStore
    coordinator: SyncCoordinator
    config: SyncConfig
    _pending: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        self.store.on_saved = self.handle_local_save

    async def start(self) -> bool:
        """Select a backend, subscribe to changes, and pull the cloud copy."""
        if not await self.coordinator.select(self.config):
            _logger.info("Sync unavailable; using local data only")
            return False
        self.coordinator.listen_to_changes(self.apply_remote)
        cloud = await self.coordinator.load_snapshot()
        if cloud is not None:
            self.store.replace_snapshot(cloud)
        return True

    def apply_remote(self, snapshot: SyncSnapshot) -> None:
        """Replace local state with a snapshot received from the backend."""
        _logger.info("Received remote data update")
        self.store.replace_snapshot(snapshot)

    def handle_local_save(self, snapshot: SyncSnapshot) -> None:
        """Schedule a background push of a freshly saved snapshot."""
        if not self.coordinator.is_available():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("No running event loop; local change not pushed")
            return
        task = loop.create_task(self.coordinator.save_snapshot(snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def pairing_code(self) -> str | None:
        return await self.coordinator.get_pairing_code()

    async def use_sync_code(self, code: str) -> PairingResult:
        """Link this device to another device's data via its pairing code."""
        if not self.coordinator.is_available():
            return PairingResult.fail(PairingFailure.NOT_INITIALIZED)
        cleaned = code.strip()
        if not is_valid_pairing_code(cleaned):
            return PairingResult.fail(PairingFailure.INVALID_CODE)
        result = await self.coordinator.use_sync_code(cleaned)
        if result.success and result.data is not None:
            self.store.replace_snapshot(result.data)
            self.store.save()
        return result

    async def flush(self) -> None:
        """Wait for pushes that are already scheduled."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def close(self) -> None:
        await self.flush()
        await self.coordinator.close()
