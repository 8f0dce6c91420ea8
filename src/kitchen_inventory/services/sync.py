"""Sync adapter contract and the coordinator that drives one adapter."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from kitchen_inventory.domain.models import SyncSnapshot
from kitchen_inventory.domain.sync import (
    PairingFailure,
    PairingResult,
    SyncConfig,
    SyncStatus,
)

BACKEND_FIREBASE = "firebase"
BACKEND_LEANCLOUD = "leancloud"
BACKEND_SUPABASE = "supabase"
BACKEND_AUTO = "auto"

_AUTO_PREFERENCE = (BACKEND_FIREBASE, BACKEND_LEANCLOUD, BACKEND_SUPABASE)

OFFLINE_SERVICE_NAME = "离线"
SETTLE_DELAY_SECONDS = 0.5

SnapshotCallback = Callable[[SyncSnapshot], None]

_logger = logging.getLogger(__name__)


class SyncAdapter(Protocol):
    """Uniform contract over one remote backend.

    Implementations never raise from these calls: failures are logged and
    reported as False, None, or a failed PairingResult.
    """

    service_name: str
    is_initialized: bool

    async def initialize(self) -> bool:
        """Connect to the backend; idempotent."""

    async def authenticate(self) -> bool:
        """Establish the device or account identity."""

    async def get_pairing_code(self) -> str | None:
        """Return the identity's pairing code, creating one if needed."""

    async def use_sync_code(self, code: str) -> PairingResult:
        """Adopt the identity registered under a pairing code."""

    async def save_snapshot(self, snapshot: SyncSnapshot) -> bool:
        """Upsert the identity's snapshot with a fresh last-sync stamp."""

    async def load_snapshot(self) -> SyncSnapshot | None:
        """Fetch the identity's current snapshot once."""

    def listen_to_changes(self, callback: SnapshotCallback) -> None:
        """Register the single change subscription for this adapter."""

    async def close(self) -> None:
        """Stop listening and release network resources."""


AdapterFactory = Callable[[], SyncAdapter]


@dataclass
class SyncCoordinator:
    """Selects one adapter at startup and serializes traffic through it.

    ``is_syncing`` stays set while a save is outstanding and for a settle
    delay afterwards; inbound notifications seen during that window are
    treated as echoes of our own write and dropped.
    """

    factories: Mapping[str, AdapterFactory]
    settle_delay_seconds: float = SETTLE_DELAY_SECONDS
    on_status: Callable[[SyncStatus], None] | None = None
    adapter: SyncAdapter | None = None
    is_syncing: bool = False
    status: SyncStatus = SyncStatus.OFFLINE
    _release_handle: asyncio.TimerHandle | None = field(
        default=None, init=False, repr=False
    )

    async def select(self, config: SyncConfig) -> bool:
        """Instantiate, initialize, and authenticate the configured backend."""
        backend = _choose_backend(config)
        if backend is None:
            _logger.info("No sync backend enabled; running offline")
            self._set_status(SyncStatus.OFFLINE)
            return False
        factory = self.factories.get(backend)
        if factory is None:
            _logger.warning("Sync backend %s has no adapter factory", backend)
            self._set_status(SyncStatus.OFFLINE)
            return False

        try:
            candidate = factory()
        except Exception:
            _logger.exception("Failed to build %s sync adapter", backend)
            self._set_status(SyncStatus.OFFLINE)
            return False

        if not await candidate.initialize() or not await candidate.authenticate():
            _logger.warning("Sync backend %s unavailable; running offline", backend)
            await candidate.close()
            self._set_status(SyncStatus.OFFLINE)
            return False

        self.adapter = candidate
        _logger.info("Using %s as sync service", candidate.service_name)
        self._set_status(SyncStatus.SYNCED)
        return True

    def is_available(self) -> bool:
        return self.adapter is not None and self.adapter.is_initialized

    @property
    def service_name(self) -> str:
        return self.adapter.service_name if self.adapter else OFFLINE_SERVICE_NAME

    async def get_pairing_code(self) -> str | None:
        if self.adapter is None:
            return None
        return await self.adapter.get_pairing_code()

    async def use_sync_code(self, code: str) -> PairingResult:
        if self.adapter is None:
            return PairingResult.fail(PairingFailure.NOT_INITIALIZED)
        return await self.adapter.use_sync_code(code)

    async def load_snapshot(self) -> SyncSnapshot | None:
        if self.adapter is None:
            return None
        return await self.adapter.load_snapshot()

    async def save_snapshot(self, snapshot: SyncSnapshot) -> bool:
        """Push a snapshot unless another push is still outstanding.

        Overlapping calls are dropped, not queued. The guard is released only
        after the settle delay so the backend's echo of this write is ignored.
        """
        if self.adapter is None or self.is_syncing:
            return False
        self.is_syncing = True
        self._set_status(SyncStatus.SYNCING)
        success = False
        try:
            success = await self.adapter.save_snapshot(snapshot)
        finally:
            self._schedule_release()
            self._set_status(SyncStatus.SYNCED if success else SyncStatus.ERROR)
        return success

    def listen_to_changes(self, callback: SnapshotCallback) -> None:
        """Forward remote changes unless a local push is in flight."""
        if self.adapter is None:
            return

        def guarded(snapshot: SyncSnapshot) -> None:
            if self.is_syncing:
                _logger.debug("Ignoring remote change during local save")
                return
            callback(snapshot)

        self.adapter.listen_to_changes(guarded)

    async def close(self) -> None:
        if self._release_handle is not None:
            self._release_handle.cancel()
            self._release_handle = None
        if self.adapter is not None:
            await self.adapter.close()

    def _schedule_release(self) -> None:
        loop = asyncio.get_running_loop()
        self._release_handle = loop.call_later(
            self.settle_delay_seconds, self._release
        )

    def _release(self) -> None:
        self.is_syncing = False
        self._release_handle = None

    def _set_status(self, status: SyncStatus) -> None:
        self.status = status
        if self.on_status is not None:
            self.on_status(status)


def _choose_backend(config: SyncConfig) -> str | None:
    """Resolve the configured preference to one enabled backend."""
    if config.default_sync == BACKEND_AUTO:
        return next(
            (name for name in _AUTO_PREFERENCE if config.is_enabled(name)), None
        )
    if config.is_enabled(config.default_sync):
        return config.default_sync
    return None
