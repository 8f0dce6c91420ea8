"""Sync adapter for object stores that offer no push notifications."""

import asyncio
import logging
import random
import string
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from kitchen_inventory.domain.models import SyncSnapshot
from kitchen_inventory.domain.sync import (
    PairingFailure,
    PairingResult,
    generate_pairing_code,
)
from kitchen_inventory.services.storage import KeyValueStorage
from kitchen_inventory.services.sync import SnapshotCallback, SyncAdapter

USER_CODES = "UserCodes"
SYNC_CODES = "SyncCodes"
USER_DATA = "UserData"
LAST_SYNC_FIELD = "lastSync"
OBJECT_ID_FIELD = "objectId"

POLL_INTERVAL_SECONDS = 5.0
DEFAULT_IDENTITY_KEY = "lc_userId"

_ID_ALPHABET = string.ascii_lowercase + string.digits
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """Minimal query/write interface over a hosted object store.

    Records are plain dicts keyed by field name and always carry an
    ``objectId``. Timestamps are passed as aware datetimes. ``stamp_field``
    names the column the backend itself sets on every write.
    """

    stamp_field: str

    async def initialize(self) -> None:
        """Validate configuration and connect; raise on failure."""

    async def find_first(
        self,
        collection: str,
        filters: dict[str, object],
        *,
        newer_than: tuple[str, datetime] | None = None,
    ) -> dict[str, object] | None:
        """Return the first record matching equality filters."""

    async def create(
        self, collection: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Insert a record and return it with its objectId and server stamp."""

    async def update(
        self, collection: str, object_id: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Set the given fields and return the fields the server changed."""

    async def close(self) -> None:
        """Release network resources."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def generate_device_identity() -> str:
    """Return a fresh device identity string."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"user_{int(time.time() * 1000)}_{suffix}"


def parse_timestamp(value: object) -> datetime | None:
    """Parse a stored last-sync value into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class PollingSyncAdapter(SyncAdapter):
    """Sync adapter that detects remote changes by polling a timestamp.

    The device identity is generated locally and kept in durable storage, so
    the same device reuses it across sessions until a pairing code re-homes
    it onto another identity.
    """

    store: ObjectStore
    storage: KeyValueStorage
    service_name: str = "LeanCloud"
    identity_key: str = DEFAULT_IDENTITY_KEY
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    clock: Callable[[], datetime] = _utcnow
    is_initialized: bool = False
    user_id: str | None = None
    sync_code: str | None = None
    _callback: SnapshotCallback | None = field(default=None, init=False, repr=False)
    _poll_task: asyncio.Task | None = field(default=None, init=False, repr=False)
    _last_seen: datetime | None = field(default=None, init=False, repr=False)

    async def initialize(self) -> bool:
        """Connect the underlying object store."""
        if self.is_initialized:
            return True
        try:
            await self.store.initialize()
        except Exception:
            _logger.exception("%s initialization failed", self.service_name)
            return False
        self.is_initialized = True
        _logger.info("%s initialized", self.service_name)
        return True

    async def authenticate(self) -> bool:
        """Reuse the persisted device identity or create one."""
        try:
            stored = self.storage.get(self.identity_key)
            if isinstance(stored, str) and stored:
                self.user_id = stored
            else:
                self.user_id = generate_device_identity()
                self.storage.set(self.identity_key, self.user_id)
        except Exception:
            _logger.exception("%s authentication failed", self.service_name)
            return False
        _logger.info("%s device identity: %s", self.service_name, self.user_id)
        return True

    async def get_pairing_code(self) -> str | None:
        """Return the identity's pairing code, registering a new one if needed."""
        if self.user_id is None:
            return None
        try:
            record = await self.store.find_first(USER_CODES, {"userId": self.user_id})
            if record is not None:
                self.sync_code = str(record["syncCode"])
                return self.sync_code
            code = generate_pairing_code()
            await self.store.create(
                USER_CODES, {"userId": self.user_id, "syncCode": code}
            )
            await self.store.create(SYNC_CODES, {"code": code, "userId": self.user_id})
            self.sync_code = code
            return code
        except Exception:
            _logger.exception("%s pairing code lookup failed", self.service_name)
            return None

    async def save_snapshot(self, snapshot: SyncSnapshot) -> bool:
        """Upsert the identity's data record."""
        if self.user_id is None:
            return False
        fields = {**snapshot.to_payload(), LAST_SYNC_FIELD: self.clock()}
        try:
            record = await self.store.find_first(USER_DATA, {"userId": self.user_id})
            if record is None:
                written = await self.store.create(
                    USER_DATA, {"userId": self.user_id, **fields}
                )
            else:
                written = await self.store.update(
                    USER_DATA, str(record[OBJECT_ID_FIELD]), fields
                )
        except Exception:
            _logger.exception("%s save failed", self.service_name)
            return False
        # Our own write must not come back through the poll loop.
        stamp = parse_timestamp(written.get(self.store.stamp_field))
        if stamp is not None and self._last_seen is not None:
            self._last_seen = max(self._last_seen, stamp)
        return True

    async def load_snapshot(self) -> SyncSnapshot | None:
        """Fetch the identity's data record."""
        if self.user_id is None:
            return None
        try:
            record = await self.store.find_first(USER_DATA, {"userId": self.user_id})
            return SyncSnapshot.model_validate(record) if record else None
        except Exception:
            _logger.exception("%s load failed", self.service_name)
            return None

    async def use_sync_code(self, code: str) -> PairingResult:
        """Adopt the identity behind a pairing code and return its data."""
        try:
            code_record = await self.store.find_first(SYNC_CODES, {"code": code})
            if code_record is None:
                return PairingResult.fail(PairingFailure.CODE_NOT_FOUND)
            target_user_id = str(code_record["userId"])
            data_record = await self.store.find_first(
                USER_DATA, {"userId": target_user_id}
            )
            if data_record is None:
                return PairingResult.fail(PairingFailure.NO_DATA)
            snapshot = SyncSnapshot.model_validate(data_record)
            self.storage.set(self.identity_key, target_user_id)
        except Exception as exc:
            _logger.exception("%s pairing failed", self.service_name)
            return PairingResult.fail(PairingFailure.BACKEND_ERROR, str(exc))

        # Re-homing is permanent: the previous identity is forgotten locally.
        self.user_id = target_user_id
        self.sync_code = code
        self._last_seen = None
        _logger.info("%s adopted identity %s", self.service_name, target_user_id)
        return PairingResult.ok(snapshot)

    def listen_to_changes(self, callback: SnapshotCallback) -> None:
        """Start the poll loop; later calls are ignored while it runs."""
        if self.user_id is None or self._poll_task is not None:
            return
        self._callback = callback
        self._last_seen = None
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def poll_once(self) -> bool:
        """Check for a strictly newer remote record and deliver it.

        Stamps are the backend's own write times, so device clocks never
        take part in the comparison. The first poll after subscribing (or
        after re-homing) only records the current stamp.
        """
        if self.user_id is None or self._callback is None:
            return False
        stamp_field = self.store.stamp_field
        try:
            if self._last_seen is None:
                current = await self.store.find_first(
                    USER_DATA, {"userId": self.user_id}
                )
                stamp = parse_timestamp(current.get(stamp_field)) if current else None
                self._last_seen = stamp or _EPOCH
                return False
            record = await self.store.find_first(
                USER_DATA,
                {"userId": self.user_id},
                newer_than=(stamp_field, self._last_seen),
            )
            if record is None:
                return False
            remote_stamp = parse_timestamp(record.get(stamp_field))
            if remote_stamp is None or remote_stamp <= self._last_seen:
                return False
            snapshot = SyncSnapshot.model_validate(record)
        except Exception:
            _logger.exception("%s poll failed", self.service_name)
            return False
        self._last_seen = remote_stamp
        self._callback(snapshot)
        return True

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_seconds)
            await self.poll_once()

    async def close(self) -> None:
        """Stop polling and close the object store."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self.store.close()
