"""Domain models for device synchronization."""

import random
from dataclasses import dataclass
from enum import StrEnum

from kitchen_inventory.domain.models import SyncSnapshot

PAIRING_CODE_LENGTH = 6


class SyncStatus(StrEnum):
    """Sync indicator states."""

    SYNCED = "synced"
    SYNCING = "syncing"
    OFFLINE = "offline"
    ERROR = "error"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    SyncStatus.SYNCED: "已同步",
    SyncStatus.SYNCING: "同步中...",
    SyncStatus.OFFLINE: "离线模式",
    SyncStatus.ERROR: "同步失败",
}


class PairingFailure(StrEnum):
    """Reasons a pairing code could not be used."""

    CODE_NOT_FOUND = "code_not_found"
    NO_DATA = "no_data"
    BACKEND_ERROR = "backend_error"
    NOT_INITIALIZED = "not_initialized"
    INVALID_CODE = "invalid_code"


_FAILURE_MESSAGES = {
    PairingFailure.CODE_NOT_FOUND: "同步码不存在",
    PairingFailure.NO_DATA: "未找到数据",
    PairingFailure.NOT_INITIALIZED: "未初始化同步服务",
    PairingFailure.INVALID_CODE: "请输入6位同步码",
}


@dataclass(frozen=True)
class PairingResult:
    """Outcome of adopting another device's identity via a pairing code."""

    success: bool
    data: SyncSnapshot | None = None
    message: str | None = None
    failure: PairingFailure | None = None

    @classmethod
    def ok(cls, data: SyncSnapshot) -> "PairingResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls, failure: PairingFailure, message: str | None = None
    ) -> "PairingResult":
        return cls(
            success=False,
            failure=failure,
            message=message or _FAILURE_MESSAGES.get(failure, str(failure)),
        )


@dataclass(frozen=True)
class SyncConfig:
    """Backend selection: the preferred backend plus the enabled set."""

    default_sync: str
    enabled: frozenset[str]

    def is_enabled(self, backend: str) -> bool:
        return backend in self.enabled


def generate_pairing_code() -> str:
    """Return a random six-digit pairing code; uniqueness is not checked."""
    return str(random.randint(100000, 999999))


def is_valid_pairing_code(code: str) -> bool:
    return len(code) == PAIRING_CODE_LENGTH
