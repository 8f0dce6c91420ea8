"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from kitchen_inventory.domain.sync import SyncConfig

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    data_dir: str = "~/.kitchen_inventory"
    sync_default: str = "auto"
    sync_poll_interval_seconds: float = 5.0
    sync_settle_delay_seconds: float = 0.5
    firebase_enabled: bool = False
    firebase_api_key: str | None = None
    firebase_project_id: str | None = None
    firebase_app_id: str | None = None
    leancloud_enabled: bool = False
    leancloud_app_id: str | None = None
    leancloud_app_key: str | None = None
    leancloud_server_url: str | None = None
    supabase_enabled: bool = False
    supabase_url: str | None = None
    supabase_key: str | None = None
    qwen_api_key: str | None = None
    qwen_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    qwen_model: str = "qwen3-vl-plus"
    deepseek_api_key: str | None = None
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-chat"
    environment: str = _ENVIRONMENT
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def sync_config(self) -> SyncConfig:
        """Return the backend selection derived from the toggles."""
        enabled = {
            name
            for name, flag in (
                ("firebase", self.firebase_enabled),
                ("leancloud", self.leancloud_enabled),
                ("supabase", self.supabase_enabled),
            )
            if flag
        }
        return SyncConfig(
            default_sync=self.sync_default.strip().lower(),
            enabled=frozenset(enabled),
        )
