"""Runtime configuration — env-driven, passed explicitly.

Settings are read from ``SUBSYNC_*`` environment variables or a ``.env``
file. The object is constructed once at startup and handed to the adapter
factory and the CLI; nothing in the core reads it from module state.

Examples
--------
Override via environment::

    export SUBSYNC_SYNC_PLATFORM=gist
    export SUBSYNC_GIST_TOKEN=ghp_...
    export SUBSYNC_TIMEOUT_SECONDS=15

Or via .env file::

    SUBSYNC_SYNC_PLATFORM=gitlab
    SUBSYNC_GITLAB_TOKEN=glpat-...
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from subsync import __version__
from subsync.models.sync import SyncPlatform


class SubsyncSettings(BaseSettings):
    """Settings consumed by the remote adapter factory and the CLI."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SUBSYNC_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    base_url: str = "http://localhost:3000"
    timeout_seconds: int = Field(default=30, ge=5, le=60)
    user_agent: str = f"subsync/{__version__}"

    # Sync provider
    sync_platform: SyncPlatform = SyncPlatform.NONE
    sync_filename: str = "subsync-artifacts.json"

    # Credentials, per platform
    gist_token: str = ""
    gist_id: str = ""
    github_api_url: str = "https://api.github.com"
    gitlab_token: str = ""
    gitlab_snippet_id: str = ""
    gitlab_api_url: str = "https://gitlab.com/api/v4"

    # Auto-upload: minimum age of the last sync, and how often to check
    sync_interval_minutes: int = Field(default=60, ge=1, le=1440)
    auto_sync_check_seconds: int = Field(default=1800, ge=1)

    # Local storage
    store_path: Path = Path(".subsync/artifacts.json")

    # Observability
    log_level: str = "INFO"

