"""Configuration models describing Cain settings."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CainBaseModel(BaseModel):
    """Shared configuration for Cain Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class StorageSettings(CainBaseModel):
    """Where records and categories live.

    Attributes:
        root_dir: Archive root; records are created below it. Empty means the
            current working directory.
        db_path: SQLite file backing the category store.
        category_backend: Source of the category hierarchy, either the
            directory layout or the SQL store.
    """

    root_dir: str = ""
    db_path: str = "~/.local/share/cain/cain.db"
    category_backend: Literal["directory", "sql"] = "directory"


class CaptureSettings(CainBaseModel):
    """Options passed to the webpage snapshot tool.

    Attributes:
        command: Executable used to snapshot pages.
        download_fonts: Whether web fonts are embedded in snapshots.
        disable_js: Whether scripts are stripped from snapshots.
    """

    command: str = "monolith"
    download_fonts: bool = False
    disable_js: bool = True


class TwitterSettings(CainBaseModel):
    """Twitter API authentication and limits.

    Attributes:
        auth: ``guest`` for cached guest tokens, ``static`` for OAuth1 signing.
        consumer_key: OAuth1 consumer key.
        consumer_secret: OAuth1 consumer secret.
        access_token: OAuth1 access token.
        access_token_secret: OAuth1 access token secret.
        timeout_seconds: Read timeout for API calls.
        max_response_bytes: Largest API response body accepted.
    """

    auth: Literal["guest", "static"] = "guest"
    consumer_key: Optional[str] = None
    consumer_secret: Optional[str] = None
    access_token: Optional[str] = None
    access_token_secret: Optional[str] = None
    timeout_seconds: float = 30.0
    max_response_bytes: int = 10 * 1024 * 1024


class DownloadSettings(CainBaseModel):
    """Limits for downloading remote resources.

    Attributes:
        timeout_seconds: Read timeout per request.
        max_bytes: Largest resource body accepted.
    """

    timeout_seconds: float = 60.0
    max_bytes: int = 1_000_000_000


class LoggingSettings(CainBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        timestamps: Whether log lines include the time.
    """

    level: str = "WARNING"
    timestamps: bool = False


class CainConfig(CainBaseModel):
    """Top-level configuration struct for Cain."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    twitter: TwitterSettings = Field(default_factory=TwitterSettings)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "CainBaseModel",
    "StorageSettings",
    "CaptureSettings",
    "TwitterSettings",
    "DownloadSettings",
    "LoggingSettings",
    "CainConfig",
]
