"""Settings for the bizframe request registry.

Every directory the registry touches (resource search roots, compiled cache,
session files, logs) and every well-known service name is declared here, so
an application is configured entirely through ``BIZFRAME_*`` environment
variables or a ``.env`` file.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not per request
    - **One root:** Relative directories resolve against ``app_dir``
    - **Sensible defaults:** A bare checkout works with file sessions

Examples:
    >>> from bizframe.core.settings import BizFrameSettings
    >>> s = BizFrameSettings(app_dir="/srv/app")
    >>> s.cache_dir
    PosixPath('/srv/app/cache/metadata_cmp')

Tags:
    settings, configuration, pydantic, environment, bizframe

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DIRECTORY_DEFAULTS = {
    "module_dir": "modules",
    "metadata_dir": "metadata",
    "template_dir": "templates",
    "library_dir": "lib",
    "message_dir": "messages",
    "shared_dir": "bin",
    "cache_dir": "cache/metadata_cmp",
    "session_dir": "session",
    "log_dir": "log",
}


class BizFrameSettings(BaseSettings):
    """Application-wide settings shared by every request registry.

    Fields
    ──────
    app_dir          : Application root; relative paths resolve against it
    config_file      : Application config (database definitions)
    *_dir            : Resource search roots, cache, sessions, logs
    session_backend  : ``memory`` | ``file`` | ``redis``
    *_service        : Well-known service names (unqualified)
    """

    model_config = SettingsConfigDict(
        env_prefix="BIZFRAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Layout ───────────────────────────────────────────────────
    app_dir: Path = Field(default_factory=Path.cwd)
    config_file: Path = Field(default=Path("config.toml"))

    module_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["module_dir"]))
    metadata_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["metadata_dir"]))
    template_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["template_dir"]))
    library_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["library_dir"]))
    message_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["message_dir"]))
    shared_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["shared_dir"]))
    cache_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["cache_dir"]))

    # ── Sessions ─────────────────────────────────────────────────
    session_backend: Literal["memory", "file", "redis"] = "file"
    session_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["session_dir"]))
    session_cookie: str = "BIZFRAME_SESSID"
    session_ttl_seconds: int = Field(default=1440, ge=1)
    redis_url: str = "redis://localhost:6379/0"

    # ── Services ─────────────────────────────────────────────────
    default_package: str = "service"
    acl_service: str = "accessService"
    profile_service: str = "profileService"
    profile_mode: Literal["init", "read_only"] = "init"
    log_service: str = "logService"

    # ── Observability ────────────────────────────────────────────
    log_dir: Path = Field(default=Path(_DIRECTORY_DEFAULTS["log_dir"]))
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    @model_validator(mode="after")
    def _anchor_directories(self) -> BizFrameSettings:
        """Resolve relative directories against ``app_dir``."""
        self.app_dir = self.app_dir.resolve()
        for name in (*_DIRECTORY_DEFAULTS, "config_file"):
            value: Path = getattr(self, name)
            if not value.is_absolute():
                setattr(self, name, self.app_dir / value)
        return self


@lru_cache(maxsize=1)
def get_settings() -> BizFrameSettings:
    """Cached settings — loaded once per process."""
    return BizFrameSettings()


__all__ = [
    "BizFrameSettings",
    "get_settings",
]
