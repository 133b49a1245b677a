"""Pydantic Settings for the launcher pipeline.

All environment variables use the PROFILEGATE_ prefix and may also be read
from a ``.env`` file.
Example: PROFILEGATE_EMAIL=ops@example.com, PROFILEGATE_PASSWORD=...
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_TMP = Path(tempfile.gettempdir())


class LauncherSettings(BaseSettings):
    """Pipeline configuration validated from environment variables."""

    # Remote profile API
    api_base_url: str = "https://api.multilogin.com"
    launcher_url: str = "https://launcher.mlx.yt:45001"
    email: str
    password: SecretStr
    api_timeout_seconds: float = Field(default=30.0, gt=0)

    # Profile shape
    browser_type: str = "mimic"
    os_type: str = "android"
    automation: str = "playwright"
    headless: bool = False
    masking_flags_path: str | None = None  # YAML overrides for masking flags

    # Fingerprint overrides (navigator fields substituted verbatim)
    fingerprint_user_agent: str | None = None
    fingerprint_hardware_concurrency: int | None = Field(default=None, ge=1)
    fingerprint_platform: str | None = None
    fingerprints_path: str | None = None  # JSON list of override records

    # Rotation stores
    proxies_path: str = "config/proxies.json"
    destinations_path: str = "config/destinations.txt"
    proxy_index_path: str = str(_TMP / "profilegate_proxy_index.txt")
    url_index_path: str = str(_TMP / "profilegate_url_index.txt")
    destination_mode: str = "consume"  # consume | cycle
    comment_prefix: str = "#"
    fallback_url_template: str | None = None

    # Verification
    status_url: str  # operator-controlled status page
    marker_selector: str = ".passclass"
    pass_selector: str = ".passclass.pass"
    expected_pass_count: int = Field(default=2, ge=1)

    # Navigation
    referer: str = Field(..., min_length=1)  # fixed Referer header for the destination

    # Timeouts
    connect_timeout_ms: int = Field(default=30000, ge=1000)
    navigation_timeout_ms: int = Field(default=90000, ge=1000)
    marker_timeout_ms: int = Field(default=30000, ge=1000)
    network_idle_timeout_ms: int = Field(default=15000, ge=0)
    settle_delay_ms: int = Field(default=1000, ge=0)

    # Proxy checker
    check_host: str = "www.google.com"
    check_timeout_seconds: float = Field(default=5.0, gt=0)

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # text | json

    model_config = SettingsConfigDict(
        env_prefix="PROFILEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("destination_mode")
    @classmethod
    def _check_destination_mode(cls, value: str) -> str:
        value = value.lower()
        if value not in ("consume", "cycle"):
            raise ValueError("destination_mode must be 'consume' or 'cycle'")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return value
