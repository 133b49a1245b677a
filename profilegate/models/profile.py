"""Provisioning request models and per-run state models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from profilegate.config.masking import MaskingFlags


# ---------------------------------------------------------------------------
# Provisioning request (sent to the launcher)
# ---------------------------------------------------------------------------


class ProxyBlock(BaseModel):
    """Proxy configuration nested in the profile parameters."""

    type: str = "socks5"
    host: str
    port: int = Field(..., ge=1, le=65535)
    username: str = ""
    password: str = ""
    save_traffic: bool = False


class NavigatorBlock(BaseModel):
    """Navigator fields substituted verbatim when overrides are supplied."""

    user_agent: str
    hardware_concurrency: int = Field(..., ge=1)
    platform: str


class FingerprintBlock(BaseModel):
    navigator: NavigatorBlock | None = None


class ProfileParameters(BaseModel):
    proxy: ProxyBlock
    fingerprint: FingerprintBlock = Field(default_factory=FingerprintBlock)
    flags: MaskingFlags = Field(default_factory=MaskingFlags)


class QuickProfileRequest(BaseModel):
    """Body of a quick-profile provisioning request."""

    browser_type: str = "mimic"
    os_type: str = "android"
    parameters: ProfileParameters
    automation: str = "playwright"
    is_headless: bool = False


# ---------------------------------------------------------------------------
# Per-run state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FingerprintOverrides:
    """Operator-supplied navigator values for one profile."""

    user_agent: str
    hardware_concurrency: int
    platform: str


@dataclass(frozen=True)
class Session:
    """Bearer token for the remote API. Lives in process memory only."""

    bearer_token: str = field(repr=False)
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def auth_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.bearer_token}"}


@dataclass(frozen=True)
class ProfileHandle:
    """A provisioned, running remote browser owned by one pipeline run."""

    profile_id: str
    port: int

    @property
    def connection_endpoint(self) -> str:
        return f"http://127.0.0.1:{self.port}"


@dataclass(frozen=True)
class VerificationResult:
    passed: bool
    pass_count: int
