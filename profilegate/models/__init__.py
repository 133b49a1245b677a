"""Public models for the launcher pipeline."""

from profilegate.models.profile import (
    FingerprintBlock,
    FingerprintOverrides,
    NavigatorBlock,
    ProfileHandle,
    ProfileParameters,
    ProxyBlock,
    QuickProfileRequest,
    Session,
    VerificationResult,
)

__all__ = [
    "FingerprintBlock",
    "FingerprintOverrides",
    "NavigatorBlock",
    "ProfileHandle",
    "ProfileParameters",
    "ProxyBlock",
    "QuickProfileRequest",
    "Session",
    "VerificationResult",
]
