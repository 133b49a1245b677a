"""Browser-side components: fingerprint overrides and the verification-gated navigator."""

from profilegate.browser.fingerprint import FingerprintSource
from profilegate.browser.navigator import (
    NavigationOutcome,
    NavigatorConfig,
    NavigatorState,
    PlaywrightConnector,
    VerificationGatedNavigator,
)

__all__ = [
    "FingerprintSource",
    "NavigationOutcome",
    "NavigatorConfig",
    "NavigatorState",
    "PlaywrightConnector",
    "VerificationGatedNavigator",
]
