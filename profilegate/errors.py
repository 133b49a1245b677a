"""Pipeline error hierarchy.

All pipeline-specific errors extend PipelineError. Each error names the
stage that raised it; the pipeline controller is the single place where
these are caught and converted into a process exit code.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base error for all pipeline stage failures."""

    stage: str = "pipeline"
    exit_code: int = 1
    message: str = "Pipeline failed"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class ConfigError(PipelineError):
    """Missing or empty required resource, or invalid configuration."""

    stage = "config"
    message = "Invalid configuration"


class AuthError(PipelineError):
    """Remote sign-in rejected or returned no token."""

    stage = "auth"
    message = "Authentication failed"


class ProvisionError(PipelineError):
    """Remote profile creation rejected or response malformed."""

    stage = "provision"
    message = "Profile provisioning failed"


class BrowserConnectionError(PipelineError):
    """Could not attach to the provisioned browser."""

    stage = "connect"
    message = "Could not connect to the provisioned browser"


class VerificationFailure(PipelineError):
    """Environment check did not produce the expected pass markers."""

    stage = "verify"
    message = "Environment verification failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        pass_count: int | None = None,
        **kwargs: object,
    ) -> None:
        self.pass_count = pass_count
        super().__init__(message, pass_count=pass_count, **kwargs)


class NavigationError(PipelineError):
    """Destination page failed to load.

    Raised after the destination has been consumed; the destination is lost.
    """

    stage = "navigate"
    message = "Destination navigation failed"
