"""Pipeline controller -- one resource-consumption cycle per invocation.

Sequence: sign in -> select proxy -> provision profile -> connect ->
verify environment -> draw destination -> open destination.

There is a single fault boundary in ``run()``: any stage error is emitted
and converted into exit code 1, and the provisioned browser is closed (or
stopped through the launcher when it was never attached). A run that
reaches ``OPEN`` skips cleanup entirely and holds the browser open until
the process is terminated from outside.

Cancellation (Ctrl+C) before ``OPEN`` runs the same cleanup and then
propagates; cancellation while holding open leaves the browser up.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from profilegate.browser.fingerprint import FingerprintSource
from profilegate.browser.navigator import NavigatorState, VerificationGatedNavigator
from profilegate.errors import ConfigError, PipelineError
from profilegate.events import EventSink, PipelineEvent
from profilegate.integration.provisioner import ProfileProvisioner
from profilegate.integration.session_manager import Credentials, SessionManager
from profilegate.models.profile import ProfileHandle
from profilegate.rotation.fallback import FallbackDestinationFactory
from profilegate.rotation.rotator import ResourceRotator, describe_draw
from profilegate.rotation.types import ConfigInvalid, Drawn, Exhausted, ProxyDescriptor

logger = logging.getLogger(__name__)

STAGE = "pipeline"


async def wait_forever() -> None:
    """Suspend until the task is cancelled or the process is killed."""
    await asyncio.Event().wait()


@dataclass
class RunOutcome:
    """Result of one pipeline run."""

    exit_code: int
    state: NavigatorState
    proxy: ProxyDescriptor | None = None
    profile: ProfileHandle | None = None
    destination: str | None = None
    destination_source: str | None = None
    error: PipelineError | None = None


class PipelineController:
    """Sequences the stages of one run.

    Dependencies are injected via the constructor so the controller is
    testable without real browsers or network calls.
    """

    def __init__(
        self,
        *,
        credentials: Credentials,
        session_manager: SessionManager,
        rotator: ResourceRotator,
        provisioner: ProfileProvisioner,
        navigator_factory: Callable[[], VerificationGatedNavigator],
        events: EventSink,
        fallback: FallbackDestinationFactory | None = None,
        fingerprints: FingerprintSource | None = None,
        hold_open: Callable[[], Awaitable[None]] = wait_forever,
    ) -> None:
        self._credentials = credentials
        self._session_manager = session_manager
        self._rotator = rotator
        self._provisioner = provisioner
        self._navigator_factory = navigator_factory
        self._events = events
        self._fallback = fallback or FallbackDestinationFactory(None)
        self._fingerprints = fingerprints or FingerprintSource()
        self._hold_open = hold_open

        self._outcome: RunOutcome | None = None

    @property
    def state(self) -> NavigatorState:
        """State reached by the current or most recent run."""
        return self._outcome.state if self._outcome is not None else NavigatorState.IDLE

    def _emit(self, name: str, message: str, level: int = logging.INFO, **detail: object) -> None:
        self._events.emit(
            PipelineEvent(stage=STAGE, name=name, message=message, level=level, detail=detail)
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> RunOutcome:
        """Execute one run. Returns only on failure or after ``hold_open`` ends."""
        outcome = RunOutcome(exit_code=1, state=NavigatorState.IDLE)
        self._outcome = outcome
        navigator: VerificationGatedNavigator | None = None

        try:
            # 1. Authenticate (at most once per run)
            session = await self._session_manager.ensure_session(self._credentials)
            self._emit("signed_in", "signed in to the profile API")

            # 2. Select proxy -- the cursor is committed by this call
            outcome.proxy = self._rotator.next_proxy()
            self._emit(
                "proxy_selected",
                f"using proxy {outcome.proxy.display}",
                proxy_used=outcome.proxy.display,
            )

            # 3. Provision and start a remote browser
            overrides = self._fingerprints.pick()
            outcome.profile = await self._provisioner.provision(outcome.proxy, session, overrides)
            self._emit(
                "provisioned",
                f"profile {outcome.profile.profile_id} at {outcome.profile.connection_endpoint}",
                profile_id=outcome.profile.profile_id,
                endpoint=outcome.profile.connection_endpoint,
            )

            # 4. Connect, verify, draw, navigate
            navigator = self._navigator_factory()
            result = await navigator.run(
                outcome.profile.connection_endpoint,
                self._draw_destination,
            )
        except PipelineError as exc:
            outcome.error = exc
            self._emit(
                "failed",
                f"{exc.stage} stage failed: {exc.message}",
                level=logging.ERROR,
                error_reason=exc.message,
                exit_code=exc.exit_code,
            )
            outcome.exit_code = exc.exit_code
            outcome.state = NavigatorState.FAILED
            await self._cleanup(navigator, outcome.profile)
            return outcome
        except asyncio.CancelledError:
            outcome.state = NavigatorState.FAILED
            self._emit(
                "interrupted",
                "run interrupted before the destination opened",
                level=logging.WARNING,
            )
            await self._cleanup(navigator, outcome.profile)
            raise
        except Exception as exc:
            logger.exception("Unexpected pipeline error")
            outcome.error = PipelineError(f"Unexpected error: {exc}")
            outcome.state = NavigatorState.FAILED
            await self._cleanup(navigator, outcome.profile)
            return outcome

        # OPEN is terminal: the browser stays up and cleanup is not run.
        outcome.state = result.state
        outcome.exit_code = 0
        self._emit(
            "holding_open",
            "destination open; browser held until the process is stopped",
            destination=outcome.destination,
        )
        await self._hold_open()
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _draw_destination(self) -> str:
        """Draw a destination; called by the navigator only after PASSED."""
        result = self._rotator.next_destination()

        if isinstance(result, Exhausted):
            remedy = "using fallback" if self._fallback.enabled else "no fallback configured"
            self._emit(
                "destinations_exhausted",
                f"destination queue {describe_draw(result)}; {remedy}",
                level=logging.WARNING,
                fallback=self._fallback.enabled,
            )
            result = self._fallback.generate()

        if isinstance(result, ConfigInvalid):
            raise ConfigError(f"No destination available: {result.reason}")

        assert isinstance(result, Drawn)
        assert self._outcome is not None
        self._outcome.destination = result.item
        self._outcome.destination_source = result.source
        self._emit(
            "destination_drawn",
            f"destination {describe_draw(result)}",
            destination=result.item,
            destination_source=result.source,
        )
        return result.item

    async def _cleanup(
        self,
        navigator: VerificationGatedNavigator | None,
        profile: ProfileHandle | None,
    ) -> None:
        """Release the remote browser after a failed or interrupted run."""
        if navigator is not None and navigator.attached:
            self._emit("closing_browser", "closing browser")
            await navigator.close()
            return

        if navigator is not None:
            await navigator.close()
        session = self._session_manager.current_session
        if profile is not None and session is not None:
            self._emit("stopping_profile", f"stopping profile {profile.profile_id} via launcher")
            await self._provisioner.stop(profile, session)
