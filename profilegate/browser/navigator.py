"""Verification-gated navigation over a CDP-attached browser.

State machine::

    CONNECTING -> PAGE_READY -> CHECKING_ENVIRONMENT -> PASSED | FAILED
    PASSED -> CONSUMING_DESTINATION -> NAVIGATING -> OPEN

``FAILED`` and ``OPEN`` are terminal. The destination is drawn only after
``PASSED``: a run that fails verification never consumes one. The
destination opens in a new page of the same context, never in the
verification page.

Every transition is emitted as a ``PipelineEvent``; this module does not
format log output itself.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from profilegate.errors import (
    BrowserConnectionError,
    NavigationError,
    PipelineError,
    VerificationFailure,
)
from profilegate.events import EventSink, PipelineEvent
from profilegate.models.profile import VerificationResult

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)

STAGE = "navigator"


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class NavigatorState(str, Enum):
    """States of the verification-gated navigator."""

    IDLE = "idle"
    CONNECTING = "connecting"
    PAGE_READY = "page_ready"
    CHECKING_ENVIRONMENT = "checking_environment"
    PASSED = "passed"
    FAILED = "failed"
    CONSUMING_DESTINATION = "consuming_destination"
    NAVIGATING = "navigating"
    OPEN = "open"


_ALLOWED: dict[NavigatorState, set[NavigatorState]] = {
    NavigatorState.IDLE: {NavigatorState.CONNECTING},
    NavigatorState.CONNECTING: {NavigatorState.PAGE_READY, NavigatorState.FAILED},
    NavigatorState.PAGE_READY: {NavigatorState.CHECKING_ENVIRONMENT, NavigatorState.FAILED},
    NavigatorState.CHECKING_ENVIRONMENT: {NavigatorState.PASSED, NavigatorState.FAILED},
    NavigatorState.PASSED: {NavigatorState.CONSUMING_DESTINATION},
    NavigatorState.CONSUMING_DESTINATION: {NavigatorState.NAVIGATING, NavigatorState.FAILED},
    NavigatorState.NAVIGATING: {NavigatorState.OPEN, NavigatorState.FAILED},
    NavigatorState.FAILED: set(),
    NavigatorState.OPEN: set(),
}


@dataclass(frozen=True)
class NavigatorConfig:
    """Fixed parameters of the environment check and destination navigation."""

    status_url: str
    referer: str
    marker_selector: str = ".passclass"
    pass_selector: str = ".passclass.pass"
    expected_pass_count: int = 2
    connect_timeout_ms: int = 30000
    navigation_timeout_ms: int = 90000
    marker_timeout_ms: int = 30000
    network_idle_timeout_ms: int = 15000
    settle_delay_ms: int = 1000


@dataclass(frozen=True)
class NavigationOutcome:
    state: NavigatorState
    verification: VerificationResult
    destination: str


# ---------------------------------------------------------------------------
# Browser connector
# ---------------------------------------------------------------------------


class BrowserConnector(Protocol):
    async def connect(self, endpoint: str, timeout_ms: int) -> "Browser": ...

    async def disconnect(self) -> None: ...


class PlaywrightConnector:
    """Attaches Playwright's Chromium driver to a running browser over CDP."""

    def __init__(self) -> None:
        self._playwright: "Playwright | None" = None

    async def connect(self, endpoint: str, timeout_ms: int) -> "Browser":
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.connect_over_cdp(endpoint, timeout=timeout_ms)

    async def disconnect(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


# ---------------------------------------------------------------------------
# Navigator
# ---------------------------------------------------------------------------


class VerificationGatedNavigator:
    """Connects, verifies the environment, then (only then) navigates.

    Parameters
    ----------
    config:
        Status page, selectors, referer and timeouts.
    events:
        Sink receiving one event per state transition.
    connector:
        Browser attach strategy; defaults to Playwright over CDP.
    """

    def __init__(
        self,
        config: NavigatorConfig,
        events: EventSink,
        *,
        connector: BrowserConnector | None = None,
    ) -> None:
        self._config = config
        self._events = events
        self._connector = connector or PlaywrightConnector()
        self._state = NavigatorState.IDLE
        self._browser: "Browser | None" = None
        self._context: "BrowserContext | None" = None
        self._page: "Page | None" = None
        self._destination_page: "Page | None" = None

    @property
    def state(self) -> NavigatorState:
        return self._state

    @property
    def attached(self) -> bool:
        """Whether a browser is attached and can be closed through CDP."""
        return self._browser is not None

    # ------------------------------------------------------------------
    # State handling
    # ------------------------------------------------------------------

    def _transition(self, new_state: NavigatorState, message: str = "", **detail: Any) -> None:
        if new_state not in _ALLOWED[self._state]:
            raise RuntimeError(f"Illegal navigator transition {self._state.value} -> {new_state.value}")
        self._state = new_state
        self._events.emit(
            PipelineEvent(
                stage=STAGE,
                name=new_state.value,
                message=message or new_state.value.replace("_", " "),
                level=logging.ERROR if new_state is NavigatorState.FAILED else logging.INFO,
                detail=detail,
            )
        )

    def _fail(self, exc: PipelineError) -> PipelineError:
        self._transition(NavigatorState.FAILED, exc.message, error_reason=exc.message)
        return exc

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def connect(self, endpoint: str) -> "Page":
        """Attach to *endpoint* and open a fresh page for the status check."""
        self._transition(NavigatorState.CONNECTING, f"connecting to {endpoint}", endpoint=endpoint)
        timeout_ms = self._config.connect_timeout_ms

        try:
            self._browser = await asyncio.wait_for(
                self._connector.connect(endpoint, timeout_ms),
                timeout=timeout_ms / 1000.0,
            )
            contexts = self._browser.contexts
            self._context = contexts[0] if contexts else await self._browser.new_context()
            # Always a new page; the launcher's start page may still be loading
            self._page = await self._context.new_page()
        except (PlaywrightError, asyncio.TimeoutError, OSError) as exc:
            raise self._fail(
                BrowserConnectionError(
                    f"Could not attach to {endpoint}: {_describe(exc)}",
                    endpoint=endpoint,
                )
            ) from exc

        try:
            await self._page.wait_for_load_state("load")
        except PlaywrightError:
            logger.debug("Initial load wait failed; continuing")
        await asyncio.sleep(self._config.settle_delay_ms / 1000.0)

        self._transition(NavigatorState.PAGE_READY)
        return self._page

    async def verify(self) -> VerificationResult:
        """Run the environment check on the status page.

        Passes only when the pass-marker count equals ``expected_pass_count``
        exactly. Raises ``VerificationFailure`` otherwise.
        """
        assert self._page is not None, "connect() must succeed before verify()"
        config = self._config
        self._transition(
            NavigatorState.CHECKING_ENVIRONMENT,
            f"checking environment at {config.status_url}",
        )

        try:
            await self._page.goto(
                config.status_url,
                wait_until="domcontentloaded",
                timeout=config.navigation_timeout_ms,
            )
            await self._page.wait_for_selector(
                config.marker_selector, timeout=config.marker_timeout_ms
            )

            try:
                await self._page.wait_for_load_state(
                    "networkidle", timeout=config.network_idle_timeout_ms
                )
            except PlaywrightTimeoutError:
                self._events.emit(
                    PipelineEvent(
                        stage=STAGE,
                        name="settle_timeout",
                        message="network not idle, checking anyway",
                        level=logging.WARNING,
                    )
                )

            pass_count = await self._page.locator(config.pass_selector).count()
        except (PlaywrightError, asyncio.TimeoutError) as exc:
            raise self._fail(
                VerificationFailure(f"Environment check errored: {_describe(exc)}")
            ) from exc

        result = VerificationResult(
            passed=pass_count == config.expected_pass_count,
            pass_count=pass_count,
        )
        if not result.passed:
            raise self._fail(
                VerificationFailure(
                    f"Environment check failed: {pass_count} pass marker(s), "
                    f"expected exactly {config.expected_pass_count}",
                    pass_count=pass_count,
                )
            )

        self._transition(
            NavigatorState.PASSED,
            f"environment check passed ({pass_count} pass markers)",
            pass_count=pass_count,
        )
        return result

    async def open_destination(self, url: str) -> "Page":
        """Open *url* in a new page of the verified context."""
        assert self._context is not None, "connect() must succeed before open_destination()"
        config = self._config
        self._transition(NavigatorState.NAVIGATING, f"opening {url}", destination=url)

        try:
            self._destination_page = await self._context.new_page()
            await self._destination_page.goto(
                url,
                referer=config.referer,
                wait_until="domcontentloaded",
                timeout=config.navigation_timeout_ms,
            )
        except (PlaywrightError, asyncio.TimeoutError) as exc:
            raise self._fail(
                NavigationError(
                    f"Destination failed to load (already consumed): {_describe(exc)}",
                    destination=url,
                )
            ) from exc

        self._transition(NavigatorState.OPEN, "destination open", destination=url)
        return self._destination_page

    async def run(
        self,
        endpoint: str,
        draw_destination: Callable[[], Awaitable[str]],
    ) -> NavigationOutcome:
        """Drive the full state machine.

        *draw_destination* is awaited exactly once, and only after the
        environment check has passed. Errors raised by it end the run in
        ``FAILED``.
        """
        await self.connect(endpoint)
        verification = await self.verify()

        self._transition(NavigatorState.CONSUMING_DESTINATION)
        try:
            destination = await draw_destination()
        except PipelineError as exc:
            raise self._fail(exc)

        await self.open_destination(destination)
        return NavigationOutcome(
            state=self._state,
            verification=verification,
            destination=destination,
        )

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the attached browser and stop the driver, tolerating errors."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError:
                logger.debug("Browser already closed", exc_info=True)
            self._browser = None
            self._context = None
            self._page = None
            self._destination_page = None
        try:
            await self._connector.disconnect()
        except PlaywrightError:
            logger.debug("Driver stop failed", exc_info=True)
