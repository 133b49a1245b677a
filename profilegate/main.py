"""Command-line entry point.

Sub-commands:

* ``run`` (default) -- one pipeline cycle: sign in, rotate proxy, provision,
  verify, draw a destination, open it and hold the browser open;
* ``status`` -- summary of the rotation stores, no side effects;
* ``check-proxies`` -- reachability check through every configured proxy.

Exit code 0 means the pipeline reached ``OPEN`` and was stopped from outside
(Ctrl+C); 1 means a stage failed or the run was interrupted before ``OPEN``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from profilegate.browser.fingerprint import FingerprintSource
from profilegate.browser.navigator import NavigatorConfig, NavigatorState, VerificationGatedNavigator
from profilegate.config.masking import load_masking_flags
from profilegate.config.settings import LauncherSettings
from profilegate.errors import ConfigError, PipelineError
from profilegate.events import EventSink, LoggingEventSink
from profilegate.integration.provisioner import ProfileProvisioner
from profilegate.integration.session_manager import Credentials, SessionManager
from profilegate.logging_config import configure_logging
from profilegate.proxy.checker import ProxyChecker
from profilegate.rotation.fallback import FallbackDestinationFactory
from profilegate.rotation.rotator import ResourceRotator
from profilegate.rotation.store import FileIndexStore, LineQueueStore, ProxyListStore
from profilegate.services.pipeline import PipelineController

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_rotator(settings: LauncherSettings) -> ResourceRotator:
    """Open the rotation stores; raises ConfigError when no proxy is configured."""
    return ResourceRotator(
        proxy_store=ProxyListStore(settings.proxies_path),
        proxy_index=FileIndexStore(settings.proxy_index_path),
        destinations=LineQueueStore(settings.destinations_path, settings.comment_prefix),
        url_index=FileIndexStore(settings.url_index_path),
        destination_mode=settings.destination_mode,
    )


def build_navigator_config(settings: LauncherSettings) -> NavigatorConfig:
    return NavigatorConfig(
        status_url=settings.status_url,
        marker_selector=settings.marker_selector,
        pass_selector=settings.pass_selector,
        expected_pass_count=settings.expected_pass_count,
        referer=settings.referer,
        connect_timeout_ms=settings.connect_timeout_ms,
        navigation_timeout_ms=settings.navigation_timeout_ms,
        marker_timeout_ms=settings.marker_timeout_ms,
        network_idle_timeout_ms=settings.network_idle_timeout_ms,
        settle_delay_ms=settings.settle_delay_ms,
    )


def build_pipeline(settings: LauncherSettings, events: EventSink) -> PipelineController:
    """Assemble the controller. Configuration problems surface here, before any remote call."""
    rotator = build_rotator(settings)
    navigator_config = build_navigator_config(settings)

    try:
        fallback = FallbackDestinationFactory(settings.fallback_url_template)
    except ValueError as exc:
        raise ConfigError(str(exc))

    fingerprints = FingerprintSource.from_settings(
        user_agent=settings.fingerprint_user_agent,
        hardware_concurrency=settings.fingerprint_hardware_concurrency,
        platform=settings.fingerprint_platform,
        path=settings.fingerprints_path,
    )

    provisioner = ProfileProvisioner(
        settings.launcher_url,
        browser_type=settings.browser_type,
        os_type=settings.os_type,
        automation=settings.automation,
        headless=settings.headless,
        masking=load_masking_flags(settings.masking_flags_path),
        timeout=settings.api_timeout_seconds,
    )

    logger.info(
        "Rotation: %d proxies (next #%d), %d destination(s) queued, mode=%s, %d fingerprint override(s)",
        rotator.proxy_count,
        rotator.proxy_cursor(),
        rotator.destinations_remaining(),
        rotator.destination_mode,
        len(fingerprints),
    )

    return PipelineController(
        credentials=Credentials(
            email=settings.email,
            password=settings.password.get_secret_value(),
        ),
        session_manager=SessionManager(settings.api_base_url, timeout=settings.api_timeout_seconds),
        rotator=rotator,
        provisioner=provisioner,
        navigator_factory=lambda: VerificationGatedNavigator(navigator_config, events),
        events=events,
        fallback=fallback,
        fingerprints=fingerprints,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_pipeline(settings: LauncherSettings) -> int:
    events = LoggingEventSink()
    try:
        controller = build_pipeline(settings, events)
    except PipelineError as exc:
        logger.error("Startup failed: %s", exc.message, extra={"stage": exc.stage})
        return exc.exit_code

    try:
        outcome = await controller.run()
    except asyncio.CancelledError:
        # asyncio.run cancels the main task on Ctrl+C
        if controller.state is NavigatorState.OPEN:
            logger.info("Stopped while holding the destination open")
            return 0
        logger.warning("Interrupted before the destination opened")
        return 1
    return outcome.exit_code


def show_status(settings: LauncherSettings) -> int:
    try:
        rotator = build_rotator(settings)
    except PipelineError as exc:
        logger.error("%s", exc.message, extra={"stage": exc.stage})
        return exc.exit_code

    destinations = LineQueueStore(settings.destinations_path, settings.comment_prefix)
    print(f"proxies:        {rotator.proxy_count} (next #{rotator.proxy_cursor()})")
    print(f"destinations:   {destinations.count_eligible()} queued in {destinations.path}")
    print(f"mode:           {rotator.destination_mode}")
    print(f"fallback:       {'configured' if settings.fallback_url_template else 'none'}")
    return 0


async def check_proxies(settings: LauncherSettings) -> int:
    try:
        proxies = ProxyListStore(settings.proxies_path).load_list()
    except PipelineError as exc:
        logger.error("%s", exc.message, extra={"stage": exc.stage})
        return exc.exit_code
    if not proxies:
        logger.error("No proxies configured in %s", settings.proxies_path)
        return 1

    checker = ProxyChecker(settings.check_host, timeout=settings.check_timeout_seconds)
    results = await checker.check_all(proxies)
    reachable = sum(1 for result in results if result.reachable)
    print(f"{reachable}/{len(results)} proxies reachable")
    return 0 if reachable else 1


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="profilegate",
        description="Provision a browser profile, verify its environment, then open the next destination.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=["run", "status", "check-proxies"],
    )
    parser.add_argument("--env-file", default=".env", help="dotenv file with PROFILEGATE_* settings")
    parser.add_argument("--log-level", default=None, help="override PROFILEGATE_LOG_LEVEL")
    parser.add_argument("--log-format", default=None, choices=["text", "json"])
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = LauncherSettings(_env_file=args.env_file)  # type: ignore[call-arg]
    except ValidationError as exc:
        configure_logging("INFO", args.log_format or "text")
        logger.error("Invalid configuration:\n%s", exc, extra={"stage": "config"})
        return 1

    configure_logging(args.log_level or settings.log_level, args.log_format or settings.log_format)

    if args.command == "status":
        return show_status(settings)

    try:
        if args.command == "check-proxies":
            return asyncio.run(check_proxies(settings))
        return asyncio.run(run_pipeline(settings))
    except KeyboardInterrupt:
        logger.warning("Interrupted; exiting")
        return 1


if __name__ == "__main__":
    sys.exit(main())
