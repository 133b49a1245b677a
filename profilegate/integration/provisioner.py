"""Quick-profile provisioning through the local launcher.

A successful ``provision()`` starts a remote browser instance and returns the
local port its CDP endpoint listens on. The caller owns that browser from
then on and must close it (through CDP, or ``stop()`` when it never attached).
"""

from __future__ import annotations

import logging

import httpx

from profilegate.config.masking import MaskingFlags
from profilegate.errors import ProvisionError
from profilegate.integration.responses import json_or_text
from profilegate.models.profile import (
    FingerprintBlock,
    FingerprintOverrides,
    NavigatorBlock,
    ProfileHandle,
    ProfileParameters,
    ProxyBlock,
    QuickProfileRequest,
    Session,
)
from profilegate.rotation.types import ProxyDescriptor

logger = logging.getLogger(__name__)


class ProfileProvisioner:
    """Builds and sends quick-profile requests.

    Parameters
    ----------
    launcher_url:
        Base URL of the launcher (e.g. "https://launcher.mlx.yt:45001").
    masking:
        Default masking flags; navigator masking switches to ``custom`` when
        fingerprint overrides are supplied.
    """

    def __init__(
        self,
        launcher_url: str,
        *,
        browser_type: str = "mimic",
        os_type: str = "android",
        automation: str = "playwright",
        headless: bool = False,
        masking: MaskingFlags | None = None,
        timeout: float = 30.0,
        verify_tls: bool = True,
    ) -> None:
        self._launcher_url = launcher_url.rstrip("/")
        self._browser_type = browser_type
        self._os_type = os_type
        self._automation = automation
        self._headless = headless
        self._masking = masking or MaskingFlags()
        self._timeout = timeout
        self._verify_tls = verify_tls

    # ------------------------------------------------------------------
    # Request shape
    # ------------------------------------------------------------------

    def build_request(
        self,
        proxy: ProxyDescriptor,
        overrides: FingerprintOverrides | None = None,
    ) -> dict:
        """Return the JSON body for a quick-profile request."""
        flags = self._masking
        fingerprint = FingerprintBlock()

        if overrides is not None:
            fingerprint = FingerprintBlock(
                navigator=NavigatorBlock(
                    user_agent=overrides.user_agent,
                    hardware_concurrency=overrides.hardware_concurrency,
                    platform=overrides.platform,
                )
            )
            flags = flags.model_copy(update={"navigator_masking": "custom"})

        request = QuickProfileRequest(
            browser_type=self._browser_type,
            os_type=self._os_type,
            parameters=ProfileParameters(
                proxy=ProxyBlock(
                    type=proxy.protocol,
                    host=proxy.host,
                    port=proxy.port,
                    username=proxy.username or "",
                    password=proxy.password or "",
                ),
                fingerprint=fingerprint,
                flags=flags,
            ),
            automation=self._automation,
            is_headless=self._headless,
        )
        return request.model_dump(exclude_none=True)

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    async def provision(
        self,
        proxy: ProxyDescriptor,
        session: Session,
        overrides: FingerprintOverrides | None = None,
    ) -> ProfileHandle:
        """Create and start a quick profile.

        Raises
        ------
        ProvisionError
            If the launcher rejects the request, is unreachable, or answers
            without a profile id and port.
        """
        url = f"{self._launcher_url}/api/v3/profile/quick"
        body = self.build_request(proxy, overrides)

        try:
            async with httpx.AsyncClient(verify=self._verify_tls) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={"Accept": "application/json", **session.auth_header},
                    timeout=self._timeout,
                )
        except httpx.HTTPError as exc:
            raise ProvisionError(f"Provisioning request failed: {exc}", url=url) from exc

        payload = json_or_text(response)
        data = payload.get("data") if isinstance(payload, dict) else None
        profile_id = data.get("id") if isinstance(data, dict) else None
        port = data.get("port") if isinstance(data, dict) else None

        if response.status_code != 200 or not profile_id or not port:
            raise ProvisionError(
                f"Profile creation rejected (HTTP {response.status_code}): {payload}",
                status_code=response.status_code,
                body=payload,
            )

        try:
            handle = ProfileHandle(profile_id=str(profile_id), port=int(port))
        except (TypeError, ValueError):
            raise ProvisionError(f"Launcher returned a non-numeric port: {port!r}", body=payload)

        logger.info(
            "Provisioned profile %s at %s",
            handle.profile_id,
            handle.connection_endpoint,
            extra={"profile_id": handle.profile_id, "endpoint": handle.connection_endpoint},
        )
        return handle

    async def stop(self, handle: ProfileHandle, session: Session) -> bool:
        """Ask the launcher to stop *handle*'s browser. Returns ``True`` on success.

        Used on failure paths where the browser was never attached and cannot
        be closed through CDP; errors are logged, not raised.
        """
        url = f"{self._launcher_url}/api/v1/profile/stop/p/{handle.profile_id}"
        try:
            async with httpx.AsyncClient(verify=self._verify_tls) as client:
                response = await client.get(
                    url,
                    headers={"Accept": "application/json", **session.auth_header},
                    timeout=self._timeout,
                )
        except httpx.HTTPError as exc:
            logger.warning("Could not stop profile %s: %s", handle.profile_id, exc)
            return False

        if response.status_code != 200:
            logger.warning(
                "Launcher refused to stop profile %s (HTTP %d)",
                handle.profile_id,
                response.status_code,
            )
            return False

        logger.info("Stopped profile %s", handle.profile_id)
        return True
