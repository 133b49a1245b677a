"""Proxy reachability check.

Sends a lightweight HTTP HEAD request through each configured proxy and
reports which ones answer. This is an operator tool: it reads the proxy list
but never touches the rotation cursor.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx

from profilegate.rotation.types import ProxyDescriptor

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    proxy: ProxyDescriptor
    reachable: bool
    status_code: int | None = None
    latency_ms: float | None = None
    error: str | None = None


class ProxyChecker:
    """Checks proxies one at a time against a fixed host."""

    def __init__(self, check_host: str = "www.google.com", timeout: float = 5.0) -> None:
        self._check_url = f"http://{check_host}/"
        self._timeout = timeout

    async def check(self, proxy: ProxyDescriptor) -> CheckResult:
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                proxy=proxy.url,
                timeout=httpx.Timeout(self._timeout),
            ) as client:
                response = await client.head(self._check_url)
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Check failed for %s: %s", proxy.display, exc)
            return CheckResult(proxy=proxy, reachable=False, error=str(exc) or type(exc).__name__)

        latency_ms = (time.monotonic() - started) * 1000.0
        reachable = response.status_code < 500
        return CheckResult(
            proxy=proxy,
            reachable=reachable,
            status_code=response.status_code,
            latency_ms=round(latency_ms, 1),
        )

    async def check_all(self, proxies: list[ProxyDescriptor]) -> list[CheckResult]:
        results = []
        for proxy in proxies:
            result = await self.check(proxy)
            if result.reachable:
                logger.info("%s reachable (%.0f ms)", proxy.display, result.latency_ms or 0.0)
            else:
                logger.warning(
                    "%s unreachable: %s",
                    proxy.display,
                    result.error or f"HTTP {result.status_code}",
                )
            results.append(result)
        return results
