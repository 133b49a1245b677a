"""Proxy tooling -- reachability check for the configured proxy list."""

from profilegate.proxy.checker import CheckResult, ProxyChecker

__all__ = ["CheckResult", "ProxyChecker"]
