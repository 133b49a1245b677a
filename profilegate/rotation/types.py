"""Data models for rotating resources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class ProxyDescriptor:
    """A single proxy record loaded from the proxy list."""

    host: str
    port: int
    protocol: str = "socks5"
    username: str | None = None
    password: str | None = None

    @property
    def url(self) -> str:
        """Proxy URL including credentials, for clients that accept one."""
        auth = ""
        if self.username:
            auth = f"{self.username}:{self.password or ''}@"
        return f"{self.protocol}://{auth}{self.host}:{self.port}"

    @property
    def display(self) -> str:
        """Proxy URL safe for logs (password omitted)."""
        auth = f"{self.username}@" if self.username else ""
        return f"{self.protocol}://{auth}{self.host}:{self.port}"


# ---------------------------------------------------------------------------
# Draw results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Drawn(Generic[T]):
    """An item was drawn from the resource (and already committed)."""

    item: T
    source: str = "store"


@dataclass(frozen=True)
class Exhausted:
    """The backing resource is missing or has no eligible items left."""

    reason: str


@dataclass(frozen=True)
class ConfigInvalid:
    """The resource cannot be used at all with the current configuration."""

    reason: str


DrawResult = Union[Drawn[T], Exhausted, ConfigInvalid]
