"""Resource rotation on top of the durable stores.

Proxies rotate cyclically: every ``next_proxy()`` call moves the persisted
cursor to ``(current + 1) mod N`` before the proxy is returned, whether or
not the caller's use of it succeeds.

Destinations are drawn with consume-and-remove semantics by default. The
optional ``cycle`` mode rotates a fixed list with its own cursor and commits
that cursor before handing the URL on. Neither mode is ever entered before
the caller has decided it wants a destination.
"""

from __future__ import annotations

import logging
from typing import Generic, Sequence, TypeVar

from profilegate.errors import ConfigError
from profilegate.rotation.store import IndexStore, LineQueueStore, ProxyListStore
from profilegate.rotation.types import (
    ConfigInvalid,
    DrawResult,
    Drawn,
    Exhausted,
    ProxyDescriptor,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DESTINATION_MODES = ("consume", "cycle")


class CyclicRotation(Generic[T]):
    """Round-robin over a fixed list with a persisted cursor.

    ``peek()`` and ``commit()`` are separate so a consumer may read an item
    and only advance once it has committed to using it. ``advance()`` fuses
    the two and is what proxy rotation uses.
    """

    def __init__(self, items: Sequence[T], index_store: IndexStore) -> None:
        self._items = list(items)
        self._index_store = index_store

    def __len__(self) -> int:
        return len(self._items)

    def cursor(self) -> int:
        """The persisted cursor, reset to 0 when it is not a valid index."""
        index = self._index_store.load_index()
        if not 0 <= index < len(self._items):
            if index != 0:
                logger.warning(
                    "Cursor %d out of range for %d items - resetting to 0",
                    index,
                    len(self._items),
                )
            return 0
        return index

    def peek(self) -> tuple[int, T]:
        if not self._items:
            raise IndexError("peek from an empty rotation")
        index = self.cursor()
        return index, self._items[index]

    def commit(self, index: int) -> int:
        """Persist the cursor following *index* and return it."""
        next_index = (index + 1) % len(self._items)
        self._index_store.save_index(next_index)
        return next_index

    def advance(self) -> tuple[int, T]:
        index, item = self.peek()
        self.commit(index)
        return index, item


class ResourceRotator:
    """Hands out proxies and destinations from their backing stores.

    Parameters
    ----------
    proxy_store:
        Source of the proxy list. An empty list is a fatal configuration
        error raised here, at construction time.
    proxy_index:
        Persisted proxy cursor.
    destinations:
        Destination URL queue.
    url_index:
        Persisted URL cursor, used only in ``cycle`` mode.
    destination_mode:
        ``"consume"`` (default) or ``"cycle"``.
    """

    def __init__(
        self,
        proxy_store: ProxyListStore,
        proxy_index: IndexStore,
        destinations: LineQueueStore,
        url_index: IndexStore | None = None,
        destination_mode: str = "consume",
    ) -> None:
        if destination_mode not in DESTINATION_MODES:
            raise ConfigError(
                f"Unknown destination mode '{destination_mode}'",
                allowed=list(DESTINATION_MODES),
            )
        if destination_mode == "cycle" and url_index is None:
            raise ConfigError("Destination mode 'cycle' needs a URL cursor store")

        proxies = proxy_store.load_list()
        if not proxies:
            raise ConfigError(
                f"No proxies configured in {proxy_store.path}",
                path=str(proxy_store.path),
            )

        self._proxies = CyclicRotation(proxies, proxy_index)
        self._destinations = destinations
        self._url_index = url_index
        self._destination_mode = destination_mode
        logger.info("Loaded %d proxies from %s", len(proxies), proxy_store.path)

    @property
    def proxy_count(self) -> int:
        return len(self._proxies)

    @property
    def destination_mode(self) -> str:
        return self._destination_mode

    def proxy_cursor(self) -> int:
        return self._proxies.cursor()

    def destinations_remaining(self) -> int:
        return self._destinations.count_eligible()

    # ------------------------------------------------------------------
    # Proxies
    # ------------------------------------------------------------------

    def next_proxy(self) -> ProxyDescriptor:
        """Return the proxy at the cursor; the cursor is already advanced."""
        index, proxy = self._proxies.advance()
        logger.debug("Selected proxy #%d of %d: %s", index, len(self._proxies), proxy.display)
        return proxy

    # ------------------------------------------------------------------
    # Destinations
    # ------------------------------------------------------------------

    def next_destination(self) -> DrawResult[str]:
        """Draw the next destination URL.

        Returns ``Drawn`` with the URL already committed, or ``Exhausted``
        when the backing store is missing or empty.
        """
        if self._destination_mode == "cycle":
            return self._next_cyclic_destination()

        url = self._destinations.consume_first()
        if url is None:
            return Exhausted(f"No destinations left in {self._destinations.path}")
        return Drawn(url)

    def _next_cyclic_destination(self) -> DrawResult[str]:
        urls = self._destinations.peek_lines()
        if not urls:
            return Exhausted(f"No destinations listed in {self._destinations.path}")

        assert self._url_index is not None
        rotation = CyclicRotation(urls, self._url_index)
        index, url = rotation.peek()
        rotation.commit(index)
        return Drawn(url)


def describe_draw(result: DrawResult[str]) -> str:
    """Short human-readable form of a draw result for the stage trace."""
    if isinstance(result, Drawn):
        return f"drawn from {result.source}"
    if isinstance(result, Exhausted):
        return f"exhausted ({result.reason})"
    if isinstance(result, ConfigInvalid):
        return f"invalid ({result.reason})"
    return repr(result)
