"""Durable backing stores for rotating resources.

Three kinds of state survive process restarts:

* cursor files -- a single integer per cyclic resource (``IndexStore``);
* the proxy list -- a JSON array of proxy records (``ProxyListStore``);
* the destination queue -- newline-delimited URLs consumed destructively
  (``LineQueueStore``).

Cursor files live apart from the resource files so editing a list never
clobbers its cursor. At most one process is expected to use a store at a
time; there is no file locking.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from profilegate.errors import ConfigError
from profilegate.rotation.types import ProxyDescriptor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def atomic_write_text(path: Path, content: str) -> None:
    """Replace *path* with *content* so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def split_lines(content: str) -> list[str]:
    """Split on \\n only, keeping line endings.

    Unlike ``str.splitlines`` this does not break on form feeds, vertical
    tabs or Unicode separators, so such characters stay inside their line.
    """
    parts = content.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


# ---------------------------------------------------------------------------
# Cursor stores
# ---------------------------------------------------------------------------


class IndexStore(ABC):
    """Load/commit interface for a persisted rotation cursor."""

    @abstractmethod
    def load_index(self) -> int:
        """Return the stored cursor, or 0 when absent or unreadable."""

    @abstractmethod
    def save_index(self, index: int) -> None:
        """Persist *index* as the new cursor."""


class FileIndexStore(IndexStore):
    """Cursor stored as a plain-text integer in a small file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load_index(self) -> int:
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return 0
        except OSError as exc:
            logger.warning("Could not read cursor file %s: %s - using 0", self.path, exc)
            return 0

        try:
            index = int(raw)
        except ValueError:
            logger.warning("Corrupt cursor file %s (%r) - using 0", self.path, raw)
            return 0
        return index if index >= 0 else 0

    def save_index(self, index: int) -> None:
        try:
            atomic_write_text(self.path, str(index))
        except OSError as exc:
            # Same tolerance as a failed read: the next run restarts from a
            # default rather than aborting this one.
            logger.warning("Could not save cursor to %s: %s", self.path, exc)

    def __repr__(self) -> str:
        return f"FileIndexStore({str(self.path)!r})"


class MemoryIndexStore(IndexStore):
    """In-process cursor, for tests and dry runs."""

    def __init__(self, initial: int = 0) -> None:
        self.value = initial
        self.saves: list[int] = []

    def load_index(self) -> int:
        return self.value if self.value >= 0 else 0

    def save_index(self, index: int) -> None:
        self.value = index
        self.saves.append(index)


# ---------------------------------------------------------------------------
# Proxy list
# ---------------------------------------------------------------------------


class ProxyListStore:
    """JSON array of proxy records.

    Each record is ``{"host", "port", "username"?, "password"?, "protocol"?}``.
    A missing file, invalid JSON, or an empty array all load as ``[]``; the
    caller decides whether an empty list is fatal.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load_list(self) -> list[ProxyDescriptor]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.error("Proxy list not found at %s", self.path)
            return []
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not parse proxy list %s: %s", self.path, exc)
            return []

        if not isinstance(raw, list):
            logger.error("Proxy list %s is not a JSON array", self.path)
            return []

        return [self._parse_record(i, record) for i, record in enumerate(raw)]

    def _parse_record(self, position: int, record: object) -> ProxyDescriptor:
        if not isinstance(record, dict) or not record.get("host") or not record.get("port"):
            raise ConfigError(
                f"Proxy record #{position} in {self.path} needs 'host' and 'port'",
                path=str(self.path),
            )
        try:
            port = int(record["port"])
        except (TypeError, ValueError):
            raise ConfigError(
                f"Proxy record #{position} in {self.path} has a non-numeric port",
                path=str(self.path),
            )
        return ProxyDescriptor(
            host=str(record["host"]),
            port=port,
            protocol=str(record.get("protocol") or "socks5").lower(),
            username=record.get("username") or None,
            password=record.get("password") or None,
        )


# ---------------------------------------------------------------------------
# Destination queue
# ---------------------------------------------------------------------------


class LineQueueStore:
    """Newline-delimited queue whose first eligible line is consumed destructively.

    Eligible lines are non-blank and do not start with ``comment_prefix``
    (after leading whitespace). Comments and blank lines are never consumed
    and keep their relative order.
    """

    def __init__(self, path: str | Path, comment_prefix: str = "#") -> None:
        self.path = Path(path)
        self.comment_prefix = comment_prefix

    def _is_eligible(self, line: str) -> bool:
        stripped = line.strip()
        return bool(stripped) and not stripped.startswith(self.comment_prefix)

    def _read(self) -> str | None:
        try:
            with open(self.path, encoding="utf-8", newline="") as handle:
                return handle.read()
        except FileNotFoundError:
            return None

    def peek_lines(self) -> list[str]:
        """Eligible items in order, without consuming anything."""
        content = self._read()
        if content is None:
            return []
        return [line.strip() for line in split_lines(content) if self._is_eligible(line)]

    def count_eligible(self) -> int:
        return len(self.peek_lines())

    def consume_first(self) -> str | None:
        """Remove and return the first eligible line.

        The file is rewritten before the item is returned. Returns ``None``
        and leaves the file untouched when nothing is eligible.
        """
        content = self._read()
        if content is None:
            return None

        lines = split_lines(content)
        for position, line in enumerate(lines):
            if self._is_eligible(line):
                remaining = lines[:position] + lines[position + 1:]
                atomic_write_text(self.path, "".join(remaining))
                logger.debug(
                    "Consumed line %d from %s (%d lines left)",
                    position + 1,
                    self.path,
                    sum(1 for rest in remaining if self._is_eligible(rest)),
                )
                return line.strip()

        return None
