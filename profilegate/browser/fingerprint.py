"""Fingerprint override selection.

Overrides are operator-supplied data: either a single record given through
settings, or a JSON list of records from which one is picked at random per
run. Each record carries the navigator fields substituted verbatim into the
provisioning request:

    [{"user_agent": "...", "hardware_concurrency": 8, "platform": "Linux armv8l"}]
"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path

from profilegate.errors import ConfigError
from profilegate.models.profile import FingerprintOverrides

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("user_agent", "hardware_concurrency", "platform")


def _parse_override(record: object, origin: str) -> FingerprintOverrides:
    if not isinstance(record, dict):
        raise ConfigError(f"Fingerprint record in {origin} must be an object")
    missing = [name for name in _REQUIRED_FIELDS if record.get(name) in (None, "")]
    if missing:
        raise ConfigError(
            f"Fingerprint record in {origin} is missing: {', '.join(missing)}",
            missing=missing,
        )
    try:
        cores = int(record["hardware_concurrency"])
    except (TypeError, ValueError):
        raise ConfigError(f"Fingerprint record in {origin} has a non-numeric core count")
    if cores < 1:
        raise ConfigError(f"Fingerprint record in {origin} has core count {cores}")
    return FingerprintOverrides(
        user_agent=str(record["user_agent"]),
        hardware_concurrency=cores,
        platform=str(record["platform"]),
    )


class FingerprintSource:
    """Hands out one set of navigator overrides per run, or ``None``.

    Parameters
    ----------
    records:
        Candidate overrides. Empty means provisioning uses the provider's
        own navigator masking.
    rng:
        Random source, injectable for deterministic tests.
    """

    def __init__(
        self,
        records: list[FingerprintOverrides] | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._records = list(records or [])
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._records)

    @classmethod
    def from_settings(
        cls,
        *,
        user_agent: str | None = None,
        hardware_concurrency: int | None = None,
        platform: str | None = None,
        path: str | None = None,
        rng: random.Random | None = None,
    ) -> "FingerprintSource":
        """Build a source from settings values and an optional JSON file.

        Explicit settings values win over the file. Giving only some of the
        three navigator fields is a configuration error.
        """
        given = {
            "user_agent": user_agent,
            "hardware_concurrency": hardware_concurrency,
            "platform": platform,
        }
        if any(value is not None for value in given.values()):
            return cls([_parse_override(given, "settings")], rng=rng)

        if not path:
            return cls([], rng=rng)

        file_path = Path(path)
        try:
            raw = json.loads(file_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigError(f"Fingerprint file not found at {path}", path=path)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Could not parse fingerprint file {path}: {exc}", path=path)

        if not isinstance(raw, list):
            raise ConfigError(f"Fingerprint file {path} must hold a JSON array", path=path)

        records = [_parse_override(item, path) for item in raw]
        logger.info("Loaded %d fingerprint override(s) from %s", len(records), path)
        return cls(records, rng=rng)

    def pick(self) -> FingerprintOverrides | None:
        if not self._records:
            return None
        return self._rng.choice(self._records)
