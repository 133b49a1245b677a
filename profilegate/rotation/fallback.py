"""Fallback destination synthesis.

Used only when the destination queue is exhausted. The operator supplies a
URL template; placeholders are filled with fresh random values on each call:

* ``{nonce}`` -- 16 random hex characters
* ``{run_id}`` -- uuid4 hex
* ``{ts}`` -- current epoch seconds

The fallback never reads or writes the destination store.
"""

from __future__ import annotations

import random
import string
import time
import uuid

from profilegate.rotation.types import ConfigInvalid, DrawResult, Drawn

_PLACEHOLDERS = {"nonce", "run_id", "ts"}


class FallbackDestinationFactory:
    """Builds destination URLs from an operator-supplied template."""

    def __init__(self, template: str | None, *, rng: random.Random | None = None) -> None:
        self._template = template or None
        self._rng = rng or random.Random()

        if self._template is not None:
            names = {
                name
                for _, name, _, _ in string.Formatter().parse(self._template)
                if name
            }
            unknown = names - _PLACEHOLDERS
            if unknown:
                raise ValueError(
                    f"Unknown placeholder(s) in fallback template: {', '.join(sorted(unknown))}"
                )

    @property
    def enabled(self) -> bool:
        return self._template is not None

    def generate(self) -> DrawResult[str]:
        if self._template is None:
            return ConfigInvalid("destination queue exhausted and no fallback template configured")

        url = self._template.format(
            nonce="%016x" % self._rng.getrandbits(64),
            run_id=uuid.UUID(int=self._rng.getrandbits(128), version=4).hex,
            ts=int(time.time()),
        )
        return Drawn(url, source="fallback")
