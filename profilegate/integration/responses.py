"""Helpers for reading remote API responses."""

from __future__ import annotations

import httpx


def json_or_text(response: httpx.Response) -> object:
    """Decoded JSON body, or the raw text when the body is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text
