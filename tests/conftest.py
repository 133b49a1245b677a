"""Shared test fixtures for the launcher test suite."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from profilegate.config.settings import LauncherSettings
from profilegate.rotation.store import LineQueueStore, MemoryIndexStore, ProxyListStore


# ---------------------------------------------------------------------------
# Ensure required env vars are set for LauncherSettings in tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set minimal env vars so LauncherSettings can be instantiated in tests."""
    defaults = {
        "PROFILEGATE_EMAIL": "ops@example.test",
        "PROFILEGATE_PASSWORD": "hunter2",
        "PROFILEGATE_STATUS_URL": "http://status.test/",
        "PROFILEGATE_REFERER": "https://referrer.test/",
    }
    for key, value in defaults.items():
        if key not in os.environ:
            monkeypatch.setenv(key, value)


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------

PROXY_RECORDS = [
    {"host": "10.0.0.1", "port": 1080},
    {"host": "10.0.0.2", "port": "1081", "username": "user", "password": "pass"},
]


def write_proxies(path: Path, records: list[dict]) -> Path:
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


@pytest.fixture
def proxies_file(tmp_path: Path) -> Path:
    return write_proxies(tmp_path / "proxies.json", PROXY_RECORDS)


@pytest.fixture
def destinations_file(tmp_path: Path) -> Path:
    path = tmp_path / "destinations.txt"
    path.write_text("# comment\nhttps://a.test\n\nhttps://b.test\n", encoding="utf-8")
    return path


@pytest.fixture
def proxy_store(proxies_file: Path) -> ProxyListStore:
    return ProxyListStore(proxies_file)


@pytest.fixture
def destination_store(destinations_file: Path) -> LineQueueStore:
    return LineQueueStore(destinations_file)


@pytest.fixture
def proxy_index() -> MemoryIndexStore:
    return MemoryIndexStore()


@pytest.fixture
def settings(tmp_path: Path, proxies_file: Path, destinations_file: Path) -> LauncherSettings:
    """Test settings pointing every store into *tmp_path*."""
    return LauncherSettings(
        email="ops@example.test",
        password="hunter2",
        status_url="http://status.test/",
        referer="https://referrer.test/",
        proxies_path=str(proxies_file),
        destinations_path=str(destinations_file),
        proxy_index_path=str(tmp_path / "proxy_index.txt"),
        url_index_path=str(tmp_path / "url_index.txt"),
        settle_delay_ms=0,
    )

