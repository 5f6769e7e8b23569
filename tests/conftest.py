"""Minimal test fixtures - just what we actually need."""

import pytest

from mrzip.config import Config
from mrzip.core.event_bus import EventBus


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep config lookups inside the test's temp directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    yield tmp_path


@pytest.fixture
def fast_config():
    """Default config without backoff sleeps."""
    config = Config()
    config.set("downloads.backoff_base_delay", 0.0)
    config.set("downloads.backoff_max_delay", 0.0)
    return config


@pytest.fixture
def event_bus():
    return EventBus()
