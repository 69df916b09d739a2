"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from stepwise.config.loader import reset_config
from stepwise.config.secrets import clear_secret_cache
from stepwise.logging import reset_logging

# Redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Keep the developer's environment and cached config out of tests."""
    for var in ("STEPWISE_LOG", "STEPWISE_MODEL", "STEPWISE_YOLO"):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    clear_secret_cache()
    yield
    reset_config()
    clear_secret_cache()
    reset_logging()


@pytest.fixture(autouse=True)
def _isolate_user_config(monkeypatch, tmp_path_factory):
    """Point the user config directory at an empty temp dir."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
