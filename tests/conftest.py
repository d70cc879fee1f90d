"""Shared fixtures for NExS MCP App tests."""

import pytest

from nexs_app.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test read settings from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with usage logging switched off."""
    return Settings(USAGE_LOGGING_ENABLED=False)
