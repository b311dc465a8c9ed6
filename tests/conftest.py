"""Configure pytest fixtures and environment for dtomap tests."""

import pytest
import structlog
from dotenv import load_dotenv

from dtomap.core.config import reset_settings
from dtomap.core.logging import clear_correlation_id
from dtomap.mapping.context import reset_scope
from dtomap.mapping.reflection import default_reflector

_SETTINGS_ENV = ("DTOMAP_DATE_PATTERN", "DTOMAP_DECIMAL_SCALE", "DTOMAP_LENIENT_DATES")


def pytest_sessionstart(session):
    """Load environment variables from a local .env file if present."""
    load_dotenv()


@pytest.fixture(autouse=True)
def clean_state(monkeypatch, tmp_path):
    """Start every test with default settings, no stored context and an empty field cache."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    # Settings also read .env from the working directory
    monkeypatch.chdir(tmp_path)
    reset_settings()
    reset_scope()
    clear_correlation_id()
    default_reflector.clear()
    yield
    reset_settings()
    reset_scope()
    default_reflector.clear()
    clear_correlation_id()
    # The CLI configures structlog globally
    structlog.reset_defaults()
