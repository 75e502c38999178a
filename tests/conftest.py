"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import settings

from chert_explorer.config import ENV_MODE, ENV_NODE_URL

# Create a profile named "no_deadline" with deadline disabled.
settings.register_profile("no_deadline", deadline=None)
settings.load_profile("no_deadline")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's engine environment variables out of every test."""
    monkeypatch.delenv(ENV_MODE, raising=False)
    monkeypatch.delenv(ENV_NODE_URL, raising=False)
