"""Shared fixtures for explorer engine tests."""

from __future__ import annotations

import pytest

from chert_explorer.config import BackendMode, ExplorerConfig
from chert_explorer.services.hub import StateHub
from chert_explorer.services.store import StateStore
from chert_explorer.types import UnixMs

from tests.chert_explorer.helpers import FakeClock, FakeNode


@pytest.fixture
def clock() -> FakeClock:
    """Provide a manually advanced wall clock."""
    return FakeClock()


@pytest.fixture
def mock_config() -> ExplorerConfig:
    """Provide a small simulated-mode configuration."""
    return ExplorerConfig(
        mode=BackendMode.MOCK,
        seed=12345,
        initial_block_count=5,
        block_interval_ms=60_000,
        finality_lag=3,
        max_blocks=10,
        account_count=16,
        tx_per_block_min=3,
        tx_per_block_max=3,
    )


@pytest.fixture
def node_config() -> ExplorerConfig:
    """Provide a live-mode configuration pointing at the fake node."""
    return ExplorerConfig(
        mode=BackendMode.NODE,
        node_base_url="http://node.test",
        block_interval_ms=60_000,
        finality_lag=2,
        max_blocks=10,
        page_size=3,
    )


@pytest.fixture
def store() -> StateStore:
    """Provide an empty store holding up to 10 blocks."""
    return StateStore(max_blocks=10)


@pytest.fixture
def hub(store: StateStore, clock: FakeClock) -> StateHub:
    """Provide a hub over the `store` fixture."""
    return StateHub.create(store, UnixMs(int(clock() * 1000)))


@pytest.fixture
def fake_node() -> FakeNode:
    """Provide a scripted node with no pages."""
    return FakeNode()
