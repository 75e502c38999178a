"""
Explorer engine configuration.

Values are layered, lowest precedence first:

1. Defaults below.
2. An optional YAML file (snake_case or camelCase keys).
3. Environment: `CHERT_EXPLORER_MODE` and `CHERT_EXPLORER_NODE_URL`.
   Unrecognized values are ignored rather than rejected.
4. Explicit overrides passed by the owner of the engine.

Example YAML::

    mode: mock
    seed: 12345
    blockIntervalMs: 2000
    maxBlocks: 256
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Final

import yaml
from pydantic import ConfigDict

from chert_explorer.types import CamelModel, require

logger = logging.getLogger(__name__)

ENV_MODE: Final = "CHERT_EXPLORER_MODE"
"""Environment variable selecting the backend mode."""

ENV_NODE_URL: Final = "CHERT_EXPLORER_NODE_URL"
"""Environment variable holding the node base URL."""

DEFAULT_NODE_BASE_URL: Final = "https://rpc.testnet.silicaprotocol.network"
"""Public testnet RPC endpoint used when nothing else is configured."""


class BackendMode(str, Enum):
    """Which backend feeds the state store."""

    MOCK = "mock"
    """Deterministic synthetic chain."""

    NODE = "node"
    """Polling client against a live node."""


class ExplorerConfig(CamelModel):
    """
    All parameters consumed by the explorer engine.

    Only types are checked at model construction. The cross-field
    invariants are asserted by `check()` when an engine is built, so a
    malformed value fails at the single call that uses it.
    """

    model_config = CamelModel.model_config | ConfigDict(extra="forbid", frozen=True)

    mode: BackendMode = BackendMode.NODE
    node_base_url: str = DEFAULT_NODE_BASE_URL

    seed: int = 0x13579CE
    """Seed for the simulator's deterministic generator."""

    initial_block_count: int = 96
    """Blocks back-filled by the simulator before the timer starts."""

    block_interval_ms: int = 4000
    """Timer period: one block (mock) or one poll (node) per interval."""

    finality_lag: int = 12
    """Trailing blocks required before a block is treated as final."""

    auto_start: bool = True
    max_blocks: int = 1024
    account_count: int = 320
    tx_per_block_min: int = 6
    tx_per_block_max: int = 42

    page_size: int = 50
    """Blocks requested per `get_blocks` call."""

    request_timeout_s: float = 10.0

    api_enabled: bool = False
    api_host: str = "127.0.0.1"
    api_port: int = 5053

    def check(self) -> None:
        """
        Assert the cross-field invariants.

        Raises:
            ValidationError: On the first violated invariant.
        """
        require(self.max_blocks > 0, "maxBlocks must be positive")
        require(self.initial_block_count > 0, "initialBlockCount must be positive")
        require(self.tx_per_block_min > 0, "txPerBlockMin must be positive")
        require(self.tx_per_block_max >= self.tx_per_block_min, "txPerBlockMax must be >= min")
        require(self.account_count >= 2, "accountCount must be at least 2")
        require(self.block_interval_ms > 0, "blockIntervalMs must be positive")
        require(self.finality_lag >= 0, "finalityLag must be non-negative")
        require(self.page_size > 0, "pageSize must be positive")
        require(self.request_timeout_s > 0, "requestTimeoutS must be positive")

    @property
    def block_interval_s(self) -> float:
        """Timer period in seconds."""
        return self.block_interval_ms / 1000.0

    @classmethod
    def from_yaml_file(cls, path: Path | str) -> ExplorerConfig:
        """
        Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
            pydantic.ValidationError: If a value has the wrong type.
        """
        return cls.model_validate(_read_yaml(Path(path)))


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def read_environment(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Extract runtime overrides from the environment.

    A mode other than `mock`/`node` and an empty URL are ignored.
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    mode = env.get(ENV_MODE, "").strip().lower()
    if mode in {m.value for m in BackendMode}:
        overrides["mode"] = mode
    elif mode:
        logger.warning("Ignoring unrecognized %s=%r", ENV_MODE, mode)

    url = env.get(ENV_NODE_URL, "").strip()
    if url:
        overrides["node_base_url"] = url

    return overrides


def load_config(
    path: Path | str | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ExplorerConfig:
    """Merge defaults, YAML file, environment and explicit overrides."""
    data: dict[str, Any] = {}
    if path is not None:
        # Normalize camelCase keys so later layers override rather than collide.
        data.update(ExplorerConfig.from_yaml_file(path).model_dump(exclude_unset=True))
    data.update(read_environment(environ))
    if overrides:
        data.update(overrides)
    return ExplorerConfig.model_validate(data)
