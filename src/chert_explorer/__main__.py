"""
Explorer engine CLI entry point.

Run the explorer engine headless, logging each cycle, optionally with a
status server exposing health, statistics and Prometheus metrics.

Usage::

    python -m chert_explorer --mode mock
    python -m chert_explorer --mode node --node-url http://localhost:8545
    python -m chert_explorer --config explorer.yaml --api-port 5053

Options:
    --config       Path to a YAML configuration file
    --mode         Backend to run: mock (synthetic chain) or node (live polling)
    --node-url     Base URL of the ledger node (node mode)
    --seed         Seed for the synthetic chain (mock mode)
    --api-port     Serve the status endpoints on this port
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml

from chert_explorer.config import BackendMode, ExplorerConfig, load_config
from chert_explorer.services.node import ExplorerNode
from chert_explorer.types import BlockSummary, ExplorerError

logger = logging.getLogger(__name__)


NOISY_LOGGERS = ("httpx", "httpcore", "aiohttp.access")
"""Libraries that log every request at INFO. A poller would drown the output."""


class ColoredFormatter(logging.Formatter):
    """
    Single-line formatter: time, level, logger name, message.

    With `colored` set, the level is tinted by severity and the time and
    logger name are dimmed so messages stand out.
    """

    DIM = "\x1b[2m"
    RESET = "\x1b[0m"
    PALETTE = {
        logging.DEBUG: "\x1b[38;5;244m",
        logging.INFO: "\x1b[38;5;40m",
        logging.WARNING: "\x1b[38;5;220m",
        logging.ERROR: "\x1b[38;5;196m",
        logging.CRITICAL: "\x1b[38;5;196;1m",
    }

    def __init__(self, colored: bool = True) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.colored = colored

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{self.RESET}" if self.colored else text

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self._paint(self.formatTime(record, self.datefmt), self.DIM)
        levelname = self._paint(f"{record.levelname:8}", self.PALETTE.get(record.levelno, ""))
        name = self._paint(record.name, self.DIM)

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{timestamp} {levelname} {name}: {message}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Install one stream handler on the root logger, replacing any previous one."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(colored=not no_color))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def build_config(args: argparse.Namespace) -> ExplorerConfig:
    """Layer command-line flags over the file and environment configuration."""
    overrides: dict[str, Any] = {}
    if args.mode is not None:
        overrides["mode"] = args.mode
    if args.node_url is not None:
        overrides["node_base_url"] = args.node_url
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.api_port is not None:
        overrides["api_enabled"] = True
        overrides["api_port"] = args.api_port
    return load_config(args.config, overrides)


async def run_engine(config: ExplorerConfig) -> None:
    """Run the engine until interrupted, logging each new tip."""
    node = ExplorerNode.from_config(config)
    last_tip: list[int] = [0]

    def log_tip(blocks: tuple[BlockSummary, ...]) -> None:
        if not blocks or blocks[-1].height == last_tip[0]:
            return
        last_tip[0] = int(blocks[-1].height)
        stats = node.network_stats.value
        logger.info(
            "Tip: height=%d txs=%d finalized=%d tps=%.2f",
            blocks[-1].height,
            blocks[-1].transaction_count,
            stats.finalized_height,
            stats.average_tps,
        )

    node.blocks.subscribe(log_tip)

    logger.info("Starting explorer engine...")
    await node.run()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Ledger explorer engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in BackendMode],
        default=None,
        help="Backend to run (default: from config or environment, else node)",
    )
    parser.add_argument(
        "--node-url",
        type=str,
        default=None,
        help="Base URL of the ledger node",
    )
    parser.add_argument(
        "--seed",
        type=lambda value: int(value, 0),
        default=None,
        help="Seed for the synthetic chain, decimal or 0x-prefixed",
    )
    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="Serve status endpoints on this port",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )

    args = parser.parse_args()

    setup_logging(args.verbose, args.no_color)

    try:
        config = build_config(args)
        config.check()
    except (OSError, ValueError, yaml.YAMLError) as e:
        # pydantic and explorer validation errors are both ValueErrors.
        parser.error(f"Invalid configuration: {e}")

    try:
        asyncio.run(run_engine(config))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except ExplorerError as e:
        logger.error("Explorer engine failed: %s", e)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
