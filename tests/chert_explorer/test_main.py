"""Tests for the command-line entry point."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from chert_explorer.__main__ import NOISY_LOGGERS, ColoredFormatter, build_config, setup_logging
from chert_explorer.config import BackendMode


def make_args(**overrides: object) -> argparse.Namespace:
    values: dict[str, object] = {
        "config": None,
        "mode": None,
        "node_url": None,
        "seed": None,
        "api_port": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class TestBuildConfig:
    """Tests for layering command-line flags over configuration."""

    def test_no_flags(self) -> None:
        """Without flags or environment, defaults apply."""

        config = build_config(make_args())

        assert config.mode is BackendMode.NODE
        assert config.api_enabled is False

    def test_flags_override_file(self, tmp_path: Path) -> None:
        """Flags win over values read from the file."""
        path = tmp_path / "explorer.yaml"
        path.write_text("mode: node\nseed: 1\n")

        config = build_config(make_args(config=path, mode="mock", seed=0xBEEF))

        assert config.mode is BackendMode.MOCK
        assert config.seed == 0xBEEF

    def test_api_port_enables_server(self) -> None:
        """Passing a port turns the status server on."""
        config = build_config(make_args(api_port=6000))

        assert config.api_enabled is True
        assert config.api_port == 6000


class TestColoredFormatter:
    """Tests for colored log output."""

    def test_includes_level_and_name(self) -> None:
        """Formatted records carry the level, logger name and message."""
        record = logging.LogRecord(
            "chert.test", logging.WARNING, __file__, 1, "hello %s", ("x",), None
        )

        output = ColoredFormatter().format(record)

        assert "WARNING" in output
        assert "chert.test" in output
        assert output.endswith("hello x")

    def test_plain_output_has_no_escape_codes(self) -> None:
        """With colors off, the line is plain text."""
        record = logging.LogRecord("chert.test", logging.INFO, __file__, 1, "plain", None, None)

        output = ColoredFormatter(colored=False).format(record)

        assert "\x1b[" not in output
        assert "INFO     chert.test: plain" in output


class TestSetupLogging:
    """Tests for root logger configuration."""

    def test_replaces_handlers_and_quiets_http_loggers(self) -> None:
        """Repeated setup leaves exactly one handler and silences request logs."""
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging()
            setup_logging(no_color=True)

            assert len(root.handlers) == 1
            assert root.level == logging.INFO
            for name in NOISY_LOGGERS:
                assert logging.getLogger(name).level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            for name in NOISY_LOGGERS:
                logging.getLogger(name).setLevel(logging.NOTSET)
