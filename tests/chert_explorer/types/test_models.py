"""Tests for the ledger data model."""

from __future__ import annotations

import pydantic
import pytest

from chert_explorer.types import (
    BlockStatus,
    NetworkStatistics,
    ProtocolError,
    UnixMs,
)
from tests.chert_explorer.helpers import make_block, make_transaction


class TestBlockModels:
    """Tests for block summaries and details."""

    def test_summary_drops_transactions(self) -> None:
        """`to_summary` keeps every header field."""
        details = make_block(3, tx_count=2)
        summary = details.to_summary()

        assert summary.hash == details.hash
        assert summary.transaction_count == 2
        assert not hasattr(summary, "transactions")

    def test_finalized_returns_promoted_copy(self) -> None:
        """`finalized` leaves the original untouched."""
        block = make_block(1).to_summary()
        promoted = block.finalized()

        assert block.status is BlockStatus.PENDING
        assert promoted.is_finalized
        assert promoted.finalized() is promoted

    def test_models_are_frozen(self) -> None:
        """Published models cannot be mutated."""
        block = make_block(1)
        with pytest.raises(pydantic.ValidationError):
            block.status = BlockStatus.FINALIZED  # type: ignore[misc]

    def test_serializes_with_camel_case_aliases(self) -> None:
        """Consumers receive camelCase keys."""
        dumped = make_block(2).to_summary().model_dump(by_alias=True, mode="json")

        assert "parentHash" in dumped
        assert "transactionCount" in dumped
        assert dumped["status"] == "pending"


class TestTransactionModels:
    """Tests for transaction summaries and details."""

    def test_summary_round_trip_keeps_fields(self) -> None:
        """`to_summary` keeps every summary field."""
        details = make_transaction(4, 0, value=77, fee=3)
        summary = details.to_summary()

        assert summary.value == 77
        assert summary.fee == 3
        assert summary.block_height == 4

    def test_rejects_negative_confirmations(self) -> None:
        """Confirmation counts are non-negative."""
        details = make_transaction(1, 0)
        with pytest.raises(pydantic.ValidationError):
            type(details)(**{**details.model_dump(), "confirmations": -1})


class TestNetworkStatistics:
    """Tests for network statistics."""

    def test_empty_statistics(self) -> None:
        """Empty statistics are all zero at the given time."""
        stats = NetworkStatistics.empty(UnixMs(5))

        assert stats.current_height == 0
        assert stats.average_tps == 0.0
        assert stats.timestamp == 5


class TestErrors:
    """Tests for error formatting."""

    def test_protocol_error_carries_code_and_message(self) -> None:
        """Both the code and the node's message are preserved."""
        error = ProtocolError(-32601, "method not found", method="get_alerts")

        assert error.code == -32601
        assert error.method == "get_alerts"
        assert "method not found" in str(error)
        assert "-32601" in error.message
