"""
Wire records returned by the node.

These models are deliberately lax: unknown fields are ignored, numbers may
arrive as strings, and most fields are optional. They only establish the
shape of a record. Format checks (hashes, addresses, non-negative amounts)
happen when a record is mapped into the ledger model.

Nested records (blocks in a page, transactions in a block, delegates) are
kept raw so that one malformed record drops only itself, not the page or
block that carries it.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for node records: snake_case, extra fields ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class WireTransaction(WireModel):
    """A transaction as the node reports it."""

    hash: str = Field(validation_alias=AliasChoices("hash", "tx_id", "tx_hash"))
    block_hash: str | None = None
    block_height: int | None = Field(
        default=None, validation_alias=AliasChoices("block_height", "block_number")
    )
    sender: str = Field(validation_alias=AliasChoices("from", "sender"))
    recipient: str = Field(validation_alias=AliasChoices("to", "recipient"))
    value: int = Field(default=0, validation_alias=AliasChoices("value", "amount"))
    fee: int = 0
    timestamp: float | None = None
    status: str | None = None
    memo: str | None = None
    inputs: list[str] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)
    confirmations: int | None = None


class WireBlock(WireModel):
    """A block as the node reports it."""

    height: int = Field(validation_alias=AliasChoices("height", "number"))
    hash: str
    parent_hash: str | None = None
    timestamp: float
    transactions: list[Any] = Field(default_factory=list)
    tx_count: int | None = Field(
        default=None, validation_alias=AliasChoices("tx_count", "transaction_count")
    )
    total_value: int | None = None
    status: str | None = None
    confirmations: int | None = None
    miner: str | None = Field(default=None, validation_alias=AliasChoices("miner", "proposer"))
    delegates: list[Any] = Field(
        default_factory=list, validation_alias=AliasChoices("delegates", "delegate_set")
    )


class BlocksPage(WireModel):
    """Result of `get_blocks`."""

    blocks: list[Any] = Field(default_factory=list)
    next_cursor: str | int | None = None
    """Opaque token for the next older page. Absent once history is exhausted."""
