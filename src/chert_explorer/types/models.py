"""
Ledger data model published by the explorer engine.

Every model here is frozen. Consumers receive the same instances the
engine holds, so immutability is what keeps a published snapshot stable
while the next cycle builds its successor.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .base import StrictBaseModel
from .scalars import AttoValue, Height, UnixMs
from .strings import AccountAddress, CommitteeId, Hash


class BlockStatus(str, Enum):
    """
    Block finality status.

    The only transition is PENDING -> FINALIZED. It never reverses.
    """

    PENDING = "pending"
    FINALIZED = "finalized"


class TransactionStatus(str, Enum):
    """Transaction inclusion status as reported by the backend."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class TransactionSummary(StrictBaseModel):
    """A transaction as listed in blocks, feeds and account activity."""

    hash: Hash
    block_hash: Hash
    block_height: Height
    sender: AccountAddress
    recipient: AccountAddress
    value: AttoValue
    fee: AttoValue
    timestamp: UnixMs
    status: TransactionStatus
    memo: str | None = None


class TransactionDetails(TransactionSummary):
    """A transaction with its input/output references and confirmations."""

    inputs: tuple[Hash, ...] = ()
    outputs: tuple[Hash, ...] = ()
    confirmations: int = Field(default=0, ge=0)

    def to_summary(self) -> TransactionSummary:
        """Drop the detail-only fields."""
        return TransactionSummary(
            **{name: getattr(self, name) for name in TransactionSummary.model_fields}
        )


class BlockSummary(StrictBaseModel):
    """A block header plus aggregate figures."""

    height: Height
    hash: Hash
    parent_hash: Hash | None
    """None only for genesis or when the parent is outside the known window."""

    timestamp: UnixMs
    transaction_count: int = Field(ge=0)
    total_value: AttoValue
    status: BlockStatus
    confirmation_score: int = Field(ge=0)
    miner: AccountAddress
    delegate_set: tuple[CommitteeId, ...] = ()

    @property
    def is_finalized(self) -> bool:
        """Check whether the block has reached finality."""
        return self.status is BlockStatus.FINALIZED

    def finalized(self) -> BlockSummary:
        """Return this block marked finalized."""
        return self if self.is_finalized else self.model_copy(update={"status": BlockStatus.FINALIZED})


class BlockDetails(BlockSummary):
    """A block together with its full transaction list."""

    transactions: tuple[TransactionSummary, ...] = ()

    def to_summary(self) -> BlockSummary:
        """Drop the transaction list."""
        return BlockSummary(**{name: getattr(self, name) for name in BlockSummary.model_fields})


class AccountSummary(StrictBaseModel):
    """Point-in-time view of one account."""

    address: AccountAddress
    balance: AttoValue
    staked_balance: AttoValue
    nonce: Height
    reputation: float = Field(ge=0.0, le=1.0)
    last_seen: UnixMs


class AccountActivitySnapshot(StrictBaseModel):
    """An account together with its capped, most-recent-first activity."""

    account: AccountSummary
    outbound: tuple[TransactionSummary, ...]
    inbound: tuple[TransactionSummary, ...]
    recent_blocks: tuple[BlockSummary, ...]


class NetworkStatistics(StrictBaseModel):
    """
    Derived chain-wide figures.

    Recomputed every cycle. Only the latest value is ever kept.
    """

    current_height: Height
    finalized_height: Height
    average_tps: float = Field(ge=0.0)
    active_validators: int = Field(ge=0)
    next_election_eta_ms: int = Field(ge=0)
    timestamp: UnixMs

    @classmethod
    def empty(cls, now_ms: UnixMs) -> NetworkStatistics:
        """Statistics for a chain with no blocks yet."""
        return cls(
            current_height=Height(0),
            finalized_height=Height(0),
            average_tps=0.0,
            active_validators=0,
            next_election_eta_ms=0,
            timestamp=now_ms,
        )
