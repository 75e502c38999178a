"""Mutable per-account state held inside the store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeVar

from chert_explorer.types import (
    AccountAddress,
    AccountSummary,
    AttoValue,
    Hash,
    Height,
    TransactionSummary,
    UnixMs,
)

from .limits import RECENT_ACCOUNT_ACTIVITY_LIMIT, RECENT_BLOCKS_PER_ACCOUNT

T = TypeVar("T")


def push_front(items: list[T], item: T, limit: int) -> None:
    """Insert `item` first and truncate `items` to `limit` in place."""
    items.insert(0, item)
    del items[limit:]


@dataclass(slots=True)
class AccountState:
    """
    Working copy of one account.

    Balances are plain integers here so a debit can be computed and then
    clamped. They are validated into `AttoValue` only when published.
    """

    address: AccountAddress
    balance: int = 0
    staked_balance: int = 0
    nonce: int = 0
    reputation: float = 0.0
    last_seen: int = 0

    outbound: list[TransactionSummary] = field(default_factory=list)
    """Most recent first, capped at RECENT_ACCOUNT_ACTIVITY_LIMIT."""

    inbound: list[TransactionSummary] = field(default_factory=list)
    """Most recent first, capped at RECENT_ACCOUNT_ACTIVITY_LIMIT."""

    recent_blocks: list[Hash] = field(default_factory=list)
    """Unique block hashes, most recent first, capped at RECENT_BLOCKS_PER_ACCOUNT."""

    def debit(self, value: int, fee: int, tx: TransactionSummary, timestamp: int) -> None:
        """Apply the sender side of a transfer. The balance floors at zero."""
        self.balance = max(0, self.balance - value - fee)
        self.note_outbound(tx, timestamp)

    def credit(self, value: int, tx: TransactionSummary, timestamp: int) -> None:
        """Apply the recipient side of a transfer."""
        self.balance += value
        self.note_inbound(tx, timestamp)

    def note_outbound(self, tx: TransactionSummary, timestamp: int) -> None:
        """Record a sent transaction without moving funds."""
        self.nonce += 1
        self.last_seen = max(self.last_seen, timestamp)
        push_front(self.outbound, tx, RECENT_ACCOUNT_ACTIVITY_LIMIT)
        self.touch_block(tx.block_hash)

    def note_inbound(self, tx: TransactionSummary, timestamp: int) -> None:
        """Record a received transaction without moving funds."""
        self.last_seen = max(self.last_seen, timestamp)
        push_front(self.inbound, tx, RECENT_ACCOUNT_ACTIVITY_LIMIT)
        self.touch_block(tx.block_hash)

    def note_older(self, tx: TransactionSummary, *, outbound: bool) -> None:
        """
        Record a transaction older than everything already tracked.

        It goes to the tail of the activity list, and only if there is room.
        """
        activity = self.outbound if outbound else self.inbound
        if len(activity) < RECENT_ACCOUNT_ACTIVITY_LIMIT:
            activity.append(tx)
        if outbound:
            self.nonce += 1
        if tx.block_hash not in self.recent_blocks and len(self.recent_blocks) < RECENT_BLOCKS_PER_ACCOUNT:
            self.recent_blocks.append(tx.block_hash)

    def collect_fee(self, fee: int, block_hash: Hash, timestamp: int) -> None:
        """Credit a block producer with a transaction fee."""
        self.balance += fee
        self.last_seen = timestamp
        self.touch_block(block_hash)

    def touch_block(self, block_hash: Hash) -> None:
        """Move `block_hash` to the front of the recent-block list."""
        if self.recent_blocks and self.recent_blocks[0] == block_hash:
            return
        if block_hash in self.recent_blocks:
            self.recent_blocks.remove(block_hash)
        push_front(self.recent_blocks, block_hash, RECENT_BLOCKS_PER_ACCOUNT)

    def forget_block(self, block_hash: Hash) -> None:
        """Scrub an evicted block from the recent-block list."""
        if block_hash in self.recent_blocks:
            self.recent_blocks.remove(block_hash)

    def to_summary(self) -> AccountSummary:
        """Validate and freeze the current figures."""
        return AccountSummary(
            address=self.address,
            balance=AttoValue(max(0, int(self.balance))),
            staked_balance=AttoValue(max(0, int(self.staked_balance))),
            nonce=Height(self.nonce),
            reputation=round(float(self.reputation), 2),
            last_seen=UnixMs(self.last_seen),
        )
