"""
State distribution hub.

The hub is the only surface UI consumers read. It exposes one replaying
channel per tracked quantity and synchronous point lookups against the
store. Lookups never touch the network and return None when the entity is
not cached.

Backends mutate the store and then call the matching `publish_*` method.
Publishing always reads the store's current state in full, so consumers
only ever see complete snapshots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from chert_explorer.types import (
    AccountActivitySnapshot,
    AccountSummary,
    BlockDetails,
    BlockSummary,
    NetworkStatistics,
    TransactionDetails,
    TransactionSummary,
    UnixMs,
)

from ..store import StateStore
from .channel import Channel

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StateHub:
    """Broadcast channels plus cache-only lookups over a `StateStore`."""

    store: StateStore
    """Store that backs lookups and publications."""

    network_stats: Channel[NetworkStatistics]
    """Latest derived statistics. Seeded with empty statistics."""

    blocks: Channel[tuple[BlockSummary, ...]] = field(
        default_factory=lambda: Channel("blocks", ())
    )
    recent_transactions: Channel[tuple[TransactionSummary, ...]] = field(
        default_factory=lambda: Channel("recent_transactions", ())
    )
    accounts: Channel[tuple[AccountSummary, ...]] = field(
        default_factory=lambda: Channel("accounts", ())
    )
    last_refreshed: Channel[UnixMs | None] = field(
        default_factory=lambda: Channel("last_refreshed", None)
    )
    """Time of the last successful live poll. Stays None in simulated mode."""

    is_refreshing: Channel[bool] = field(default_factory=lambda: Channel("is_refreshing", False))
    has_more_blocks: Channel[bool] = field(
        default_factory=lambda: Channel("has_more_blocks", False)
    )
    is_loading_more: Channel[bool] = field(
        default_factory=lambda: Channel("is_loading_more", False)
    )

    @classmethod
    def create(cls, store: StateStore, now_ms: UnixMs) -> StateHub:
        """Build a hub with every channel at its initial value."""
        return cls(
            store=store,
            network_stats=Channel("network_stats", NetworkStatistics.empty(now_ms)),
        )

    @property
    def channels(self) -> tuple[Channel, ...]:  # type: ignore[type-arg]
        """Every channel, in a fixed order."""
        return (
            self.blocks,
            self.recent_transactions,
            self.network_stats,
            self.accounts,
            self.last_refreshed,
            self.is_refreshing,
            self.has_more_blocks,
            self.is_loading_more,
        )

    @property
    def closed(self) -> bool:
        return all(channel.closed for channel in self.channels)

    # -------------------------------------------------------------------------
    # Point lookups
    # -------------------------------------------------------------------------

    def get_block_details(self, block_hash: str) -> BlockDetails | None:
        """Return a cached block, or None."""
        return self.store.get_block(block_hash)

    def get_transaction_details(self, tx_hash: str) -> TransactionDetails | None:
        """Return a cached transaction, or None."""
        return self.store.get_transaction(tx_hash)

    def get_account_snapshot(self, address: str) -> AccountActivitySnapshot | None:
        """Return an account with its recent activity, or None."""
        return self.store.account_snapshot(address)

    # -------------------------------------------------------------------------
    # Publication
    # -------------------------------------------------------------------------

    def publish_blocks(self) -> None:
        self.blocks.publish(self.store.blocks)

    def publish_transactions(self) -> None:
        self.recent_transactions.publish(self.store.latest_transactions)

    def publish_accounts(self) -> None:
        self.accounts.publish(self.store.account_summaries())

    def publish_ledger(self) -> None:
        """Publish blocks, the recent feed and accounts from the store."""
        self.publish_blocks()
        self.publish_transactions()
        self.publish_accounts()

    def publish_network_stats(self, stats: NetworkStatistics) -> None:
        self.network_stats.publish(stats)

    def close(self) -> None:
        """Close every channel. Idempotent."""
        for channel in self.channels:
            channel.close()
        logger.debug("State hub closed")
