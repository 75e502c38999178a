"""
Bounded in-memory state shared by both backends.

How It Works
------------
The store keeps five structures:

1. **Block list**: summaries ordered by ascending height
2. **Block details**: block hash -> block with its transactions
3. **Transaction details**: transaction hash -> detailed record
4. **Recent transactions**: a capped, most-recent-first feed
5. **Accounts**: address -> mutable working state

Memory Safety
-------------
The block list is bounded by `max_blocks`. Whenever it grows past the
bound, the lowest block is removed, one at a time, and every trace of it
goes with it: its transaction details, its entries in the recent feed,
and its hash in every account's recent-block list. Accounts themselves
are never evicted; only their activity lists are capped.

The store performs no I/O and never suspends. Each mutating method runs
to completion, so a reader never observes a half-applied update.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from chert_explorer.types import (
    AccountActivitySnapshot,
    AccountAddress,
    AccountSummary,
    BlockDetails,
    BlockStatus,
    BlockSummary,
    Hash,
    TransactionDetails,
    TransactionSummary,
    require,
)

from .accounts import AccountState, push_front
from .limits import LATEST_TRANSACTIONS_LIMIT

logger = logging.getLogger(__name__)

AccountFactory = Callable[[AccountAddress], AccountState]
"""Builds the initial state of an account on first reference."""


@dataclass(slots=True)
class StateStore:
    """Blocks, transactions and accounts with a fixed-size eviction policy."""

    max_blocks: int
    """Upper bound on retained blocks."""

    _blocks: list[BlockSummary] = field(default_factory=list)
    """Retained blocks, lowest height first."""

    _block_details: dict[str, BlockDetails] = field(default_factory=dict)
    _transaction_details: dict[str, TransactionDetails] = field(default_factory=dict)

    _latest_transactions: list[TransactionSummary] = field(default_factory=list)
    """Most recent first, capped at LATEST_TRANSACTIONS_LIMIT."""

    _accounts: dict[str, AccountState] = field(default_factory=dict)
    """Insertion-ordered, so published summaries have a stable order."""

    def __post_init__(self) -> None:
        require(self.max_blocks > 0, "maxBlocks must be positive")

    def __len__(self) -> int:
        """Return the number of retained blocks."""
        return len(self._blocks)

    @property
    def blocks(self) -> tuple[BlockSummary, ...]:
        """Retained blocks in ascending height order."""
        return tuple(self._blocks)

    @property
    def latest_transactions(self) -> tuple[TransactionSummary, ...]:
        """The recent-transaction feed, most recent first."""
        return tuple(self._latest_transactions)

    @property
    def tip(self) -> BlockSummary | None:
        """The highest retained block."""
        return self._blocks[-1] if self._blocks else None

    @property
    def lowest(self) -> BlockSummary | None:
        """The lowest retained block."""
        return self._blocks[0] if self._blocks else None

    # -------------------------------------------------------------------------
    # Point lookups
    # -------------------------------------------------------------------------

    def get_block(self, block_hash: str) -> BlockDetails | None:
        return self._block_details.get(block_hash)

    def get_block_by_height(self, height: int) -> BlockDetails | None:
        """Find a retained block by height."""
        if not self._blocks:
            return None

        # Heights are contiguous in simulated mode, but a live window may have gaps.
        offset = height - int(self._blocks[0].height)
        if 0 <= offset < len(self._blocks) and self._blocks[offset].height == height:
            return self._block_details.get(self._blocks[offset].hash)
        for block in self._blocks:
            if block.height == height:
                return self._block_details.get(block.hash)
        return None

    def get_transaction(self, tx_hash: str) -> TransactionDetails | None:
        return self._transaction_details.get(tx_hash)

    def get_account(self, address: str) -> AccountState | None:
        return self._accounts.get(address)

    def iter_accounts(self) -> Iterator[AccountState]:
        return iter(self._accounts.values())

    @property
    def account_count(self) -> int:
        return len(self._accounts)

    # -------------------------------------------------------------------------
    # Incremental mutation (simulated backend)
    # -------------------------------------------------------------------------

    def ensure_account(
        self, address: AccountAddress, factory: AccountFactory | None = None
    ) -> AccountState:
        """Return the account, creating it on first reference."""
        state = self._accounts.get(address)
        if state is None:
            state = factory(address) if factory is not None else AccountState(address=address)
            self._accounts[address] = state
        return state

    def store_transaction(self, details: TransactionDetails) -> None:
        """Index a transaction and put it at the front of the recent feed."""
        self._transaction_details[details.hash] = details
        push_front(self._latest_transactions, details.to_summary(), LATEST_TRANSACTIONS_LIMIT)

    def push_block(self, details: BlockDetails) -> list[BlockSummary]:
        """
        Append a new highest block and restore the bound.

        Args:
            details: The block to append. Its height must exceed the tip's.

        Returns:
            The evicted blocks, lowest first.
        """
        tip = self.tip
        require(
            tip is None or details.height > tip.height,
            f"Block height {details.height} does not extend tip {tip.height if tip else 0}",
        )
        self._block_details[details.hash] = details
        self._blocks.append(details.to_summary())
        return self.evict_excess()

    def evict_excess(self) -> list[BlockSummary]:
        """Remove lowest blocks one at a time until within `max_blocks`."""
        evicted: list[BlockSummary] = []
        while len(self._blocks) > self.max_blocks:
            removed = self._blocks.pop(0)
            self._purge(removed.hash)
            evicted.append(removed)

        if evicted:
            logger.debug(
                "Evicted %d block(s), heights %d..%d",
                len(evicted),
                evicted[0].height,
                evicted[-1].height,
            )
        return evicted

    def _purge(self, block_hash: Hash) -> None:
        details = self._block_details.pop(block_hash, None)
        if details is not None and details.transactions:
            removed = {tx.hash for tx in details.transactions}
            for tx_hash in removed:
                self._transaction_details.pop(tx_hash, None)
            self._latest_transactions[:] = [
                tx for tx in self._latest_transactions if tx.hash not in removed
            ]
        for account in self._accounts.values():
            account.forget_block(block_hash)

    def promote_finalized(self, threshold: int) -> int:
        """
        Mark every block at or below `threshold` as finalized.

        Status only ever moves forward, so blocks above the threshold keep
        whatever status they already have.

        Returns:
            How many blocks changed status.
        """
        promoted = 0
        for index, block in enumerate(self._blocks):
            if block.height > threshold:
                # Ascending order: nothing further can qualify.
                break
            if block.is_finalized:
                continue
            self._blocks[index] = block.finalized()
            details = self._block_details.get(block.hash)
            if details is not None:
                self._block_details[block.hash] = details.model_copy(
                    update={"status": BlockStatus.FINALIZED}
                )
            promoted += 1
        return promoted

    # -------------------------------------------------------------------------
    # Window mutation (live backend)
    # -------------------------------------------------------------------------

    def replace_window(
        self,
        blocks: Sequence[BlockDetails],
        transactions: Iterable[TransactionDetails],
        accounts: dict[str, AccountState],
    ) -> None:
        """
        Replace every cache wholesale with a freshly fetched window.

        The new structures are built completely before being swapped in, so
        the previous snapshot stays intact if building fails.

        Args:
            blocks: The window, in any order. Only the highest `max_blocks`
                are retained, and only the first block seen at each height.
            transactions: Detailed records for the window's transactions.
            accounts: Account state rebuilt from the window.
        """
        ordered = sorted(_one_per_height(blocks), key=lambda b: int(b.height))[-self.max_blocks :]
        retained = {b.hash for b in ordered}

        tx_details: dict[str, TransactionDetails] = {}
        for tx in transactions:
            if tx.block_hash in retained:
                tx_details[tx.hash] = tx

        feed = sorted(
            (tx.to_summary() for tx in tx_details.values()),
            key=lambda tx: (int(tx.block_height), int(tx.timestamp)),
            reverse=True,
        )[:LATEST_TRANSACTIONS_LIMIT]

        self._blocks = [b.to_summary() for b in ordered]
        self._block_details = {b.hash: b for b in ordered}
        self._transaction_details = tx_details
        self._latest_transactions = feed
        self._accounts = dict(accounts)

    def merge_older(
        self,
        blocks: Sequence[BlockDetails],
        transactions: Iterable[TransactionDetails],
    ) -> list[BlockSummary]:
        """
        Prepend blocks older than the current lowest block.

        Only as many of the highest candidates as fit under `max_blocks`
        are accepted. Known hashes and blocks at or above the current lowest
        height are skipped.

        Returns:
            The accepted blocks, lowest first. Empty means nothing changed.
        """
        room = self.max_blocks - len(self._blocks)
        if room <= 0:
            return []

        floor = self.lowest
        candidates = sorted(
            (
                b
                for b in _one_per_height(blocks)
                if b.hash not in self._block_details
                and (floor is None or b.height < floor.height)
            ),
            key=lambda b: int(b.height),
        )
        accepted = candidates[-room:]
        if not accepted:
            return []

        kept = {b.hash for b in accepted}
        for block in accepted:
            self._block_details[block.hash] = block
        self._blocks[:0] = [b.to_summary() for b in accepted]

        for tx in transactions:
            if tx.block_hash in kept and tx.hash not in self._transaction_details:
                self._transaction_details[tx.hash] = tx
                if len(self._latest_transactions) < LATEST_TRANSACTIONS_LIMIT:
                    self._latest_transactions.append(tx.to_summary())

        return [b.to_summary() for b in accepted]

    # -------------------------------------------------------------------------
    # Published views
    # -------------------------------------------------------------------------

    def account_summaries(self) -> tuple[AccountSummary, ...]:
        """Freeze every account."""
        return tuple(state.to_summary() for state in self._accounts.values())

    def account_snapshot(self, address: str) -> AccountActivitySnapshot | None:
        """
        Build an account's activity view from cached data only.

        Recent blocks that are no longer retained are omitted.
        """
        state = self._accounts.get(address)
        if state is None:
            return None

        recent_blocks = tuple(
            details.to_summary()
            for details in (self._block_details.get(h) for h in state.recent_blocks)
            if details is not None
        )
        return AccountActivitySnapshot(
            account=state.to_summary(),
            outbound=tuple(state.outbound),
            inbound=tuple(state.inbound),
            recent_blocks=recent_blocks,
        )


def _one_per_height(blocks: Iterable[BlockDetails]) -> list[BlockDetails]:
    """Keep the first block seen at each height, dropping repeats."""
    by_height: dict[int, BlockDetails] = {}
    for block in blocks:
        by_height.setdefault(int(block.height), block)
    return list(by_height.values())
