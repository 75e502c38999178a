"""
Polling client that mirrors a live node into the shared store.

The Refresh Cycle
-----------------
1. Fetch the newest page of blocks with `get_blocks`
2. Ask the node for its health document (best effort)
3. Map every block, skipping the ones that fail validation
4. Rebuild account activity from the mapped window
5. Replace the store wholesale and publish

Each cycle is atomic from a consumer's point of view. Everything is built
before the store is touched, so a failure at any step leaves the previous
snapshot in place. Failures are logged and swallowed: the next timer tick
simply tries again.

Paging
------
`load_more_blocks` follows the cursor the node returned with the last page
and prepends strictly older blocks. It never evicts newer data; once the
store is full it stops accepting pages.

Refresh and paging each have their own busy flag. A call made while the
matching operation is in flight returns immediately without effect.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from chert_explorer.config import ExplorerConfig
from chert_explorer.services import metrics
from chert_explorer.services.hub import Channel, StateHub
from chert_explorer.services.rpc import (
    BlocksPage,
    JsonRpcClient,
    WireBlock,
    map_block,
    parse_blocks_page,
    validator_count_from_health,
)
from chert_explorer.services.rpc.mapping import parse_wire
from chert_explorer.services.store import AccountState, StateStore
from chert_explorer.types import (
    AccountAddress,
    BlockDetails,
    Height,
    NetworkStatistics,
    TransactionDetails,
    UnixMs,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LiveSnapshot:
    """One fully mapped window, ready to be swapped into the store."""

    blocks: list[BlockDetails]
    transactions: list[TransactionDetails]
    accounts: dict[str, AccountState]
    stats: NetworkStatistics
    next_cursor: str | int | None


@dataclass(slots=True)
class LiveSyncClient:
    """
    Live backend: polls a node and republishes its newest window.

    Implements `ExplorerBackend`.
    """

    config: ExplorerConfig
    store: StateStore
    hub: StateHub
    rpc: JsonRpcClient

    time_fn: Callable[[], float] = field(default=time.time)
    """Wall-clock source in seconds (injectable for testing)."""

    cursor: str | int | None = field(default=None, init=False)
    """Cursor for the next older page. None once history is exhausted."""

    _refreshing: bool = field(default=False, init=False, repr=False)
    _loading_more: bool = field(default=False, init=False, repr=False)

    # -------------------------------------------------------------------------
    # Backend interface
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        await self.refresh_from_node()

    async def tick(self) -> None:
        await self.refresh_from_node()

    async def refresh(self) -> None:
        await self.refresh_from_node()

    async def load_more_blocks(self) -> bool:
        """
        Fetch the next older page and prepend it.

        Returns:
            True if at least one block was added.
        """
        if self._loading_more or self.cursor is None:
            return False

        self._loading_more = True
        _set_flag(self.hub.is_loading_more, True)
        try:
            return await self._load_older_page(self.cursor)
        except Exception as exc:
            logger.warning("Loading older blocks failed: %s", exc)
            return False
        finally:
            self._loading_more = False
            _set_flag(self.hub.is_loading_more, False)

    async def close(self) -> None:
        await self.rpc.close()

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh_from_node(self) -> bool:
        """
        Run one refresh cycle.

        Returns:
            True if a new snapshot was published. False if the cycle was
            skipped because another is in flight, or failed.
        """
        if self._refreshing:
            logger.debug("Refresh already in flight, skipping")
            metrics.polls.labels(outcome="skipped").inc()
            return False

        self._refreshing = True
        _set_flag(self.hub.is_refreshing, True)
        started = time.perf_counter()
        try:
            page = parse_blocks_page(await self.rpc.get_blocks(limit=self.config.page_size))
            validator_count = await self._fetch_validator_count()
            snapshot = self.build_snapshot(page, validator_count, self._now_ms())
            self._commit(snapshot)
        except Exception as exc:
            logger.warning("Node refresh failed: %s", exc)
            metrics.polls.labels(outcome="failure").inc()
            return False
        finally:
            metrics.poll_duration.observe(time.perf_counter() - started)
            self._refreshing = False
            _set_flag(self.hub.is_refreshing, False)

        metrics.polls.labels(outcome="success").inc()
        return True

    async def _fetch_validator_count(self) -> int | None:
        # The health endpoint is optional on some nodes.
        try:
            return validator_count_from_health(await self.rpc.health())
        except Exception as exc:
            logger.debug("Health endpoint unavailable: %s", exc)
            return None

    def build_snapshot(
        self,
        page: BlocksPage,
        validator_count: int | None,
        now_ms: int,
    ) -> LiveSnapshot:
        """
        Map a page of blocks into a complete window.

        Raises:
            ValidationError: If the page had blocks but none could be mapped.
        """
        known_finalized = {b.hash for b in self.store.blocks if b.is_finalized}
        blocks, transactions = self._map_blocks(page.blocks, known_finalized)
        if page.blocks and not blocks:
            raise ValidationError(f"None of the {len(page.blocks)} block(s) in the page were valid")

        blocks.sort(key=lambda b: int(b.height))
        return LiveSnapshot(
            blocks=blocks,
            transactions=transactions,
            accounts=rebuild_accounts(blocks, transactions),
            stats=window_statistics(blocks, validator_count, now_ms),
            next_cursor=page.next_cursor,
        )

    def _map_blocks(
        self,
        raw_blocks: Sequence[Any],
        known_finalized: set[str],
        tip_height: int | None = None,
    ) -> tuple[list[BlockDetails], list[TransactionDetails]]:
        if tip_height is None:
            # Confirmations are counted against the highest block that parses.
            heights: list[int] = []
            for raw in raw_blocks:
                try:
                    heights.append(parse_wire(WireBlock, raw).height)
                except ValidationError:
                    continue
            tip_height = max(heights, default=None)

        blocks: list[BlockDetails] = []
        transactions: list[TransactionDetails] = []
        seen_hashes: set[str] = set()
        seen_heights: set[int] = set()
        for raw in raw_blocks:
            try:
                block, block_txs = map_block(
                    raw,
                    tip_height=tip_height,
                    finality_lag=self.config.finality_lag,
                    known_finalized=known_finalized,
                )
            except ValidationError as exc:
                logger.warning("Skipping malformed block: %s", exc.message)
                continue
            # One block per hash and per height keeps heights strictly increasing.
            if block.hash in seen_hashes or int(block.height) in seen_heights:
                logger.warning("Skipping duplicate block %d (%s)", block.height, block.hash[:16])
                continue
            seen_hashes.add(block.hash)
            seen_heights.add(int(block.height))
            blocks.append(block)
            transactions.extend(block_txs)
        return blocks, transactions

    def _commit(self, snapshot: LiveSnapshot) -> None:
        self.store.replace_window(snapshot.blocks, snapshot.transactions, snapshot.accounts)
        self.cursor = snapshot.next_cursor

        metrics.observe_state(
            height=int(snapshot.stats.current_height),
            finalized=int(snapshot.stats.finalized_height),
            retained=len(self.store),
            accounts=self.store.account_count,
        )

        self.hub.publish_ledger()
        self.hub.publish_network_stats(snapshot.stats)
        self.hub.has_more_blocks.publish(self.cursor is not None)
        self.hub.last_refreshed.publish(snapshot.stats.timestamp)

        logger.info(
            "Refreshed %d block(s) from node, tip=%d",
            len(snapshot.blocks),
            snapshot.stats.current_height,
        )

    # -------------------------------------------------------------------------
    # Paging
    # -------------------------------------------------------------------------

    async def _load_older_page(self, cursor: str | int) -> bool:
        page = parse_blocks_page(
            await self.rpc.get_blocks(limit=self.config.page_size, from_height=cursor)
        )
        if not page.blocks:
            return False

        known_finalized = {b.hash for b in self.store.blocks if b.is_finalized}
        tip = self.store.tip
        blocks, transactions = self._map_blocks(
            page.blocks, known_finalized, tip_height=int(tip.height) if tip is not None else None
        )
        accepted = self.store.merge_older(blocks, transactions)
        if not accepted:
            return False

        kept = {b.hash for b in accepted}
        older = [tx for tx in transactions if tx.block_hash in kept]
        # Newest of the older page first, so tail appends keep recency order.
        older.sort(key=lambda tx: (int(tx.block_height), int(tx.timestamp)), reverse=True)
        for tx in older:
            summary = tx.to_summary()
            self.store.ensure_account(tx.sender).note_older(summary, outbound=True)
            self.store.ensure_account(tx.recipient).note_older(summary, outbound=False)
        for block in accepted:
            self.store.ensure_account(block.miner)

        self.cursor = page.next_cursor
        self.hub.publish_ledger()
        self.hub.has_more_blocks.publish(self.cursor is not None)

        logger.info("Loaded %d older block(s) down to height %d", len(accepted), accepted[0].height)
        return True

    def _now_ms(self) -> int:
        return int(self.time_fn() * 1000)


def rebuild_accounts(
    blocks: Sequence[BlockDetails],
    transactions: Iterable[TransactionDetails],
) -> dict[str, AccountState]:
    """
    Derive account activity from a window of blocks.

    Balances are not reported per block, so they stay at zero. The nonce
    counts the sends seen in the window.
    """
    accounts: dict[str, AccountState] = {}

    def account(address: AccountAddress) -> AccountState:
        state = accounts.get(address)
        if state is None:
            state = accounts[address] = AccountState(address=address)
        return state

    for block in blocks:
        miner = account(block.miner)
        miner.last_seen = max(miner.last_seen, int(block.timestamp))
        miner.touch_block(block.hash)

    # Oldest first, so each push to the front leaves the newest at index 0.
    for tx in sorted(transactions, key=lambda tx: (int(tx.block_height), int(tx.timestamp))):
        summary = tx.to_summary()
        ts = int(tx.timestamp)
        account(tx.sender).note_outbound(summary, ts)
        account(tx.recipient).note_inbound(summary, ts)
    return accounts


def window_statistics(
    blocks: Sequence[BlockDetails],
    validator_count: int | None,
    now_ms: int,
) -> NetworkStatistics:
    """
    Compute statistics for a window of blocks sorted by ascending height.

    Throughput is transactions over the window's time span. Without a
    validator count from the node, the distinct miners are counted instead.
    """
    if not blocks:
        return NetworkStatistics.empty(UnixMs(now_ms))

    total_transactions = sum(b.transaction_count for b in blocks)
    timestamps = [int(b.timestamp) for b in blocks]
    span_seconds = (max(timestamps) - min(timestamps)) / 1000
    average_tps = round(total_transactions / span_seconds, 2) if span_seconds > 0 else 0.0

    finalized = [int(b.height) for b in blocks if b.is_finalized]
    if validator_count is None:
        validator_count = len({b.miner for b in blocks})

    return NetworkStatistics(
        current_height=blocks[-1].height,
        finalized_height=Height(max(finalized, default=0)),
        average_tps=float(average_tps),
        active_validators=validator_count,
        next_election_eta_ms=0,
        timestamp=UnixMs(now_ms),
    )


def _set_flag(channel: Channel[bool], value: bool) -> None:
    # The engine may be disposed while a request is in flight.
    if not channel.closed:
        channel.publish(value)
