"""
Synthetic chain simulator.

Produces a self-consistent block, transaction and account history from a
single seed. Every random value is drawn from one `DeterministicRandom`, so
two simulators with the same seed and the same call sequence produce
identical hashes, addresses and amounts.

One Cycle
---------
1. Advance the height counter and pick a miner from the account pool
2. Generate transactions and apply each one atomically:
   sender pays value + fee (floored at zero), recipient receives value,
   miner receives fee
3. Store the block and its transactions, evicting the lowest blocks if
   the store is over its bound
4. Promote every retained block at or below `height - finality_lag`
5. Rotate the committee every ROTATION_PERIOD_BLOCKS blocks
6. Recompute network statistics and publish

Failures here are programming errors. Nothing is caught; an invariant
violation fails the cycle loudly.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from chert_explorer.config import ExplorerConfig
from chert_explorer.services import metrics
from chert_explorer.services.hub import StateHub
from chert_explorer.services.rng import DeterministicRandom
from chert_explorer.services.store import AccountState, StateStore
from chert_explorer.types import (
    AccountAddress,
    AttoValue,
    BlockDetails,
    BlockStatus,
    CommitteeId,
    Hash,
    Height,
    NetworkStatistics,
    TransactionDetails,
    TransactionStatus,
    TransactionSummary,
    UnixMs,
    require,
)

from .config import (
    ADDRESS_HEX_DIGITS,
    ADDRESS_PREFIX,
    AVERAGE_TPS_SAMPLE,
    COMMITTEE_HEX_DIGITS,
    COMMITTEE_POOL_SIZE,
    COMMITTEE_SIZE,
    CONFIRMATION_SCORE_RANGE,
    INITIAL_BALANCE_RANGE,
    INITIAL_STAKE_RANGE,
    MEMO_ODDS,
    MEMO_PHRASES,
    ROTATION_PERIOD_BLOCKS,
    TX_CONFIRMATIONS_RANGE,
    TX_FEE_RANGE,
    TX_INPUTS_RANGE,
    TX_OUTPUTS_RANGE,
    TX_VALUE_RANGE,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChainSimulator:
    """
    Deterministic block generator feeding the shared store.

    Implements `ExplorerBackend`.
    """

    config: ExplorerConfig
    store: StateStore
    hub: StateHub

    time_fn: Callable[[], float] = field(default=time.time)
    """Wall-clock source in seconds (injectable for testing)."""

    rng: DeterministicRandom = field(init=False)
    account_pool: list[AccountAddress] = field(init=False)
    committee_pool: list[CommitteeId] = field(init=False)
    current_committee: tuple[CommitteeId, ...] = field(init=False)

    next_election_ms: int = field(init=False)
    """Wall-clock deadline of the next committee rotation."""

    height: int = field(default=0, init=False)
    """Height of the last generated block."""

    latest_hash: Hash | None = field(default=None, init=False)
    _initialized: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.config.check()
        self.rng = DeterministicRandom(self.config.seed)
        self.account_pool = [self._random_address() for _ in range(self.config.account_count)]
        self.committee_pool = [self._random_committee_id() for _ in range(COMMITTEE_POOL_SIZE)]
        self.current_committee = tuple(self.committee_pool[:COMMITTEE_SIZE])
        self.next_election_ms = self._now_ms() + self.config.block_interval_ms * ROTATION_PERIOD_BLOCKS

        for address in self.account_pool:
            self.store.ensure_account(address, self._new_account)
        self.hub.publish_accounts()

    # -------------------------------------------------------------------------
    # Backend interface
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        self.seed_initial_state()

    async def tick(self) -> None:
        self.generate_next_block(self._now_ms())

    async def refresh(self) -> None:
        # One extra cycle; the schedule is untouched.
        self.generate_next_block(self._now_ms())

    async def load_more_blocks(self) -> bool:
        # Simulated history has no older pages.
        return False

    async def close(self) -> None:
        return None

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def seed_initial_state(self) -> None:
        """
        Generate `initial_block_count` back-dated blocks.

        Blocks are spaced `block_interval_ms` apart and end one interval
        before now. Runs only once per simulator.
        """
        if self._initialized:
            return
        self._initialized = True

        interval = self.config.block_interval_ms
        count = self.config.initial_block_count
        start = max(0, self._now_ms() - interval * count)
        for i in range(count):
            self.generate_next_block(start + i * interval)

        logger.info("Seeded %d simulated blocks (seed=%#x)", count, self.config.seed)

    def generate_next_block(self, timestamp: float) -> BlockDetails:
        """
        Produce, apply and publish one block.

        Args:
            timestamp: Block time in milliseconds.

        Returns:
            The generated block.
        """
        block_time = UnixMs.truncate(timestamp)

        self.height += 1
        height = Height(self.height)
        parent_hash = self.latest_hash
        block_hash = self._random_hash()
        tx_count = self.rng.next_int(self.config.tx_per_block_min, self.config.tx_per_block_max)
        require(tx_count > 0, "Block must contain transactions")

        miner = self.rng.pick_one(self.account_pool)
        transactions = self._create_transactions(tx_count, block_hash, height, block_time, miner)

        details = BlockDetails(
            height=height,
            hash=block_hash,
            parent_hash=parent_hash,
            timestamp=block_time,
            transaction_count=tx_count,
            total_value=AttoValue(sum(int(tx.value) for tx in transactions)),
            status=BlockStatus.PENDING,
            confirmation_score=self.rng.next_int(*CONFIRMATION_SCORE_RANGE),
            miner=miner,
            delegate_set=self.current_committee,
            transactions=tuple(transactions),
        )

        evicted = self.store.push_block(details)
        self.latest_hash = block_hash
        self.store.promote_finalized(self.height - self.config.finality_lag)
        self._maybe_rotate_committee(int(block_time))
        stats = self._compute_network_stats()

        metrics.blocks_generated.inc()
        if evicted:
            metrics.blocks_evicted.inc(len(evicted))
        metrics.observe_state(
            height=int(stats.current_height),
            finalized=int(stats.finalized_height),
            retained=len(self.store),
            accounts=self.store.account_count,
        )

        self.hub.publish_ledger()
        self.hub.publish_network_stats(stats)

        logger.debug("Generated block %d with %d transaction(s)", self.height, tx_count)
        return details

    def _create_transactions(
        self,
        count: int,
        block_hash: Hash,
        height: Height,
        timestamp: UnixMs,
        miner: AccountAddress,
    ) -> list[TransactionSummary]:
        transactions: list[TransactionSummary] = []
        for _ in range(count):
            sender = self.rng.pick_one(self.account_pool)
            recipient = self._pick_other(sender)

            tx = TransactionSummary(
                hash=self._random_hash(),
                block_hash=block_hash,
                block_height=height,
                sender=sender,
                recipient=recipient,
                value=AttoValue(self.rng.next_int(*TX_VALUE_RANGE)),
                fee=AttoValue(self.rng.next_int(*TX_FEE_RANGE)),
                timestamp=timestamp,
                status=TransactionStatus.CONFIRMED,
                memo=self._maybe_memo(),
            )
            transactions.append(tx)
            self.apply_transaction(tx, miner)
            self.store.store_transaction(self._with_details(tx))
        return transactions

    def apply_transaction(self, tx: TransactionSummary, miner: AccountAddress) -> None:
        """
        Move funds for one transaction.

        The sender pays value + fee, floored at zero. The recipient receives
        the value and the miner receives the fee.
        """
        miner_state = self.store.ensure_account(miner, self._new_account)
        sender = self.store.ensure_account(tx.sender, self._new_account)
        recipient = self.store.ensure_account(tx.recipient, self._new_account)
        value, fee, ts = int(tx.value), int(tx.fee), int(tx.timestamp)

        sender.debit(value, fee, tx, ts)
        recipient.credit(value, tx, ts)
        miner_state.collect_fee(fee, tx.block_hash, ts)

    def _with_details(self, tx: TransactionSummary) -> TransactionDetails:
        inputs = self._random_hash_list(*TX_INPUTS_RANGE)
        outputs = self._random_hash_list(*TX_OUTPUTS_RANGE)
        return TransactionDetails(
            **{name: getattr(tx, name) for name in TransactionSummary.model_fields},
            inputs=inputs,
            outputs=outputs,
            confirmations=self.rng.next_int(*TX_CONFIRMATIONS_RANGE),
        )

    def _pick_other(self, exclude: AccountAddress) -> AccountAddress:
        """Pick an account; on collision take the next pool entry instead of re-rolling."""
        index = self.rng.next_int(0, len(self.account_pool) - 1)
        if self.account_pool[index] == exclude:
            index = (index + 1) % len(self.account_pool)
        return self.account_pool[index]

    def _maybe_rotate_committee(self, timestamp: int) -> None:
        if self.height % ROTATION_PERIOD_BLOCKS != 0:
            return
        self.current_committee = tuple(self.rng.shuffle(self.committee_pool)[:COMMITTEE_SIZE])
        self.next_election_ms = timestamp + self.config.block_interval_ms * ROTATION_PERIOD_BLOCKS
        logger.info("Committee rotated at height %d", self.height)

    def _compute_network_stats(self) -> NetworkStatistics:
        sample = self.store.blocks[-AVERAGE_TPS_SAMPLE:]
        total_transactions = sum(block.transaction_count for block in sample)
        total_seconds = len(sample) * self.config.block_interval_ms / 1000
        average_tps = round(total_transactions / total_seconds, 2) if total_seconds > 0 else 0.0
        now = self._now_ms()

        return NetworkStatistics(
            current_height=Height(self.height),
            finalized_height=Height(max(0, self.height - self.config.finality_lag)),
            average_tps=float(average_tps),
            active_validators=len(self.current_committee),
            next_election_eta_ms=max(0, self.next_election_ms - now),
            timestamp=UnixMs(now),
        )

    # -------------------------------------------------------------------------
    # Random values
    # -------------------------------------------------------------------------

    def _new_account(self, address: AccountAddress) -> AccountState:
        return AccountState(
            address=address,
            balance=self.rng.next_int(*INITIAL_BALANCE_RANGE),
            staked_balance=self.rng.next_int(*INITIAL_STAKE_RANGE),
            reputation=round(0.4 + self.rng.next() * 0.6, 2),
            last_seen=self._now_ms(),
        )

    def _maybe_memo(self) -> str | None:
        if self.rng.next_int(0, MEMO_ODDS - 1) == 0:
            return self.rng.pick_one(MEMO_PHRASES)
        return None

    def _random_hash(self) -> Hash:
        return Hash(self.rng.hex_digits(32))

    def _random_hash_list(self, min_len: int, max_len: int) -> tuple[Hash, ...]:
        return tuple(self._random_hash() for _ in range(self.rng.next_int(min_len, max_len)))

    def _random_address(self) -> AccountAddress:
        return AccountAddress(f"{ADDRESS_PREFIX}_{self.rng.hex_digits(32)[:ADDRESS_HEX_DIGITS]}")

    def _random_committee_id(self) -> CommitteeId:
        return CommitteeId(f"committee_{self.rng.hex_digits(32)[:COMMITTEE_HEX_DIGITS]}")

    def _now_ms(self) -> int:
        return int(self.time_fn() * 1000)
