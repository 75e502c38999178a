"""Tests for the bounded state store."""

from __future__ import annotations

import pytest

from chert_explorer.services.store import (
    LATEST_TRANSACTIONS_LIMIT,
    RECENT_ACCOUNT_ACTIVITY_LIMIT,
    RECENT_BLOCKS_PER_ACCOUNT,
    AccountState,
    StateStore,
    push_front,
)
from chert_explorer.types import BlockStatus, ValidationError
from tests.chert_explorer.helpers import address_for, hash_for, make_block, make_transaction


def push(store: StateStore, height: int, tx_count: int = 2) -> list:
    """Store a block with its transactions the way the simulator does."""
    block = make_block(height, tx_count=tx_count)
    for i in range(tx_count):
        tx = make_transaction(height, i, sender=i + 1, recipient=i + 2)
        store.store_transaction(tx)
        store.ensure_account(tx.sender).touch_block(block.hash)
    return store.push_block(block)


class TestPushFront:
    """Tests for the capped insertion helper."""

    def test_inserts_first_and_truncates(self) -> None:
        """New items go first and the tail is cut at the limit."""
        items = [2, 3, 4]
        push_front(items, 1, 3)

        assert items == [1, 2, 3]


class TestBlockList:
    """Tests for block ordering and the retention bound."""

    def test_rejects_non_positive_bound(self) -> None:
        """A store must be able to hold at least one block."""
        with pytest.raises(ValidationError):
            StateStore(max_blocks=0)

    def test_blocks_are_ascending(self, store: StateStore) -> None:
        """Blocks are listed lowest first."""
        for height in (1, 2, 3):
            push(store, height)

        assert [b.height for b in store.blocks] == [1, 2, 3]
        assert store.tip is not None and store.tip.height == 3
        assert store.lowest is not None and store.lowest.height == 1

    def test_rejects_non_extending_height(self, store: StateStore) -> None:
        """A block must extend the tip."""
        push(store, 5)
        with pytest.raises(ValidationError):
            push(store, 5)

    def test_eviction_keeps_newest_within_bound(self, store: StateStore) -> None:
        """Pushing past the bound drops exactly the oldest blocks."""
        evicted = []
        for height in range(1, 16):
            evicted.extend(push(store, height))

        assert len(store) == 10
        assert [b.height for b in store.blocks] == list(range(6, 16))
        assert [b.height for b in evicted] == [1, 2, 3, 4, 5]

    def test_eviction_purges_transactions(self, store: StateStore) -> None:
        """Evicted blocks take their transactions with them."""
        for height in range(1, 12):
            push(store, height)

        evicted_tx = make_transaction(1, 0).hash
        kept_tx = make_transaction(2, 0).hash

        assert store.get_block(make_block(1).hash) is None
        assert store.get_transaction(evicted_tx) is None
        assert all(tx.hash != evicted_tx for tx in store.latest_transactions)
        assert store.get_transaction(kept_tx) is not None

    def test_eviction_scrubs_account_block_lists(self, store: StateStore) -> None:
        """Evicted block hashes disappear from every account."""
        for height in range(1, 12):
            push(store, height)

        evicted_hash = make_block(1).hash
        for account in store.iter_accounts():
            assert evicted_hash not in account.recent_blocks

    def test_accounts_survive_eviction(self, store: StateStore) -> None:
        """Accounts are never evicted with their blocks."""
        for height in range(1, 12):
            push(store, height)

        assert store.get_account(address_for(1)) is not None

    def test_get_block_by_height(self, store: StateStore) -> None:
        """Blocks can be found by height while retained."""
        for height in (1, 2, 3):
            push(store, height)

        found = store.get_block_by_height(2)

        assert found is not None and found.hash == make_block(2).hash
        assert store.get_block_by_height(9) is None


class TestFinality:
    """Tests for finality promotion."""

    def test_promotes_at_or_below_threshold(self, store: StateStore) -> None:
        """Blocks at or below the threshold become finalized."""
        for height in range(1, 6):
            push(store, height)

        promoted = store.promote_finalized(3)

        assert promoted == 3
        assert [b.status for b in store.blocks] == [BlockStatus.FINALIZED] * 3 + [
            BlockStatus.PENDING
        ] * 2
        details = store.get_block(make_block(3).hash)
        assert details is not None and details.is_finalized

    def test_never_reverts(self, store: StateStore) -> None:
        """A lower threshold later does not demote anything."""
        for height in range(1, 6):
            push(store, height)
        store.promote_finalized(4)
        store.promote_finalized(1)

        assert sum(b.is_finalized for b in store.blocks) == 4


class TestRecentFeed:
    """Tests for the recent transaction feed."""

    def test_most_recent_first(self, store: StateStore) -> None:
        """The newest transaction leads the feed."""
        push(store, 1)
        push(store, 2)

        assert store.latest_transactions[0].block_height == 2

    def test_feed_is_capped(self) -> None:
        """The feed never exceeds its limit."""
        store = StateStore(max_blocks=1000)
        for height in range(1, LATEST_TRANSACTIONS_LIMIT // 4 + 10):
            push(store, height, tx_count=4)

        assert len(store.latest_transactions) == LATEST_TRANSACTIONS_LIMIT


class TestAccountState:
    """Tests for per-account working state."""

    def test_debit_floors_at_zero(self) -> None:
        """A debit larger than the balance leaves zero."""
        state = AccountState(address=address_for(1), balance=100)
        state.debit(80, 50, make_transaction(1, 0).to_summary(), 1)

        assert state.balance == 0
        assert state.nonce == 1

    def test_activity_lists_are_capped(self) -> None:
        """Outbound activity and recent blocks stay within their caps."""
        state = AccountState(address=address_for(1))
        for height in range(1, RECENT_ACCOUNT_ACTIVITY_LIMIT + 5):
            state.note_outbound(make_transaction(height, 0).to_summary(), height)

        assert len(state.outbound) == RECENT_ACCOUNT_ACTIVITY_LIMIT
        assert len(state.recent_blocks) == RECENT_BLOCKS_PER_ACCOUNT
        assert state.outbound[0].block_height == RECENT_ACCOUNT_ACTIVITY_LIMIT + 4

    def test_recent_blocks_are_unique(self) -> None:
        """Touching a known block moves it to the front without duplicating it."""
        state = AccountState(address=address_for(1))
        first, second = make_block(1).hash, make_block(2).hash
        state.touch_block(first)
        state.touch_block(second)
        state.touch_block(first)

        assert state.recent_blocks == [first, second]

    def test_older_activity_goes_to_tail(self) -> None:
        """Older transactions append behind the newer ones."""
        state = AccountState(address=address_for(1))
        state.note_outbound(make_transaction(5, 0).to_summary(), 5)
        state.note_older(make_transaction(2, 0).to_summary(), outbound=True)

        assert [tx.block_height for tx in state.outbound] == [5, 2]
        assert state.nonce == 2


class TestWindowReplacement:
    """Tests for the wholesale replacement used by live polling."""

    def test_replaces_everything(self, store: StateStore) -> None:
        """Previous contents are discarded."""
        push(store, 1)
        blocks = [make_block(h) for h in (12, 10, 11)]
        transactions = [make_transaction(h, i) for h in (10, 11, 12) for i in range(2)]

        store.replace_window(blocks, transactions, {})

        assert [b.height for b in store.blocks] == [10, 11, 12]
        assert store.get_block(make_block(1).hash) is None
        assert store.latest_transactions[0].block_height == 12
        assert store.account_count == 0

    def test_keeps_only_highest_within_bound(self) -> None:
        """An oversized window is cut from the bottom."""
        store = StateStore(max_blocks=2)
        store.replace_window([make_block(h) for h in (1, 2, 3)], [make_transaction(1, 0)], {})

        assert [b.height for b in store.blocks] == [2, 3]
        assert store.get_transaction(make_transaction(1, 0).hash) is None

    def test_repeated_heights_keep_first(self, store: StateStore) -> None:
        """A window listing a height twice retains one block for it."""
        rival = make_block(11, miner=5).model_copy(update={"hash": hash_for("rival", 11)})

        store.replace_window([make_block(10), make_block(11), make_block(11), rival], [], {})

        assert [b.height for b in store.blocks] == [10, 11]
        assert store.get_block(rival.hash) is None


class TestMergeOlder:
    """Tests for prepending older pages."""

    def test_prepends_older_blocks(self, store: StateStore) -> None:
        """Older blocks go before the current lowest block."""
        store.replace_window([make_block(h) for h in (10, 11)], [], {})

        accepted = store.merge_older([make_block(8), make_block(9)], [make_transaction(8, 0)])

        assert [b.height for b in accepted] == [8, 9]
        assert [b.height for b in store.blocks] == [8, 9, 10, 11]
        assert store.get_transaction(make_transaction(8, 0).hash) is not None

    def test_skips_known_and_newer_blocks(self, store: StateStore) -> None:
        """Only strictly older, unknown blocks are accepted."""
        store.replace_window([make_block(h) for h in (10, 11)], [], {})

        accepted = store.merge_older([make_block(10), make_block(12)], [])

        assert accepted == []
        assert len(store) == 2

    def test_respects_bound(self) -> None:
        """Only as many of the highest older blocks as fit are accepted."""
        store = StateStore(max_blocks=3)
        store.replace_window([make_block(h) for h in (10, 11)], [], {})

        accepted = store.merge_older([make_block(h) for h in (7, 8, 9)], [])

        assert [b.height for b in accepted] == [9]
        assert store.merge_older([make_block(6)], []) == []

    def test_repeated_blocks_in_page_are_merged_once(self, store: StateStore) -> None:
        """A page listing the same older block twice adds it once with its transactions once."""
        store.replace_window([make_block(h) for h in (10, 11)], [], {})
        tx = make_transaction(9, 0)

        accepted = store.merge_older([make_block(9), make_block(9), make_block(8)], [tx, tx])

        assert [b.height for b in accepted] == [8, 9]
        assert [b.height for b in store.blocks] == [8, 9, 10, 11]
        assert [t.hash for t in store.latest_transactions] == [tx.hash]


class TestSnapshots:
    """Tests for account snapshots."""

    def test_unknown_account_is_absent(self, store: StateStore) -> None:
        """Unknown addresses yield None instead of raising."""
        assert store.account_snapshot(address_for(99)) is None

    def test_snapshot_omits_evicted_blocks(self, store: StateStore) -> None:
        """Recent blocks resolve only while retained."""
        for height in range(1, 13):
            push(store, height)

        snapshot = store.account_snapshot(address_for(1))

        assert snapshot is not None
        assert all(b.height > 2 for b in snapshot.recent_blocks)
