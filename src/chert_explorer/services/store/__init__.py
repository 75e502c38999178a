"""
Bounded state store shared by the simulated and live backends.

Holds the block list, block and transaction detail caches, the recent
transaction feed and per-account state, all under fixed capacity limits.
"""

from __future__ import annotations

__all__ = [
    "StateStore",
    "AccountState",
    "AccountFactory",
    "push_front",
    "LATEST_TRANSACTIONS_LIMIT",
    "RECENT_ACCOUNT_ACTIVITY_LIMIT",
    "RECENT_BLOCKS_PER_ACCOUNT",
]

from .accounts import AccountState, push_front
from .limits import (
    LATEST_TRANSACTIONS_LIMIT,
    RECENT_ACCOUNT_ACTIVITY_LIMIT,
    RECENT_BLOCKS_PER_ACCOUNT,
)
from .store import AccountFactory, StateStore
