"""
Capacity limits for the bounded state store.

Every list the store keeps is capped. Insertions go to the front
(most recent first) and anything past the cap is cut from the tail.
"""

from __future__ import annotations

from typing import Final

RECENT_ACCOUNT_ACTIVITY_LIMIT: Final[int] = 32
"""Maximum outbound and inbound transactions kept per account (each)."""

RECENT_BLOCKS_PER_ACCOUNT: Final[int] = 10
"""Maximum block hashes kept in an account's recent-block list."""

LATEST_TRANSACTIONS_LIMIT: Final[int] = 256
"""Maximum transactions in the global recent-transaction feed."""
