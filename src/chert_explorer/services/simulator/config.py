"""
Simulator constants.

Ranges are inclusive and expressed in atomic units unless noted.
"""

from __future__ import annotations

from typing import Final

COMMITTEE_SIZE: Final[int] = 8
"""Members in the active committee."""

COMMITTEE_POOL_SIZE: Final[int] = max(COMMITTEE_SIZE * 4, COMMITTEE_SIZE)
"""Identities the committee is drawn from."""

ROTATION_PERIOD_BLOCKS: Final[int] = 32
"""The committee is replaced wholesale every this many blocks."""

AVERAGE_TPS_SAMPLE: Final[int] = 24
"""Most recent blocks used to derive average throughput."""

TX_VALUE_RANGE: Final[tuple[int, int]] = (50_000, 5_000_000)
TX_FEE_RANGE: Final[tuple[int, int]] = (500, 5_000)

INITIAL_BALANCE_RANGE: Final[tuple[int, int]] = (50_000_000, 200_000_000)
INITIAL_STAKE_RANGE: Final[tuple[int, int]] = (5_000_000, 50_000_000)

CONFIRMATION_SCORE_RANGE: Final[tuple[int, int]] = (2, 8)
TX_INPUTS_RANGE: Final[tuple[int, int]] = (2, 5)
TX_OUTPUTS_RANGE: Final[tuple[int, int]] = (1, 4)
TX_CONFIRMATIONS_RANGE: Final[tuple[int, int]] = (1, 20)

MEMO_ODDS: Final[int] = 5
"""One transaction in this many carries a memo."""

MEMO_PHRASES: Final[tuple[str, ...]] = (
    "NUW credit",
    "Research reward",
    "Validator payout",
    "Bridge event",
)

ADDRESS_PREFIX: Final[str] = "chert"
ADDRESS_HEX_DIGITS: Final[int] = 36
COMMITTEE_HEX_DIGITS: Final[int] = 24
