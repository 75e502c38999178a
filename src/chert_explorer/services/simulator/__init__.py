"""Synthetic chain simulator backend."""

from __future__ import annotations

__all__ = [
    "ChainSimulator",
    "COMMITTEE_SIZE",
    "COMMITTEE_POOL_SIZE",
    "ROTATION_PERIOD_BLOCKS",
    "AVERAGE_TPS_SAMPLE",
]

from .config import AVERAGE_TPS_SAMPLE, COMMITTEE_POOL_SIZE, COMMITTEE_SIZE, ROTATION_PERIOD_BLOCKS
from .simulator import ChainSimulator
