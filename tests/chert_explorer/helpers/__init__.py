"""Test helpers for the explorer engine."""

from .builders import (
    BASE_TIME_S,
    address_for,
    hash_for,
    make_block,
    make_transaction,
    raw_block,
    raw_transaction,
)
from .fake_node import FakeClock, FakeNode

__all__ = [
    "BASE_TIME_S",
    "FakeClock",
    "FakeNode",
    "address_for",
    "hash_for",
    "make_block",
    "make_transaction",
    "raw_block",
    "raw_transaction",
]
