"""
Deterministic pseudo-random generator.

The simulator draws every random value (hashes, addresses, amounts,
committee shuffles) from one instance of this generator. Identical seeds
and identical call sequences therefore reproduce an entire simulated
history bit for bit.

The algorithm is Mulberry32: a 32-bit state advanced by a fixed odd
increment and passed through an integer mixing function. All arithmetic is
done modulo 2**32.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final, TypeVar

from chert_explorer.types import ValidationError

T = TypeVar("T")

_MASK32: Final = 0xFFFFFFFF
_INCREMENT: Final = 0x6D2B79F5
_TWO_POW_32: Final = 4294967296.0


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiplication."""
    return (a * b) & _MASK32


class DeterministicRandom:
    """Seeded integer-state generator with a reproducible output sequence."""

    __slots__ = ("_state",)

    def __init__(self, seed: int) -> None:
        # A zero state would be a fixed point of the first mix; reuse the increment.
        state = seed & _MASK32
        self._state = state if state != 0 else _INCREMENT

    def next(self) -> float:
        """Return the next float in [0, 1)."""
        self._state = (self._state + _INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    def next_int(self, min_inclusive: int, max_inclusive: int) -> int:
        """
        Return an integer in [min_inclusive, max_inclusive].

        Raises:
            ValidationError: If the range is empty.
        """
        if max_inclusive < min_inclusive:
            raise ValidationError(
                f"Invalid range for DeterministicRandom: [{min_inclusive}, {max_inclusive}]"
            )
        span = max_inclusive - min_inclusive + 1
        return min_inclusive + int(self.next() * span)

    def pick_one(self, items: Sequence[T]) -> T:
        """
        Return one element chosen uniformly.

        Raises:
            ValidationError: If `items` is empty.
        """
        if len(items) == 0:
            raise ValidationError("Cannot pick from an empty collection")
        return items[self.next_int(0, len(items) - 1)]

    def shuffle(self, items: Sequence[T]) -> list[T]:
        """Return a Fisher-Yates shuffled copy of `items`."""
        shuffled = list(items)
        for i in range(len(shuffled) - 1, 0, -1):
            j = self.next_int(0, i)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def hex_digits(self, byte_count: int = 32) -> str:
        """Return `byte_count` random bytes rendered as lowercase hex."""
        return "".join(f"{self.next_int(0, 255):02x}" for _ in range(byte_count))
