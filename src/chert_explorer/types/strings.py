"""Pattern-checked string value types: hashes, addresses and committee ids."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema
from typing_extensions import Self

from .exceptions import ValidationError


class PatternStr(str):
    """
    A string that must match `PATTERN` in full.

    Subclasses may override `normalize` to canonicalize input before the
    pattern check.
    """

    PATTERN: ClassVar[re.Pattern[str]]
    """Compiled pattern the canonical form must match."""

    def __new__(cls, value: Any) -> Self:
        """
        Create and validate a new instance.

        Raises:
            ValidationError: If `value` is not a string or does not match.
        """
        if not isinstance(value, str):
            raise ValidationError(f"{cls.__name__} requires a string, got {type(value).__name__}")
        canonical = cls.normalize(value)
        if cls.PATTERN.fullmatch(canonical) is None:
            raise ValidationError(f"Malformed {cls.__name__}: {value[:80]!r}")
        return super().__new__(cls, canonical)

    @classmethod
    def normalize(cls, value: str) -> str:
        """Canonicalize raw input. Identity by default."""
        return value

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        """Check a candidate without raising."""
        if not isinstance(value, str):
            return False
        return cls.PATTERN.fullmatch(cls.normalize(value)) is not None

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Hook into Pydantic's validation system."""

        def validate(value: Any) -> PatternStr:
            if isinstance(value, cls):
                return value
            try:
                return cls(value)
            except ValidationError as e:
                raise ValueError(e.message) from e

        return core_schema.no_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda instance: str(instance)
            ),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"


class Hash(PatternStr):
    """
    A 32-byte hash as 64 lowercase hex characters.

    An optional `0x` prefix and uppercase digits are accepted and
    canonicalized away.
    """

    PATTERN = re.compile(r"[0-9a-f]{64}")

    @classmethod
    def normalize(cls, value: str) -> str:
        lowered = value.strip().lower()
        return lowered[2:] if lowered.startswith("0x") else lowered


class AccountAddress(PatternStr):
    """
    A ledger account address.

    Two forms are accepted:

    - `<prefix>_<hex>`: 2..16 lowercase letters, underscore, 36..64 hex
      digits. Simulated accounts use `chert_` with 36 digits.
    - `0x` followed by 40 hex digits.
    """

    PATTERN = re.compile(r"[a-z]{2,16}_[0-9a-f]{36,64}|0x[0-9a-f]{40}")

    @classmethod
    def normalize(cls, value: str) -> str:
        return value.strip().lower()


class CommitteeId(PatternStr):
    """An opaque committee member identifier: `committee_` and 24 hex digits."""

    PATTERN = re.compile(r"committee_[0-9a-f]{24}")
