"""Non-negative integer value types."""

from __future__ import annotations

import math
from typing import Any, Final

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema
from typing_extensions import Self

from .exceptions import ValidationError

ATTO_PER_UNIT: Final = 1_000_000
"""Atomic units in one display unit of the ledger currency."""


class NonNegativeInt(int):
    """
    A base class for integer value types that must never be negative.

    Validation happens once, in the constructor. Arithmetic on instances
    yields plain `int` so intermediate results (such as a balance about to
    be clamped) are never rejected halfway through a computation.
    """

    def __new__(cls, value: Any) -> Self:
        """
        Create and validate a new instance.

        Floats are accepted only when finite and integral. Booleans and
        strings are rejected.

        Raises:
            ValidationError: If `value` is not a non-negative integer.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(
                f"{cls.__name__} requires an integer, got {type(value).__name__}"
            )
        if isinstance(value, float):
            if not math.isfinite(value) or not value.is_integer():
                raise ValidationError(f"{cls.__name__} must be a finite integer, got {value}")
        int_value = int(value)
        if int_value < 0:
            raise ValidationError(f"{cls.__name__} must be non-negative, got {int_value}")
        return super().__new__(cls, int_value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Hook into Pydantic's validation system."""

        def validate(value: Any) -> NonNegativeInt:
            if isinstance(value, cls):
                return value
            try:
                return cls(value)
            except ValidationError as e:
                raise ValueError(e.message) from e

        return core_schema.json_or_python_schema(
            json_schema=core_schema.no_info_plain_validator_function(validate),
            python_schema=core_schema.no_info_plain_validator_function(validate),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda instance: int(instance)
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, core_schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        """Hook into Pydantic's JSON Schema generation system."""
        return {"type": "integer", "minimum": 0, "format": cls.__name__}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class AttoValue(NonNegativeInt):
    """An amount in atomic units of the ledger currency."""

    @classmethod
    def truncate(cls, value: float) -> AttoValue:
        """Build a value from a finite number, dropping any fractional part."""
        if not math.isfinite(value):
            raise ValidationError(f"{cls.__name__} must be finite, got {value}")
        return cls(math.trunc(value))

    def to_display_units(self) -> float:
        """Convert to display units (1,000,000 atomic units each)."""
        return int(self) / ATTO_PER_UNIT


class Height(NonNegativeInt):
    """
    A block height or count.

    Zero is allowed so that empty statistics have a value. Real blocks
    start at height 1.
    """


class UnixMs(NonNegativeInt):
    """A wall-clock timestamp in milliseconds since the Unix epoch."""

    @classmethod
    def truncate(cls, value: float) -> UnixMs:
        """Build a timestamp from a finite number of milliseconds."""
        if not math.isfinite(value):
            raise ValidationError(f"{cls.__name__} must be finite, got {value}")
        return cls(math.trunc(value))
