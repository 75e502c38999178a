"""Reusable type definitions for the explorer engine."""

from .base import CamelModel, StrictBaseModel
from .exceptions import (
    ExplorerError,
    NetworkError,
    NodeUnavailableError,
    ProtocolError,
    ValidationError,
    require,
)
from .models import (
    AccountActivitySnapshot,
    AccountSummary,
    BlockDetails,
    BlockStatus,
    BlockSummary,
    NetworkStatistics,
    TransactionDetails,
    TransactionStatus,
    TransactionSummary,
)
from .scalars import ATTO_PER_UNIT, AttoValue, Height, NonNegativeInt, UnixMs
from .strings import AccountAddress, CommitteeId, Hash, PatternStr

__all__ = [
    # Value types
    "ATTO_PER_UNIT",
    "AttoValue",
    "Height",
    "UnixMs",
    "NonNegativeInt",
    "Hash",
    "AccountAddress",
    "CommitteeId",
    "PatternStr",
    # Base models
    "CamelModel",
    "StrictBaseModel",
    # Ledger model
    "BlockStatus",
    "BlockSummary",
    "BlockDetails",
    "TransactionStatus",
    "TransactionSummary",
    "TransactionDetails",
    "AccountSummary",
    "AccountActivitySnapshot",
    "NetworkStatistics",
    # Exceptions
    "ExplorerError",
    "ValidationError",
    "NetworkError",
    "ProtocolError",
    "NodeUnavailableError",
    "require",
]
