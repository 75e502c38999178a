"""
Mapping from wire records to the ledger model.

Each function maps exactly one record and raises `ValidationError` if that
record is malformed. Callers decide what a failure costs: a live poll
skips the offending record and keeps the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from typing import Any, Final, TypeVar

import pydantic

from chert_explorer.types import (
    AccountAddress,
    AttoValue,
    BlockDetails,
    BlockStatus,
    CommitteeId,
    Hash,
    Height,
    TransactionDetails,
    TransactionStatus,
    UnixMs,
    ValidationError,
)

from .wire import BlocksPage, WireBlock, WireModel, WireTransaction

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=WireModel)

SECONDS_THRESHOLD: Final = 100_000_000_000
"""Timestamps below this are taken to be seconds rather than milliseconds."""

_TX_STATUS: Final[dict[str, TransactionStatus]] = {
    "pending": TransactionStatus.PENDING,
    "confirmed": TransactionStatus.CONFIRMED,
    "success": TransactionStatus.CONFIRMED,
    "finalized": TransactionStatus.CONFIRMED,
    "failed": TransactionStatus.FAILED,
    "reverted": TransactionStatus.FAILED,
}


def parse_wire(model: type[M], raw: Any) -> M:
    """
    Validate a raw record against a wire model.

    Raises:
        ValidationError: If the record does not have the expected shape.
    """
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Malformed {model.__name__}: {exc.error_count()} error(s)") from exc


def parse_blocks_page(raw: Any) -> BlocksPage:
    """Validate a `get_blocks` result."""
    return parse_wire(BlocksPage, raw)


def to_unix_ms(raw: float | None, fallback: int) -> UnixMs:
    """Normalize a wire timestamp (seconds or milliseconds) to milliseconds."""
    if raw is None:
        return UnixMs(fallback)
    value = raw * 1000 if 0 <= raw < SECONDS_THRESHOLD else raw
    return UnixMs.truncate(value)


def map_transaction_status(raw: str | None) -> TransactionStatus:
    """Map a wire status; a missing status means the transaction is in a block."""
    if raw is None:
        return TransactionStatus.CONFIRMED
    status = _TX_STATUS.get(raw.strip().lower())
    if status is None:
        raise ValidationError(f"Unknown transaction status {raw!r}")
    return status


def map_transaction(
    raw: Any,
    *,
    block_hash: Hash | None = None,
    block_height: Height | None = None,
    block_time: UnixMs | None = None,
    tip_height: int | None = None,
) -> TransactionDetails:
    """
    Map one wire transaction.

    Block context, when given, takes precedence over the record's own
    block fields so a transaction always points at the block carrying it.

    Raises:
        ValidationError: On a malformed hash, address or amount.
    """
    _require_object(raw, "transaction")
    wire = parse_wire(WireTransaction, raw)

    owner_hash = block_hash if block_hash is not None else _optional_hash(wire.block_hash)
    if owner_hash is None:
        raise ValidationError(f"Transaction {wire.hash[:16]} has no block hash")
    owner_height = block_height if block_height is not None else Height(wire.block_height or 0)

    confirmations = wire.confirmations
    if confirmations is None:
        confirmations = max(0, tip_height - int(owner_height)) if tip_height is not None else 0

    return TransactionDetails(
        hash=Hash(wire.hash),
        block_hash=owner_hash,
        block_height=owner_height,
        sender=AccountAddress(wire.sender),
        recipient=AccountAddress(wire.recipient),
        value=AttoValue(wire.value),
        fee=AttoValue(wire.fee),
        timestamp=to_unix_ms(wire.timestamp, int(block_time or 0)),
        status=map_transaction_status(wire.status),
        memo=wire.memo or None,
        inputs=tuple(Hash(h) for h in wire.inputs),
        outputs=tuple(Hash(h) for h in wire.outputs),
        confirmations=max(0, int(confirmations)),
    )


def map_block(
    raw: Any,
    *,
    tip_height: int | None = None,
    finality_lag: int = 0,
    known_finalized: Collection[str] = (),
) -> tuple[BlockDetails, list[TransactionDetails]]:
    """
    Map one wire block and its transactions.

    A block is finalized when the node says so, when its confirmation
    count reaches `finality_lag`, or when it was already finalized in an
    earlier snapshot. Confirmations default to `tip_height - height`.

    Transactions and delegates that fail to map are dropped with a
    warning. The block itself fails only if its own fields are malformed.

    Raises:
        ValidationError: On a malformed block hash, height or miner address.
    """
    _require_object(raw, "block")
    wire = parse_wire(WireBlock, raw)
    block_hash = Hash(wire.hash)
    height = Height(wire.height)
    timestamp = to_unix_ms(wire.timestamp, 0)
    if wire.miner is None:
        raise ValidationError(f"Block {wire.height} has no miner")
    miner = AccountAddress(wire.miner)

    transactions: list[TransactionDetails] = []
    for raw_tx in wire.transactions:
        try:
            transactions.append(
                map_transaction(
                    raw_tx,
                    block_hash=block_hash,
                    block_height=height,
                    block_time=timestamp,
                    tip_height=tip_height,
                )
            )
        except ValidationError as exc:
            logger.warning("Dropping transaction in block %d: %s", wire.height, exc.message)

    confirmations = wire.confirmations
    if confirmations is None and tip_height is not None:
        confirmations = max(0, tip_height - wire.height)

    finalized = (
        (wire.status or "").strip().lower() == BlockStatus.FINALIZED.value
        or (confirmations is not None and confirmations >= finality_lag)
        or block_hash in known_finalized
    )

    if wire.transactions:
        tx_count = len(transactions)
    else:
        tx_count = wire.tx_count or 0

    total_value = wire.total_value
    if total_value is None or wire.transactions:
        total_value = sum(int(tx.value) for tx in transactions)

    block = BlockDetails(
        height=height,
        hash=block_hash,
        parent_hash=_optional_hash(wire.parent_hash),
        timestamp=timestamp,
        transaction_count=tx_count,
        total_value=AttoValue(total_value),
        status=BlockStatus.FINALIZED if finalized else BlockStatus.PENDING,
        confirmation_score=max(0, confirmations or 0),
        miner=miner,
        delegate_set=_map_delegates(wire),
        transactions=tuple(tx.to_summary() for tx in transactions),
    )
    return block, transactions


def _require_object(raw: Any, kind: str) -> None:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Expected a {kind} object, got {type(raw).__name__}")


def _map_delegates(wire: WireBlock) -> tuple[CommitteeId, ...]:
    delegates: list[CommitteeId] = []
    for raw in wire.delegates:
        try:
            delegates.append(CommitteeId(raw))
        except ValidationError as exc:
            logger.warning("Dropping delegate in block %d: %s", wire.height, exc.message)
    return tuple(delegates)


def _optional_hash(raw: str | None) -> Hash | None:
    if raw is None or raw == "":
        return None
    # Genesis parents are often reported as the all-zero hash.
    candidate = Hash(raw)
    return None if candidate == "0" * 64 else candidate


def validator_count_from_health(payload: Mapping[str, Any]) -> int | None:
    """
    Extract the consensus validator count from a health document.

    Looks at `active_validators`, then `validator_count`, then
    `consensus.validators` (a count or a list). Returns None when none is
    usable.
    """
    candidates: list[Any] = [payload.get("active_validators"), payload.get("validator_count")]
    consensus = payload.get("consensus")
    if isinstance(consensus, Mapping):
        candidates.append(consensus.get("validators"))

    for candidate in candidates:
        if isinstance(candidate, bool):
            continue
        if isinstance(candidate, int) and candidate >= 0:
            return candidate
        if isinstance(candidate, list):
            return len(candidate)
    return None
