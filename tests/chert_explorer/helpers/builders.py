"""Builders for ledger records and node wire payloads."""

from __future__ import annotations

import hashlib
from typing import Any

from chert_explorer.types import (
    AccountAddress,
    AttoValue,
    BlockDetails,
    BlockStatus,
    Hash,
    Height,
    TransactionDetails,
    TransactionStatus,
    UnixMs,
)

BASE_TIME_S = 1_700_000_000
"""Wall-clock second used as the origin of every test chain."""

BLOCK_SPACING_S = 4


def hash_for(*parts: object) -> Hash:
    """Deterministic hash derived from `parts`."""
    return Hash(hashlib.sha256(":".join(map(str, parts)).encode()).hexdigest())


def address_for(n: int) -> AccountAddress:
    """Deterministic account address for account number `n`."""
    return AccountAddress(f"chert_{n:036x}")


def make_transaction(
    height: int,
    index: int,
    *,
    sender: int = 1,
    recipient: int = 2,
    value: int = 1_000,
    fee: int = 10,
) -> TransactionDetails:
    """A detailed transaction carried by the block at `height`."""
    return TransactionDetails(
        hash=hash_for("tx", height, index),
        block_hash=hash_for("block", height),
        block_height=Height(height),
        sender=address_for(sender),
        recipient=address_for(recipient),
        value=AttoValue(value),
        fee=AttoValue(fee),
        timestamp=UnixMs((BASE_TIME_S + height * BLOCK_SPACING_S) * 1000),
        status=TransactionStatus.CONFIRMED,
    )


def make_block(
    height: int,
    *,
    tx_count: int = 2,
    status: BlockStatus = BlockStatus.PENDING,
    miner: int = 0,
) -> BlockDetails:
    """A detailed block at `height` carrying `tx_count` transactions."""
    transactions = [
        make_transaction(height, i, sender=i + 1, recipient=i + 2) for i in range(tx_count)
    ]
    return BlockDetails(
        height=Height(height),
        hash=hash_for("block", height),
        parent_hash=hash_for("block", height - 1) if height > 1 else None,
        timestamp=UnixMs((BASE_TIME_S + height * BLOCK_SPACING_S) * 1000),
        transaction_count=tx_count,
        total_value=AttoValue(sum(int(tx.value) for tx in transactions)),
        status=status,
        confirmation_score=3,
        miner=address_for(miner),
        transactions=tuple(tx.to_summary() for tx in transactions),
    )


def raw_transaction(height: int, index: int, **overrides: Any) -> dict[str, Any]:
    """A transaction as a node would report it inside a block."""
    payload: dict[str, Any] = {
        "hash": "0x" + hash_for("tx", height, index),
        "from": "0x" + f"{index + 1:040x}",
        "to": "0x" + f"{index + 2:040x}",
        "value": 1_000 * (index + 1),
        "fee": 10,
    }
    payload.update(overrides)
    return payload


def raw_block(height: int, *, tx_count: int = 2, **overrides: Any) -> dict[str, Any]:
    """A block as a node would report it, with seconds-resolution timestamps."""
    payload: dict[str, Any] = {
        "height": height,
        "hash": "0x" + hash_for("block", height),
        "parent_hash": "0x" + hash_for("block", height - 1),
        "timestamp": BASE_TIME_S + height * BLOCK_SPACING_S,
        "miner": "0x" + f"{height % 3 + 100:040x}",
        "transactions": [raw_transaction(height, i) for i in range(tx_count)],
    }
    payload.update(overrides)
    return payload
