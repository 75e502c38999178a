"""
Remote-procedure client for a live ledger node.

The transport client, the lax wire records it returns, and the mapping of
those records into the validated ledger model.
"""

from __future__ import annotations

__all__ = [
    # Transport
    "JsonRpcClient",
    "JSONRPC_VERSION",
    "JSONRPC_PATH",
    "HEALTH_PATH",
    # Wire records
    "BlocksPage",
    "WireBlock",
    "WireTransaction",
    # Mapping
    "map_block",
    "map_transaction",
    "parse_blocks_page",
    "to_unix_ms",
    "validator_count_from_health",
]

from .client import HEALTH_PATH, JSONRPC_PATH, JSONRPC_VERSION, JsonRpcClient
from .mapping import (
    map_block,
    map_transaction,
    parse_blocks_page,
    to_unix_ms,
    validator_count_from_health,
)
from .wire import BlocksPage, WireBlock, WireTransaction
