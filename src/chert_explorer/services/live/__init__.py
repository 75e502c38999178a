"""
Live backend.

Polls a ledger node over JSON-RPC and mirrors its newest block window into
the shared store.
"""

from __future__ import annotations

__all__ = [
    "LiveSnapshot",
    "LiveSyncClient",
    "rebuild_accounts",
    "window_statistics",
]

from .service import LiveSnapshot, LiveSyncClient, rebuild_accounts, window_statistics
