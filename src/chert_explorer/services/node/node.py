"""
Explorer engine context.

The node is the single object an embedding application holds. It owns the
store, the hub, the backend (simulated or live) and, in node mode, the
JSON-RPC client, and drives the backend on a fixed timer.

Lifecycle
---------
1. `from_config` wires every component; nothing runs yet
2. `start` initializes the backend once (seed or first poll), then spawns
   the timer loop
3. `stop` cancels the loop; `start` may be called again later
4. `dispose` stops, closes every channel and releases the HTTP client

Both `start` and `stop` are idempotent. After `dispose` the node can no
longer be started.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import httpx

from chert_explorer.config import BackendMode, ExplorerConfig
from chert_explorer.services.api import ApiServer, ApiServerConfig
from chert_explorer.services.backend import ExplorerBackend
from chert_explorer.services.hub import Channel, StateHub
from chert_explorer.services.live import LiveSyncClient
from chert_explorer.services.rpc import JsonRpcClient, map_block, map_transaction
from chert_explorer.services.simulator import ChainSimulator
from chert_explorer.services.store import StateStore
from chert_explorer.types import (
    AccountActivitySnapshot,
    AccountSummary,
    AttoValue,
    BlockDetails,
    BlockSummary,
    ExplorerError,
    NetworkStatistics,
    NodeUnavailableError,
    TransactionDetails,
    TransactionSummary,
    UnixMs,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExplorerNode:
    """
    Explicit context object for one explorer engine.

    Construct with `from_config`. Use as an async context manager to bind
    its lifetime to a block.
    """

    config: ExplorerConfig
    store: StateStore
    hub: StateHub
    backend: ExplorerBackend

    rpc: JsonRpcClient | None = None
    """Node client. None in mock mode."""

    api_server: ApiServer | None = None
    """Optional status server, started by `run`."""

    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _initialized: bool = field(default=False, init=False, repr=False)
    _disposed: bool = field(default=False, init=False, repr=False)
    _shutdown: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    @classmethod
    def from_config(
        cls,
        config: ExplorerConfig,
        *,
        time_fn: Callable[[], float] = time.time,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ExplorerNode:
        """
        Build a node and every component it owns.

        Args:
            config: Engine configuration. Its invariants are checked here.
            time_fn: Wall-clock source in seconds.
            transport: Optional HTTP transport for the node client.

        Raises:
            ValidationError: If the configuration violates an invariant.
        """
        config.check()
        store = StateStore(max_blocks=config.max_blocks)
        hub = StateHub.create(store, UnixMs(int(time_fn() * 1000)))

        rpc: JsonRpcClient | None = None
        backend: ExplorerBackend
        if config.mode is BackendMode.MOCK:
            backend = ChainSimulator(config=config, store=store, hub=hub, time_fn=time_fn)
        else:
            rpc = JsonRpcClient(
                base_url=config.node_base_url,
                timeout=config.request_timeout_s,
                transport=transport,
            )
            backend = LiveSyncClient(config=config, store=store, hub=hub, rpc=rpc, time_fn=time_fn)

        node = cls(config=config, store=store, hub=hub, backend=backend, rpc=rpc)
        if config.api_enabled:
            node.api_server = ApiServer(
                config=ApiServerConfig(host=config.api_host, port=config.api_port),
                stats_getter=node.published_stats,
            )

        logger.info("Explorer engine configured in %s mode", config.mode.value)
        return node

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """Whether the timer loop is active."""
        return self._task is not None and not self._task.done()

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def start(self) -> None:
        """
        Initialize the backend on first call, then start the timer.

        Raises:
            ExplorerError: If the node has been disposed.
        """
        if self._disposed:
            raise ExplorerError("Explorer engine has been disposed")
        if self.is_running:
            return

        if not self._initialized:
            self._initialized = True
            await self.backend.initialize()
            # A concurrent start may have spawned the loop while we awaited.
            if self.is_running or self._disposed:
                return

        self._task = asyncio.create_task(self._loop(), name="explorer-timer")
        logger.debug("Timer started (interval=%dms)", self.config.block_interval_ms)

    async def stop(self) -> None:
        """
        Cancel the timer loop. Idempotent.

        A tick that failed before the stop re-raises its error here.
        """
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Timer stopped")

    async def dispose(self) -> None:
        """Stop, release the backend and close every channel. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self._shutdown.set()
        try:
            await self.stop()
        finally:
            await self.backend.close()
            if self.api_server is not None:
                await self.api_server.aclose()
            self.hub.close()
            logger.info("Explorer engine disposed")

    async def __aenter__(self) -> ExplorerNode:
        if self.config.auto_start:
            await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.block_interval_s)
            try:
                await self.backend.tick()
            except Exception:
                logger.exception("Tick failed, stopping the timer")
                self._shutdown.set()
                raise

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        """
        Run until shutdown is requested, then dispose.

        Args:
            install_signal_handlers: Whether to handle SIGINT/SIGTERM.
                Disable for testing or non-main threads.
        """
        if install_signal_handlers:
            self._install_signal_handlers()

        await self.start()
        try:
            async with asyncio.TaskGroup() as tg:
                if self.api_server is not None:
                    tg.create_task(self.api_server.run())
                tg.create_task(self._wait_shutdown())
        finally:
            await self.dispose()

    def request_shutdown(self) -> None:
        """Ask `run` to return."""
        self._shutdown.set()

    def _install_signal_handlers(self) -> None:
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._shutdown.set)
        except (ValueError, RuntimeError, NotImplementedError):
            # Cannot add handlers outside the main thread or on this platform.
            pass

    async def _wait_shutdown(self) -> None:
        await self._shutdown.wait()
        if self.api_server is not None:
            await self.api_server.aclose()

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    async def refresh_now(self) -> None:
        """Run one cycle immediately, outside the timer schedule."""
        if self._disposed:
            raise ExplorerError("Explorer engine has been disposed")
        await self.backend.refresh()

    async def load_more_blocks(self) -> bool:
        """Page older history into the store. Always False in mock mode."""
        if self._disposed:
            return False
        return await self.backend.load_more_blocks()

    # -------------------------------------------------------------------------
    # Published state
    # -------------------------------------------------------------------------

    @property
    def blocks(self) -> Channel[tuple[BlockSummary, ...]]:
        return self.hub.blocks

    @property
    def recent_transactions(self) -> Channel[tuple[TransactionSummary, ...]]:
        return self.hub.recent_transactions

    @property
    def network_stats(self) -> Channel[NetworkStatistics]:
        return self.hub.network_stats

    @property
    def accounts(self) -> Channel[tuple[AccountSummary, ...]]:
        return self.hub.accounts

    @property
    def last_refreshed(self) -> Channel[UnixMs | None]:
        return self.hub.last_refreshed

    @property
    def is_refreshing(self) -> Channel[bool]:
        return self.hub.is_refreshing

    @property
    def has_more_blocks(self) -> Channel[bool]:
        return self.hub.has_more_blocks

    @property
    def is_loading_more(self) -> Channel[bool]:
        return self.hub.is_loading_more

    def published_stats(self) -> NetworkStatistics | None:
        """Latest statistics, or None until the first block is known."""
        if self.store.tip is None:
            return None
        return self.hub.network_stats.value

    def get_block_details(self, block_hash: str) -> BlockDetails | None:
        return self.hub.get_block_details(block_hash)

    def get_transaction_details(self, tx_hash: str) -> TransactionDetails | None:
        return self.hub.get_transaction_details(tx_hash)

    def get_account_snapshot(self, address: str) -> AccountActivitySnapshot | None:
        return self.hub.get_account_snapshot(address)

    # -------------------------------------------------------------------------
    # Pass-through fetches
    # -------------------------------------------------------------------------
    #
    # These go straight to the node and bypass the store. In mock mode the
    # ledger lookups answer from the cache; everything else needs a node.

    async def fetch_block_by_number(self, height: int) -> BlockDetails | None:
        if self.rpc is None:
            return self.store.get_block_by_height(height)
        return self._map_fetched_block(await self.rpc.get_block(height))

    async def fetch_block_by_hash(self, block_hash: str) -> BlockDetails | None:
        if self.rpc is None:
            return self.store.get_block(block_hash)
        return self._map_fetched_block(await self.rpc.get_block_by_hash(block_hash))

    async def fetch_transaction_by_hash(self, tx_hash: str) -> TransactionDetails | None:
        if self.rpc is None:
            return self.store.get_transaction(tx_hash)
        raw = await self.rpc.get_transaction(tx_hash)
        if raw is None:
            return None
        tip = self.store.tip
        return map_transaction(raw, tip_height=int(tip.height) if tip is not None else None)

    async def fetch_balance(self, address: str) -> AttoValue | None:
        """
        Fetch an account balance.

        The node may answer with a bare number or a `{"balance": n}` object.

        Raises:
            ValidationError: If the node's answer has neither shape.
        """
        if self.rpc is None:
            state = self.store.get_account(address)
            return AttoValue(max(0, state.balance)) if state is not None else None

        raw = await self.rpc.get_balance(address)
        if raw is None:
            return None
        if isinstance(raw, Mapping):
            raw = raw.get("balance")
        if isinstance(raw, str) and raw.isdigit():
            raw = int(raw)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError(f"get_balance: unexpected result {raw!r}")
        return AttoValue(raw)

    async def fetch_transaction_history(
        self, address: str, limit: int | None = None, cursor: str | None = None
    ) -> Any:
        return await self._require_rpc("fetch_transaction_history").get_transaction_history(
            address, limit or self.config.page_size, cursor
        )

    async def fetch_staking_info(self) -> Any:
        return await self._require_rpc("fetch_staking_info").get_staking_info()

    async def fetch_staking_delegations(self, limit: int = 20) -> Any:
        return await self._require_rpc("fetch_staking_delegations").get_staking_delegations(limit)

    async def fetch_privacy_info(self) -> Any:
        return await self._require_rpc("fetch_privacy_info").get_privacy_info()

    async def fetch_privacy_operations(self, limit: int = 20) -> Any:
        return await self._require_rpc("fetch_privacy_operations").get_privacy_operations(limit)

    async def fetch_governance_info(self) -> Any:
        return await self._require_rpc("fetch_governance_info").get_governance_info()

    async def fetch_proposals(self, status: str | None = None, limit: int = 20) -> Any:
        return await self._require_rpc("fetch_proposals").get_proposals(status, limit)

    async def fetch_treasury(self) -> Any:
        return await self._require_rpc("fetch_treasury").get_treasury()

    async def fetch_tokens(self, limit: int = 50) -> Any:
        return await self._require_rpc("fetch_tokens").get_tokens(limit)

    async def fetch_token(self, address: str) -> Any:
        return await self._require_rpc("fetch_token").get_token(address)

    async def fetch_token_holders(self, address: str, limit: int = 50) -> Any:
        return await self._require_rpc("fetch_token_holders").get_token_holders(address, limit)

    async def fetch_token_transfers(self, address: str, limit: int = 50) -> Any:
        return await self._require_rpc("fetch_token_transfers").get_token_transfers(address, limit)

    async def fetch_contract_code(self, address: str) -> Any:
        return await self._require_rpc("fetch_contract_code").get_contract_code(address)

    async def fetch_contract_abi(self, address: str) -> Any:
        return await self._require_rpc("fetch_contract_abi").get_contract_abi(address)

    async def fetch_events(self, filters: dict[str, Any] | None = None) -> Any:
        return await self._require_rpc("fetch_events").get_events(filters or {})

    async def fetch_analytics(self) -> Any:
        return await self._require_rpc("fetch_analytics").get_analytics()

    async def fetch_chain_parameters(self) -> Any:
        return await self._require_rpc("fetch_chain_parameters").get_chain_parameters()

    async def fetch_nodes(self) -> Any:
        return await self._require_rpc("fetch_nodes").get_nodes()

    async def fetch_bridge_history(self, limit: int = 20) -> Any:
        return await self._require_rpc("fetch_bridge_history").get_bridge_history(limit)

    async def fetch_bridge_stats(self) -> Any:
        return await self._require_rpc("fetch_bridge_stats").get_bridge_stats()

    async def fetch_alerts(self) -> Any:
        return await self._require_rpc("fetch_alerts").get_alerts()

    def _require_rpc(self, operation: str) -> JsonRpcClient:
        if self.rpc is None:
            raise NodeUnavailableError(f"{operation} needs a live node (engine is in mock mode)")
        return self.rpc

    def _map_fetched_block(self, raw: Any) -> BlockDetails | None:
        if raw is None:
            return None
        tip = self.store.tip
        block, _ = map_block(
            raw,
            tip_height=int(tip.height) if tip is not None else None,
            finality_lag=self.config.finality_lag,
            known_finalized={b.hash for b in self.store.blocks if b.is_finalized},
        )
        return block
