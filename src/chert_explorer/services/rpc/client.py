"""
JSON-RPC client for a ledger node.

Every call is an HTTP POST of the envelope::

    {"version": "2.0", "method": "<name>", "params": {...}, "id": <n>}

to `<base_url>/jsonrpc`. A successful response carries `result`; a failed
one carries `{"error": {"code": ..., "message": ...}}`.

Error mapping:

- Transport failures and non-2xx statuses raise `NetworkError`
- An error envelope raises `ProtocolError` with the node's code and message
- A body that is not a JSON-RPC response raises `ValidationError`

The client holds no state beyond its HTTP connection pool and a request
counter. Nothing it returns is cached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Final

import httpx

from chert_explorer.types import NetworkError, ProtocolError, ValidationError

logger = logging.getLogger(__name__)

JSONRPC_VERSION: Final = "2.0"
"""Protocol version sent in every envelope."""

JSONRPC_PATH: Final = "/jsonrpc"
"""Path of the RPC endpoint under the node base URL."""

HEALTH_PATH: Final = "/health"
"""Path of the plain-GET health endpoint."""

DEFAULT_TIMEOUT: Final = 10.0
"""HTTP request timeout in seconds."""


@dataclass(slots=True)
class JsonRpcClient:
    """
    Request/response client for the node's remote-procedure protocol.

    The underlying `httpx.AsyncClient` is created on first use and must be
    released with `close()`.
    """

    base_url: str
    """Node base URL, e.g. "http://localhost:8545"."""

    timeout: float = DEFAULT_TIMEOUT

    transport: httpx.AsyncBaseTransport | None = None
    """Optional transport override (a `httpx.MockTransport` in tests)."""

    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)
    _next_id: int = field(default=0, init=False, repr=False)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url.rstrip("/"),
                timeout=self.timeout,
                transport=self.transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Release the connection pool. Idempotent."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """
        Invoke one remote method.

        Args:
            method: Remote method name.
            params: Named parameters. Keys whose value is None are omitted.

        Returns:
            The `result` member of the response.

        Raises:
            NetworkError: If the request could not be completed.
            ProtocolError: If the node answered with an error envelope.
            ValidationError: If the body is not a JSON-RPC response.
        """
        self._next_id += 1
        envelope = {
            "version": JSONRPC_VERSION,
            "method": method,
            "params": {k: v for k, v in (params or {}).items() if v is not None},
            "id": self._next_id,
        }
        logger.debug("RPC %s id=%d", method, self._next_id)

        payload = await self._request("POST", JSONRPC_PATH, json=envelope)
        if not isinstance(payload, dict):
            raise ValidationError(f"{method}: response is not a JSON object")

        error = payload.get("error")
        if error is not None:
            if not isinstance(error, dict):
                raise ProtocolError(-1, str(error), method=method)
            raise ProtocolError(
                int(error.get("code", -1)),
                str(error.get("message", "unknown error")),
                method=method,
            )

        if "result" not in payload:
            raise ValidationError(f"{method}: response carries neither result nor error")
        return payload["result"]

    async def health(self) -> dict[str, Any]:
        """
        Fetch the node's health document with a plain GET.

        Raises:
            NetworkError: If the request could not be completed.
            ValidationError: If the body is not a JSON object.
        """
        payload = await self._request("GET", HEALTH_PATH)
        if not isinstance(payload, dict):
            raise ValidationError("health: response is not a JSON object")
        return payload

    async def _request(self, verb: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http().request(verb, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NetworkError(
                f"HTTP error {exc.response.status_code} from {path}: {exc.response.text[:200]}"
            ) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Network error while connecting to {exc.request.url}: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ValidationError(f"Response from {path} is not valid JSON") from exc

    # -------------------------------------------------------------------------
    # Chain data
    # -------------------------------------------------------------------------

    async def get_blocks(self, limit: int, from_height: Any = None) -> Any:
        """Fetch a page of blocks, newest first unless `from_height` is given."""
        return await self.call("get_blocks", {"limit": limit, "from_height": from_height})

    async def get_block(self, height: int) -> Any:
        return await self.call("get_block", {"height": height})

    async def get_block_by_hash(self, block_hash: str) -> Any:
        return await self.call("get_block_by_hash", {"hash": block_hash})

    async def get_transaction(self, tx_id: str) -> Any:
        return await self.call("get_transaction", {"tx_id": tx_id})

    async def get_transaction_history(
        self, address: str, limit: int, cursor: str | None = None
    ) -> Any:
        return await self.call(
            "get_transaction_history", {"address": address, "limit": limit, "cursor": cursor}
        )

    async def get_balance(self, address: str) -> Any:
        return await self.call("get_balance", {"address": address})

    # -------------------------------------------------------------------------
    # Informational pass-through
    # -------------------------------------------------------------------------

    async def get_staking_info(self) -> Any:
        return await self.call("get_staking_info")

    async def get_staking_delegations(self, limit: int) -> Any:
        return await self.call("get_staking_delegations", {"limit": limit})

    async def get_privacy_info(self) -> Any:
        return await self.call("get_privacy_info")

    async def get_privacy_operations(self, limit: int) -> Any:
        return await self.call("get_privacy_operations", {"limit": limit})

    async def get_governance_info(self) -> Any:
        return await self.call("get_governance_info")

    async def get_proposals(self, status: str | None = None, limit: int = 20) -> Any:
        return await self.call("get_proposals", {"status": status, "limit": limit})

    async def get_treasury(self) -> Any:
        return await self.call("get_treasury")

    async def get_tokens(self, limit: int) -> Any:
        return await self.call("get_tokens", {"limit": limit})

    async def get_token(self, address: str) -> Any:
        return await self.call("get_token", {"address": address})

    async def get_token_holders(self, address: str, limit: int) -> Any:
        return await self.call("get_token_holders", {"address": address, "limit": limit})

    async def get_token_transfers(self, address: str, limit: int) -> Any:
        return await self.call("get_token_transfers", {"address": address, "limit": limit})

    async def get_contract_code(self, address: str) -> Any:
        return await self.call("get_contract_code", {"address": address})

    async def get_contract_abi(self, address: str) -> Any:
        return await self.call("get_contract_abi", {"address": address})

    async def get_events(self, filters: dict[str, Any]) -> Any:
        return await self.call("get_events", filters)

    async def get_analytics(self) -> Any:
        return await self.call("get_analytics")

    async def get_chain_parameters(self) -> Any:
        return await self.call("get_chain_parameters")

    async def get_nodes(self) -> Any:
        return await self.call("get_nodes")

    async def get_bridge_history(self, limit: int) -> Any:
        return await self.call("get_bridge_history", {"limit": limit})

    async def get_bridge_stats(self) -> Any:
        return await self.call("get_bridge_stats")

    async def get_alerts(self) -> Any:
        return await self.call("get_alerts")
