"""Tests for the JSON-RPC node client."""

from __future__ import annotations

import httpx
import pytest

from chert_explorer.services.rpc import JSONRPC_VERSION, JsonRpcClient
from chert_explorer.types import NetworkError, ProtocolError, ValidationError
from tests.chert_explorer.helpers import FakeNode


def client_for(transport: httpx.AsyncBaseTransport) -> JsonRpcClient:
    return JsonRpcClient(base_url="http://node.test/", transport=transport)


class TestEnvelope:
    """Tests for the request envelope."""

    @pytest.mark.asyncio
    async def test_sends_versioned_envelope(self, fake_node: FakeNode) -> None:
        """Each call posts version, method, params and an increasing id."""
        fake_node.results["get_balance"] = 5
        client = client_for(fake_node.transport())

        await client.get_balance("0x" + "1" * 40)
        await client.get_alerts()
        await client.close()

        first, second = fake_node.envelopes
        assert first["version"] == JSONRPC_VERSION
        assert first["method"] == "get_balance"
        assert first["params"] == {"address": "0x" + "1" * 40}
        assert second["id"] == first["id"] + 1

    @pytest.mark.asyncio
    async def test_omits_unset_params(self, fake_node: FakeNode) -> None:
        """Parameters left as None are not sent."""
        client = client_for(fake_node.transport())

        await client.get_blocks(limit=5)
        await client.get_blocks(limit=5, from_height=40)
        await client.close()

        assert fake_node.calls == [
            ("get_blocks", {"limit": 5}),
            ("get_blocks", {"limit": 5, "from_height": 40}),
        ]

    @pytest.mark.asyncio
    async def test_returns_result(self, fake_node: FakeNode) -> None:
        """The `result` member is returned as-is."""
        fake_node.results["get_chain_parameters"] = {"block_time": 4}
        client = client_for(fake_node.transport())

        assert await client.get_chain_parameters() == {"block_time": 4}
        await client.close()


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_error_envelope_raises_protocol_error(self, fake_node: FakeNode) -> None:
        """An error envelope surfaces its code and message."""
        fake_node.errors["get_token"] = (-32602, "invalid address")
        client = client_for(fake_node.transport())

        with pytest.raises(ProtocolError) as exc_info:
            await client.get_token("nope")
        await client.close()

        assert exc_info.value.code == -32602
        assert "invalid address" in exc_info.value.message
        assert exc_info.value.method == "get_token"

    @pytest.mark.asyncio
    async def test_http_status_raises_network_error(self, fake_node: FakeNode) -> None:
        """Non-2xx statuses are transport failures."""
        fake_node.fail_status = 502
        client = client_for(fake_node.transport())

        with pytest.raises(NetworkError, match="502"):
            await client.get_nodes()
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_failure_raises_network_error(self) -> None:
        """Connection errors are wrapped."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = client_for(httpx.MockTransport(refuse))

        with pytest.raises(NetworkError, match="connection refused"):
            await client.get_analytics()
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body_raises_validation_error(self) -> None:
        """A body that is not JSON is malformed."""
        client = client_for(httpx.MockTransport(lambda _: httpx.Response(200, text="<html>")))

        with pytest.raises(ValidationError, match="not valid JSON"):
            await client.get_treasury()
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_result_raises_validation_error(self) -> None:
        """A response with neither result nor error is malformed."""
        client = client_for(
            httpx.MockTransport(lambda _: httpx.Response(200, json={"version": "2.0", "id": 1}))
        )

        with pytest.raises(ValidationError, match="neither result nor error"):
            await client.get_bridge_stats()
        await client.close()


class TestHealth:
    """Tests for the plain-GET health endpoint."""

    @pytest.mark.asyncio
    async def test_returns_document(self, fake_node: FakeNode) -> None:
        """The health document is returned and no RPC call is made."""
        fake_node.health = {"status": "ok", "active_validators": 4}
        client = client_for(fake_node.transport())

        assert await client.health() == {"status": "ok", "active_validators": 4}
        await client.close()

        assert fake_node.calls == []

    @pytest.mark.asyncio
    async def test_missing_endpoint_raises(self, fake_node: FakeNode) -> None:
        """A node without the endpoint reports a network error."""
        client = client_for(fake_node.transport())

        with pytest.raises(NetworkError):
            await client.health()
        await client.close()
