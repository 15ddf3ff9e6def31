#!/usr/bin/env python3
"""Tests for the NEAR JSON-RPC client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from bridge_router.bridges.near.rpc import NearRPCClient, NearRPCError, is_unknown_transaction
from bridge_router.errors import RPCQueryError

GATEWAYS = ["https://rpc-1.example.org", "https://rpc-2.example.org"]


def _response(data):
    response = MagicMock()
    response.json.return_value = data
    response.raise_for_status = MagicMock()
    return response


def _mock_client(*responses):
    client = AsyncMock()
    client.post = AsyncMock(side_effect=list(responses))
    client.__aenter__.return_value = client
    client.__aexit__.return_value = None
    return client


class TestNearRPCClient:

    def test_requires_gateway(self):
        with pytest.raises(ValueError):
            NearRPCClient([])

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        rpc = NearRPCClient(GATEWAYS)
        client = _mock_client(_response({"jsonrpc": "2.0", "id": "router", "result": {"status": {}}}))

        with patch.object(rpc, '_create_client', return_value=client):
            result = await rpc.get_transaction("hash1", "router.near")

        assert result == {"status": {}}
        url = client.post.call_args.args[0]
        payload = client.post.call_args.kwargs["json"]
        assert url == GATEWAYS[0]
        assert payload["method"] == "tx"
        assert payload["params"] == ["hash1", "router.near"]

    @pytest.mark.asyncio
    async def test_fails_over_to_next_gateway(self):
        rpc = NearRPCClient(GATEWAYS)
        client = _mock_client(
            httpx.ConnectError("Connection failed"),
            _response({"result": {"header": {"height": 7}}}),
        )

        with patch.object(rpc, '_create_client', return_value=client):
            block = await rpc.get_latest_block()

        assert block["header"]["height"] == 7
        assert [c.args[0] for c in client.post.call_args_list] == GATEWAYS

    @pytest.mark.asyncio
    async def test_all_gateways_fail(self):
        rpc = NearRPCClient(GATEWAYS)
        client = _mock_client(
            _response({"error": {"name": "HANDLER_ERROR"}}),
            _response({"result": {"error": "access key does not exist"}}),
        )

        with patch.object(rpc, '_create_client', return_value=client):
            with pytest.raises(RPCQueryError) as exc_info:
                await rpc.view_access_key("mpc.near", "ed25519:abc")

        error = exc_info.value
        assert error.method == "query"
        assert error.args_ == ("mpc.near", "ed25519:abc")
        assert isinstance(error.cause, NearRPCError)
        assert error.retryable

    @pytest.mark.asyncio
    async def test_broadcast(self):
        rpc = NearRPCClient(GATEWAYS[:1])
        client = _mock_client(_response({"result": {"transaction": {"hash": "abc"}}}))

        with patch.object(rpc, '_create_client', return_value=client):
            result = await rpc.broadcast_tx_commit("AAAA")

        assert result["transaction"]["hash"] == "abc"
        assert client.post.call_args.kwargs["json"]["params"] == ["AAAA"]


class TestUnknownTransaction:

    @pytest.mark.asyncio
    async def test_unknown_transaction_error(self):
        rpc = NearRPCClient(GATEWAYS[:1])
        client = _mock_client(_response({
            "error": {"name": "HANDLER_ERROR", "cause": {"name": "UNKNOWN_TRANSACTION", "info": {}}}
        }))

        with patch.object(rpc, '_create_client', return_value=client):
            with pytest.raises(RPCQueryError) as exc_info:
                await rpc.get_transaction("hash1", "router.near")

        assert exc_info.value.cause.cause_name == "UNKNOWN_TRANSACTION"
        assert is_unknown_transaction(exc_info.value)

    @pytest.mark.asyncio
    async def test_outage_is_not_unknown_transaction(self):
        rpc = NearRPCClient(GATEWAYS)
        client = _mock_client(httpx.ConnectError("Connection failed"), httpx.ReadTimeout("timed out"))

        with patch.object(rpc, '_create_client', return_value=client):
            with pytest.raises(RPCQueryError) as exc_info:
                await rpc.get_transaction("hash1", "router.near")

        assert not is_unknown_transaction(exc_info.value)

    @pytest.mark.parametrize("error", [
        {"name": "HANDLER_ERROR", "cause": {"name": "TIMEOUT_ERROR"}},
        {"name": "HANDLER_ERROR"},
        "Server error",
    ])
    def test_other_errors(self, error):
        assert not is_unknown_transaction(RPCQueryError("tx", "hash1", cause=NearRPCError(error)))
