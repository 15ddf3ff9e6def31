#!/usr/bin/env python3
"""Tests for NEAR swap-out verification."""

import logging
from unittest.mock import AsyncMock

import httpx
import pytest

from bridge_router.bridges.near.rpc import NearRPCError
from bridge_router.bridges.near.verify import find_swapout_log, parse_swapout_fields
from bridge_router.config import RouterConfig
from bridge_router.errors import (
    LogParseError,
    MissingTokenConfig,
    NoBridgeForChainID,
    RPCQueryError,
    SwapTypeNotSupported,
    TxBeforeInitialHeight,
    TxNotFound,
    TxNotStable,
    TxNotValidated,
    WrongBindAddress,
    WrongSender,
    WrongValue,
)
from bridge_router.models import SwapType, VerifyArgs

from conftest import (
    BLOCK_HASH,
    EVM_CHAIN_ID,
    NEAR_CHAIN_ID,
    NEAR_ROUTER,
    NEAR_USDC,
    make_evm_chain,
    make_near_chain,
    make_near_rpc,
    make_router,
    make_tokens,
)

TX_HASH = "9XyZtx1Hash"
BIND = "0x2222222222222222222222222222222222222222"


def swapout_log(
    token: str = NEAR_USDC,
    sender: str = "alice.near",
    bind: str = BIND,
    amount: str = "1500000",
    to_chain_id: str = str(EVM_CHAIN_ID),
) -> str:
    return f"LogSwapOut token {token} from {sender} bind {bind} amount {amount} fee 0 to_chain_id {to_chain_id}"


def tx_result(logs: list[str], executor: str = NEAR_ROUTER, status: dict | None = None) -> dict:
    return {
        "status": status or {"SuccessValue": ""},
        "transaction_outcome": {"block_hash": BLOCK_HASH},
        "receipts_outcome": [
            {"outcome": {"executor_id": "alice.near", "logs": ["unrelated"]}},
            {"outcome": {"executor_id": executor, "logs": logs}},
        ],
    }


@pytest.fixture
def verify_rpc():
    rpc = make_near_rpc(latest_height=1000)
    rpc.get_transaction = AsyncMock(return_value=tx_result([swapout_log()]))
    rpc.get_block_by_hash = AsyncMock(
        return_value={"header": {"hash": BLOCK_HASH, "height": 500, "timestamp": 1_700_000_000_000_000_000}}
    )
    return rpc


@pytest.fixture
def bridge(router_config, verify_rpc):
    return make_router(router_config, rpc=verify_rpc).get_bridge_by_chain_id(NEAR_CHAIN_ID)


class TestSwapoutLog:

    def test_select_by_log_index(self):
        logs = ["LogSwapOut too short", "Transfer 1 2 3", swapout_log(amount="7"), swapout_log(amount="8")]
        assert find_swapout_log(logs, 0)[8] == "7"
        assert find_swapout_log(logs, 1)[8] == "8"

    @pytest.mark.parametrize("log_index", [2, -1])
    def test_log_index_out_of_range(self, log_index):
        logs = [swapout_log(amount="7"), swapout_log(amount="8")]
        with pytest.raises(LogParseError, match="out of range"):
            find_swapout_log(logs, log_index)

    def test_no_line(self):
        with pytest.raises(LogParseError):
            find_swapout_log(["LogSwapIn " + " ".join(["x"] * 12)], 0)

    def test_extra_whitespace(self):
        logs = [swapout_log(amount="7") + " ", swapout_log(amount="8").replace(" ", "  ")]
        assert find_swapout_log(logs, 0)[8] == "7"
        fields = find_swapout_log(logs, 1)
        assert len(fields) == 13
        assert fields[8] == "8"
        assert fields[12] == str(EVM_CHAIN_ID)

    @pytest.mark.parametrize("amount,to_chain_id", [("-5", "1"), ("1.5", "1"), ("10", "abc"), ("10", "0")])
    def test_bad_numbers(self, amount, to_chain_id):
        fields = swapout_log(amount=amount, to_chain_id=to_chain_id).split(" ")
        with pytest.raises(LogParseError):
            parse_swapout_fields(fields)


class TestVerifyTransaction:

    @pytest.mark.asyncio
    async def test_success(self, bridge, verify_rpc, caplog):
        with caplog.at_level(logging.INFO):
            result = await bridge.verify_transaction(TX_HASH, VerifyArgs(log_index=0))

        assert result.swap_type == SwapType.ERC20_SWAP
        assert result.tx_hash == TX_HASH
        assert result.log_index == 0
        assert result.from_chain_id == NEAR_CHAIN_ID
        assert result.to_chain_id == EVM_CHAIN_ID
        assert result.token == NEAR_USDC
        assert result.token_id == "USDC"
        assert result.sender == "alice.near"
        assert result.receiver == NEAR_ROUTER
        assert result.bind == BIND
        assert result.value == 1_500_000
        assert result.height == 500
        assert result.timestamp == 1_700_000_000
        assert "verify swapout pass" in caplog.text
        verify_rpc.get_transaction.assert_awaited_once_with(TX_HASH, NEAR_ROUTER)

    @pytest.mark.asyncio
    async def test_deterministic(self, bridge):
        first = await bridge.verify_transaction(TX_HASH, VerifyArgs())
        second = await bridge.verify_transaction(TX_HASH, VerifyArgs())
        assert first == second
        assert first.to_dict()["value"] == "1500000"

    @pytest.mark.asyncio
    async def test_unsupported_swap_type(self, bridge):
        with pytest.raises(SwapTypeNotSupported):
            await bridge.verify_transaction(TX_HASH, VerifyArgs(swap_type=SwapType.NFT_SWAP))

    @pytest.mark.asyncio
    async def test_not_found(self, bridge, verify_rpc):
        unknown = NearRPCError({"name": "HANDLER_ERROR", "cause": {"name": "UNKNOWN_TRANSACTION", "info": {}}})
        verify_rpc.get_transaction = AsyncMock(side_effect=RPCQueryError("tx", TX_HASH, cause=unknown))
        with pytest.raises(TxNotFound) as exc_info:
            await bridge.verify_transaction(TX_HASH, VerifyArgs())
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_gateway_outage_is_retryable(self, bridge, verify_rpc):
        outage = httpx.ConnectError("Connection refused")
        verify_rpc.get_transaction = AsyncMock(side_effect=RPCQueryError("tx", TX_HASH, cause=outage))
        with pytest.raises(RPCQueryError) as exc_info:
            await bridge.verify_transaction(TX_HASH, VerifyArgs())
        assert exc_info.value.retryable
        assert not isinstance(exc_info.value, TxNotFound)

    @pytest.mark.asyncio
    async def test_other_rpc_error_is_retryable(self, bridge, verify_rpc):
        timeout = NearRPCError({"name": "HANDLER_ERROR", "cause": {"name": "TIMEOUT_ERROR"}})
        verify_rpc.get_transaction = AsyncMock(side_effect=RPCQueryError("tx", TX_HASH, cause=timeout))
        with pytest.raises(RPCQueryError) as exc_info:
            await bridge.verify_transaction(TX_HASH, VerifyArgs())
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_each_swapout_verifies_under_its_own_index(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(
            return_value=tx_result([swapout_log(amount="1500000"), swapout_log(amount="3000000")])
        )
        first = await bridge.verify_transaction(TX_HASH, VerifyArgs(log_index=0))
        second = await bridge.verify_transaction(TX_HASH, VerifyArgs(log_index=1))
        assert (first.log_index, first.value) == (0, 1_500_000)
        assert (second.log_index, second.value) == (1, 3_000_000)

        with pytest.raises(LogParseError):
            await bridge.verify_transaction(TX_HASH, VerifyArgs(log_index=2))

    @pytest.mark.asyncio
    async def test_failed_execution(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(
            return_value=tx_result([swapout_log()], status={"Failure": {"ActionError": {}}})
        )
        with pytest.raises(TxNotValidated):
            await bridge.verify_transaction(TX_HASH, VerifyArgs())

    @pytest.mark.asyncio
    async def test_not_stable(self, bridge, verify_rpc):
        verify_rpc.get_latest_block = AsyncMock(return_value={"header": {"hash": BLOCK_HASH, "height": 504}})
        with pytest.raises(TxNotStable) as exc_info:
            await bridge.verify_transaction(TX_HASH, VerifyArgs())
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_exactly_enough_confirmations(self, bridge, verify_rpc):
        verify_rpc.get_latest_block = AsyncMock(return_value={"header": {"hash": BLOCK_HASH, "height": 505}})
        result = await bridge.verify_transaction(TX_HASH, VerifyArgs())
        assert result.height == 500

    @pytest.mark.asyncio
    async def test_allow_unstable(self, bridge, verify_rpc, caplog):
        verify_rpc.get_latest_block = AsyncMock(return_value={"header": {"hash": BLOCK_HASH, "height": 500}})
        with caplog.at_level(logging.INFO):
            result = await bridge.verify_transaction(TX_HASH, VerifyArgs(allow_unstable=True))
        assert result.value == 1_500_000
        assert "verify swapout pass" not in caplog.text
        verify_rpc.get_latest_block.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_before_initial_height(self, verify_rpc):
        config = RouterConfig(
            chains=(make_near_chain(initial_height=600), make_evm_chain()),
            tokens=make_tokens(),
        )
        bridge = make_router(config, rpc=verify_rpc).get_bridge_by_chain_id(NEAR_CHAIN_ID)
        with pytest.raises(TxBeforeInitialHeight) as exc_info:
            await bridge.verify_transaction(TX_HASH, VerifyArgs())
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_logs_from_other_contracts_ignored(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(return_value=tx_result([swapout_log()], executor="fake-router.near"))
        with pytest.raises(LogParseError):
            await bridge.verify_transaction(TX_HASH, VerifyArgs())

    @pytest.mark.asyncio
    async def test_wrong_sender(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(return_value=tx_result([swapout_log(sender="ROUTER.near")]))
        with pytest.raises(WrongSender):
            await bridge.verify_transaction(TX_HASH, VerifyArgs())

    @pytest.mark.asyncio
    async def test_unknown_token(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(return_value=tx_result([swapout_log(token="fake.near")]))
        with pytest.raises(MissingTokenConfig):
            await bridge.verify_transaction(TX_HASH, VerifyArgs())

    @pytest.mark.asyncio
    async def test_no_destination_bridge(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(return_value=tx_result([swapout_log(to_chain_id="56")]))
        with pytest.raises(MissingTokenConfig):
            # no USDC configured on chain 56 either
            await bridge.verify_transaction(TX_HASH, VerifyArgs())

    @pytest.mark.asyncio
    async def test_destination_token_without_bridge(self, verify_rpc):
        config = RouterConfig(chains=(make_near_chain(),), tokens=make_tokens())
        bridge = make_router(config, rpc=verify_rpc).get_bridge_by_chain_id(NEAR_CHAIN_ID)
        with pytest.raises(NoBridgeForChainID):
            await bridge.verify_transaction(TX_HASH, VerifyArgs())

    @pytest.mark.asyncio
    async def test_zero_value(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(return_value=tx_result([swapout_log(amount="0")]))
        with pytest.raises(WrongValue):
            await bridge.verify_transaction(TX_HASH, VerifyArgs())

    @pytest.mark.asyncio
    async def test_wrong_bind_address(self, bridge, verify_rpc):
        verify_rpc.get_transaction = AsyncMock(return_value=tx_result([swapout_log(bind="alice.near")]))
        with pytest.raises(WrongBindAddress):
            await bridge.verify_transaction(TX_HASH, VerifyArgs())
