"""Shared fixtures for the bridge router tests."""

from unittest.mock import AsyncMock

import base58
import pytest

from bridge_router.bridges.near import NEAR_MAINNET_CHAIN_ID, PublicKey
from bridge_router.config import ChainConfig, RouterConfig, SequenceConfig, TokenConfig
from bridge_router.models import SwapBuildRequest, SwapType
from bridge_router.router import Router
from bridge_router.token_store import TokenConfigStore

NEAR_CHAIN_ID = NEAR_MAINNET_CHAIN_ID
EVM_CHAIN_ID = 1

MPC_ACCOUNT = "mpc.near"
MPC_PUBLIC_KEY = PublicKey(bytes(range(32)))
NEAR_ROUTER = "router.near"
NEAR_USDC = "usdc.near"
EVM_ROUTER = "0x1111111111111111111111111111111111111111"
EVM_USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"

BLOCK_HASH_BYTES = bytes([7] * 32)
BLOCK_HASH = base58.b58encode(BLOCK_HASH_BYTES).decode()


def make_near_chain(**overrides) -> ChainConfig:
    values = dict(
        chain_id=NEAR_CHAIN_ID,
        blockchain="near",
        router_contract=NEAR_ROUTER,
        gateways=("https://rpc.mainnet.near.org",),
        confirmations=5,
        initial_height=100,
        router_mpc=MPC_ACCOUNT,
        router_mpc_pubkey=str(MPC_PUBLIC_KEY),
    )
    values.update(overrides)
    return ChainConfig(**values)


def make_evm_chain(**overrides) -> ChainConfig:
    values = dict(
        chain_id=EVM_CHAIN_ID,
        blockchain="ethereum",
        router_contract=EVM_ROUTER,
        gateways=("https://eth.example.org",),
    )
    values.update(overrides)
    return ChainConfig(**values)


def make_tokens() -> tuple[TokenConfig, ...]:
    return (
        TokenConfig(
            chain_id=NEAR_CHAIN_ID,
            token_id="USDC",
            contract_address=NEAR_USDC,
            decimals=6,
            router_contract=NEAR_ROUTER,
        ),
        TokenConfig(
            chain_id=EVM_CHAIN_ID,
            token_id="USDC",
            contract_address=EVM_USDC,
            decimals=18,
            router_contract=EVM_ROUTER,
        ),
    )


def make_router(config: RouterConfig, rpc: AsyncMock | None = None, mpc: AsyncMock | None = None) -> Router:
    router = Router(
        config,
        TokenConfigStore.from_configs(config.chains, config.tokens),
        mpc=mpc or AsyncMock(),
    )
    router.init_bridges()
    router.bridges[NEAR_CHAIN_ID].rpc = rpc or make_near_rpc()
    return router


def make_near_rpc(latest_height: int = 1000, access_key_nonce: int = 41) -> AsyncMock:
    rpc = AsyncMock()
    rpc.get_latest_block = AsyncMock(
        return_value={"header": {"hash": BLOCK_HASH, "height": latest_height}}
    )
    rpc.view_access_key = AsyncMock(return_value={"nonce": access_key_nonce})
    return rpc


@pytest.fixture
def router_config():
    """Router configuration with one NEAR and one EVM chain."""
    return RouterConfig(
        chains=(make_near_chain(), make_evm_chain()),
        tokens=make_tokens(),
        sequence=SequenceConfig(retry_interval=0),
    )


@pytest.fixture
def near_rpc():
    return make_near_rpc()


@pytest.fixture
def mock_mpc():
    mpc = AsyncMock()
    mpc.sign_one = AsyncMock(return_value=("key-1", bytes([9] * 64)))
    return mpc


@pytest.fixture
def router(router_config, near_rpc, mock_mpc):
    return make_router(router_config, rpc=near_rpc, mpc=mock_mpc)


@pytest.fixture
def near_bridge(router):
    return router.get_bridge_by_chain_id(NEAR_CHAIN_ID)


@pytest.fixture
def build_request():
    """Swap of 1.5 USDC from Ethereum to alice.near."""
    return SwapBuildRequest(
        swap_id="0xabc123",
        log_index=2,
        swap_type=SwapType.ERC20_SWAP,
        from_chain_id=EVM_CHAIN_ID,
        to_chain_id=NEAR_CHAIN_ID,
        sender=MPC_ACCOUNT,
        token=EVM_USDC,
        token_id="USDC",
        bind="alice.near",
        origin_value=1_500_000_000_000_000_000,
    )
