from ...chain_ids import stub_chain_id
from .bridge import NearBridge, is_valid_account_id
from .rpc import NearRPCClient
from .transaction import PublicKey, RawTransaction, SignedTransaction

NEAR_MAINNET_CHAIN_ID = stub_chain_id("NEAR", "mainnet")
NEAR_TESTNET_CHAIN_ID = stub_chain_id("NEAR", "testnet")
NEAR_DEVNET_CHAIN_ID = stub_chain_id("NEAR", "devnet")

NEAR_CHAIN_IDS = frozenset({NEAR_MAINNET_CHAIN_ID, NEAR_TESTNET_CHAIN_ID, NEAR_DEVNET_CHAIN_ID})


def supports_chain_id(chain_id: int) -> bool:
    return chain_id in NEAR_CHAIN_IDS


__all__ = [
    "NEAR_CHAIN_IDS",
    "NEAR_DEVNET_CHAIN_ID",
    "NEAR_MAINNET_CHAIN_ID",
    "NEAR_TESTNET_CHAIN_ID",
    "NearBridge",
    "NearRPCClient",
    "PublicKey",
    "RawTransaction",
    "SignedTransaction",
    "is_valid_account_id",
    "supports_chain_id",
]
