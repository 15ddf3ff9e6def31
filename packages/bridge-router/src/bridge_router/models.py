"""
Shared data models for the bridge router.

This module contains the request and result types passed between the
dispatcher, the per-chain bridges and the signing client.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SwapType(str, Enum):
    ERC20_SWAP = "ERC20_SWAP"
    NFT_SWAP = "NFT_SWAP"
    ANYCALL_SWAP = "ANYCALL_SWAP"


@dataclass(slots=True)
class ResolvedExtras:
    """Lazily resolved build fields.

    Each field starts as None and is filled at most once while a build runs;
    an already-resolved field is never re-fetched.

    Attributes:
        sequence: Account sequence (nonce) the transaction will use
        gas: Gas budget for the function call
        block_hash: Base58 hash of the reference block
    """
    sequence: int | None = None
    gas: int | None = None
    block_hash: str | None = None


@dataclass(frozen=True, slots=True)
class SwapBuildRequest:
    """An abstract swap-in to be built on the destination chain.

    Attributes:
        swap_id: Source transaction hash of the swap-out
        log_index: Log index of the swap-out inside that transaction
        swap_type: Kind of swap
        from_chain_id: Origin chain id
        to_chain_id: Destination chain id
        sender: Address that will sign on the destination chain (the MPC)
        token: Origin chain token address
        token_id: Canonical multichain token identifier
        bind: Receiver address on the destination chain
        origin_value: Amount in origin-chain smallest units
        origin_decimals: Origin token decimals as reported by the caller, if any
        for_native: Build the native-asset swap-in variant
        input: Raw call data; building with it is forbidden
        extras: Resolved extras, filled during the build
    """
    swap_id: str
    log_index: int
    swap_type: SwapType
    from_chain_id: int
    to_chain_id: int
    sender: str
    token: str
    token_id: str
    bind: str
    origin_value: int
    origin_decimals: int | None = None
    for_native: bool = False
    input: bytes | None = None
    extras: ResolvedExtras = field(default_factory=ResolvedExtras)

    @property
    def swap_key(self) -> str:
        return f"{self.swap_id}:{self.log_index}"


@dataclass(frozen=True, slots=True)
class VerifyArgs:
    swap_type: SwapType = SwapType.ERC20_SWAP
    log_index: int = 0
    allow_unstable: bool = False


@dataclass(frozen=True, slots=True)
class SwapVerificationResult:
    """Swap intent re-derived from a finalized origin transaction."""
    swap_type: SwapType
    tx_hash: str
    log_index: int
    from_chain_id: int
    to_chain_id: int
    token: str
    token_id: str
    sender: str
    receiver: str
    bind: str
    value: int
    height: int
    timestamp: int

    def __str__(self) -> str:
        return (
            f"SwapVerificationResult(tx={self.tx_hash[:10]}..., "
            f"{self.from_chain_id}->{self.to_chain_id}, "
            f"token={self.token_id}, value={self.value})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "swap_type": self.swap_type.value,
            "tx_hash": self.tx_hash,
            "log_index": self.log_index,
            "from_chain_id": str(self.from_chain_id),
            "to_chain_id": str(self.to_chain_id),
            "token": self.token,
            "token_id": self.token_id,
            "sender": self.sender,
            "receiver": self.receiver,
            "bind": self.bind,
            "value": str(self.value),
            "height": self.height,
            "timestamp": self.timestamp,
        }
