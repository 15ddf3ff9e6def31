"""
Default bridge for EVM chains.

The router only completes swaps on NEAR; EVM chains appear as swap
origins and as destinations whose receiver addresses must be validated,
so this bridge answers address, sequence and block queries and refuses to
build or verify transactions.
"""

import logging
from typing import TYPE_CHECKING, Any

from web3 import AsyncWeb3, Web3

from ..config import ChainConfig
from ..errors import RPCQueryError, SwapTypeNotSupported
from ..models import SwapBuildRequest, SwapVerificationResult, VerifyArgs
from .base import Bridge

if TYPE_CHECKING:
    from ..router import Router

logger = logging.getLogger(__name__)


class EvmBridge(Bridge):
    """Address validation and chain queries for EVM chains."""

    def __init__(self, chain_config: ChainConfig, router: "Router", w3: AsyncWeb3 | None = None) -> None:
        super().__init__(chain_config, router)
        self._w3 = w3

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            self._w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.chain_config.gateways[0]))
        return self._w3

    def is_valid_address(self, address: str) -> bool:
        return Web3.is_address(address)

    async def build_raw_transaction(self, request: SwapBuildRequest) -> Any:
        raise SwapTypeNotSupported(f"building swap-ins is not supported on EVM chain {self.chain_id}")

    async def sign_transaction(self, raw_tx: Any, public_key: str) -> tuple[Any, str]:
        raise SwapTypeNotSupported(f"signing is not supported on EVM chain {self.chain_id}")

    async def send_transaction(self, signed_tx: Any) -> str:
        raise SwapTypeNotSupported(f"sending is not supported on EVM chain {self.chain_id}")

    async def verify_transaction(self, tx_hash: str, args: VerifyArgs) -> SwapVerificationResult:
        raise SwapTypeNotSupported(f"verifying swap-outs is not supported on EVM chain {self.chain_id}")

    async def get_pool_nonce(self, address: str) -> int:
        try:
            return await self.w3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending")
        except Exception as e:
            raise RPCQueryError("eth_getTransactionCount", address, "pending", cause=e) from e

    async def get_tx_block_info(self, tx_hash: str) -> tuple[int, int]:
        try:
            receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
            block = await self.w3.eth.get_block(receipt["blockNumber"])
        except Exception as e:
            logger.debug(f"get tx block info failed for {tx_hash}: {e}")
            return 0, 0
        return int(block["number"]), int(block["timestamp"])
