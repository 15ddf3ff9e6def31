import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..config import ChainConfig, TokenConfig
from ..errors import RPCQueryError
from ..models import SwapBuildRequest, SwapVerificationResult, VerifyArgs

if TYPE_CHECKING:
    from ..router import Router

logger = logging.getLogger(__name__)


class Bridge(ABC):
    """Abstract base class for per-chain transaction lifecycle implementations"""

    def __init__(self, chain_config: ChainConfig, router: "Router") -> None:
        self.chain_config = chain_config
        self.router = router

    @property
    def chain_id(self) -> int:
        return self.chain_config.chain_id

    def get_token_config(self, token_address: str) -> TokenConfig | None:
        """Token configuration of a chain-local token address on this chain."""
        return self.router.token_store.get_token_config(self.chain_id, token_address)

    def get_router_contract(self, token_address: str) -> str:
        """Router/deposit contract handling a token, falling back to the chain's router."""
        token = self.get_token_config(token_address)
        if token is not None and token.router_contract:
            return token.router_contract
        return self.chain_config.router_contract

    @abstractmethod
    def is_valid_address(self, address: str) -> bool:
        """
        Check whether an address is chain-native valid.

        Args:
            address: Address to check

        Returns:
            True if the address can receive funds on this chain
        """
        pass

    @abstractmethod
    async def build_raw_transaction(self, request: SwapBuildRequest) -> Any:
        """
        Build the unsigned chain-native swap-in transaction for a request.

        Raises:
            BridgeError: If the request is invalid or configuration is missing
        """
        pass

    @abstractmethod
    async def sign_transaction(self, raw_tx: Any, public_key: str) -> tuple[Any, str]:
        """
        Sign a raw transaction through the threshold signing service.

        Returns:
            Tuple of (signed transaction, transaction id)
        """
        pass

    @abstractmethod
    async def send_transaction(self, signed_tx: Any) -> str:
        """Broadcast a signed transaction and return its transaction id."""
        pass

    @abstractmethod
    async def verify_transaction(self, tx_hash: str, args: VerifyArgs) -> SwapVerificationResult:
        """
        Re-derive and validate the swap carried by an origin transaction.

        Raises:
            BridgeError: With the rejection reason
        """
        pass

    @abstractmethod
    async def get_pool_nonce(self, address: str) -> int:
        """Next sequence the chain will accept from ``address``."""
        pass

    @abstractmethod
    async def get_tx_block_info(self, tx_hash: str) -> tuple[int, int]:
        """Block height and timestamp of a transaction, (0, 0) if unknown."""
        pass

    async def allocate_nonce(self, request: SwapBuildRequest) -> int:
        """Allocate a sequence from the process-wide parallel-safe counter."""
        return await self.router.nonces.allocate(
            self.chain_id, request.sender, lambda: self.get_pool_nonce(request.sender)
        )

    async def get_seq(self, request: SwapBuildRequest) -> int:
        """
        Resolve the sequence for a build request.

        Exactly one strategy applies: parallel allocation, the automatic
        in-memory counter, or the chain's pending sequence (with bounded
        retry) adjusted so it never goes below a sequence already used.

        Raises:
            RPCQueryError: If every pending-sequence query failed
        """
        sequence_config = self.router.config.sequence

        if sequence_config.parallel_swap:
            return await self.allocate_nonce(request)

        if sequence_config.is_auto_nonce_enabled(self.chain_id):
            return await self.router.nonces.get_swap_nonce(
                self.chain_id, request.sender, lambda: self.get_pool_nonce(request.sender)
            )

        last_error = RPCQueryError("GetPoolNonce", request.sender)
        for attempt in range(sequence_config.retry_count):
            try:
                nonce = await self.get_pool_nonce(request.sender)
            except RPCQueryError as e:
                last_error = e
                logger.warning(f"get pool nonce failed (attempt {attempt + 1}/{sequence_config.retry_count}): {e}")
                if attempt + 1 < sequence_config.retry_count:
                    await asyncio.sleep(sequence_config.retry_interval)
                continue
            return self.router.nonces.adjust_nonce(self.chain_id, request.sender, nonce)

        raise last_error

    def set_nonce(self, address: str, used_nonce: int) -> None:
        self.router.nonces.set_nonce(self.chain_id, address, used_nonce)
