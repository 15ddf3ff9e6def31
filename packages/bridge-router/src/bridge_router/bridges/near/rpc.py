"""
NEAR JSON-RPC client.

Thin request/response wrappers over the NEAR RPC. Each call is tried
against the configured gateways in order; if all fail the last error is
wrapped in ``RPCQueryError`` naming the method and its key arguments.
"""

import logging
from typing import Any

import httpx

from ...errors import RPCQueryError

logger = logging.getLogger(__name__)


class NearRPCError(Exception):
    """Error object returned inside a JSON-RPC response."""

    def __init__(self, error: Any) -> None:
        self.error = error
        super().__init__(f"rpc error: {error}")

    @property
    def cause_name(self) -> str | None:
        """Structured cause, e.g. ``UNKNOWN_TRANSACTION``, if the gateway sent one."""
        if isinstance(self.error, dict) and isinstance(self.error.get("cause"), dict):
            return self.error["cause"].get("name")
        return None


UNKNOWN_TRANSACTION = "UNKNOWN_TRANSACTION"


def is_unknown_transaction(error: RPCQueryError) -> bool:
    """Whether a failed query means the chain does not know the transaction."""
    cause = error.cause
    return isinstance(cause, NearRPCError) and cause.cause_name == UNKNOWN_TRANSACTION


class NearRPCClient:
    """JSON-RPC client for a set of NEAR gateways."""

    def __init__(self, gateways: list[str] | tuple[str, ...], timeout: float = 30.0) -> None:
        """
        Initialize the client.

        Args:
            gateways: RPC endpoints, tried in order
            timeout: Per-request timeout in seconds
        """
        if not gateways:
            raise ValueError("NearRPCClient requires at least one gateway")
        self.gateways = list(gateways)
        self.timeout = timeout

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout)

    async def _call(self, method: str, params: Any, *wrap_args: Any) -> Any:
        payload = {"jsonrpc": "2.0", "id": "router", "method": method, "params": params}
        last_error: Exception | None = None

        async with self._create_client() as client:
            for gateway in self.gateways:
                try:
                    response = await client.post(gateway, json=payload)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("error"):
                        raise NearRPCError(data["error"])
                    result = data.get("result")
                    if isinstance(result, dict) and result.get("error"):
                        raise NearRPCError(result["error"])
                    return result
                except (httpx.HTTPError, NearRPCError, ValueError) as e:
                    logger.debug(f"{method} failed on {gateway}: {e}")
                    last_error = e

        raise RPCQueryError(method, *wrap_args, cause=last_error)

    async def get_transaction(self, tx_hash: str, sender_id: str) -> dict[str, Any]:
        """Fetch a transaction with all its receipt outcomes."""
        return await self._call("tx", [tx_hash, sender_id], tx_hash)

    async def get_latest_block(self) -> dict[str, Any]:
        return await self._call("block", {"finality": "final"})

    async def get_block_by_hash(self, block_hash: str) -> dict[str, Any]:
        return await self._call("block", {"block_id": block_hash}, block_hash)

    async def view_access_key(self, account_id: str, public_key: str) -> dict[str, Any]:
        """Query an access key; its ``nonce`` is the last sequence the key used."""
        return await self._call(
            "query",
            {
                "request_type": "view_access_key",
                "finality": "final",
                "account_id": account_id,
                "public_key": public_key,
            },
            account_id,
            public_key,
        )

    async def broadcast_tx_commit(self, signed_tx_base64: str) -> dict[str, Any]:
        """Broadcast a signed transaction and wait for it to be included."""
        return await self._call("broadcast_tx_commit", [signed_tx_base64], "signedTx")
