import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from hexbytes import HexBytes

from ..errors import SignatureCountError, SigningError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SignResult:
    """One signature returned by the signing service."""
    group_id: str
    signature: bytes


class MPCUtility:
    """Client for the threshold (MPC) signing service.

    The service never releases key material; it is given a public key
    identity and a message hash and answers with signature shares already
    combined per signer group.
    """

    MPC_SOCKET_PATH: str = "/run/mpc-signer.sock"
    SIGN_PATH: str = "/mpc/v1/sign"

    def __init__(self, url: str = '', timeout: float = 30.0, context: str = '') -> None:
        """Initialize MPC utility.

        Args:
            url: Optional URL for HTTP transport (defaults to socket)
            timeout: Request timeout in seconds
            context: Context tag sent with every sign request
        """
        self.url: str = url
        self.timeout: float = timeout
        self.context: str = context

    async def _mpc_post(self, path: str, payload: Any) -> Any:
        """Post request to the signing service.

        Args:
            path: API endpoint path
            payload: JSON payload to send

        Returns:
            JSON response from the service

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        transport: httpx.AsyncHTTPTransport | None = None

        if self.url and not self.url.startswith('http'):
            transport = httpx.AsyncHTTPTransport(uds=self.url)
            logger.debug(f"Using unix domain socket: {self.url}")
        elif not self.url:
            transport = httpx.AsyncHTTPTransport(uds=self.MPC_SOCKET_PATH)
            logger.debug(f"Using unix domain socket: {self.MPC_SOCKET_PATH}")

        async with httpx.AsyncClient(transport=transport) as client:
            base_url: str = self.url if self.url and self.url.startswith('http') else "http://localhost"
            full_url: str = base_url + path
            logger.debug(f"Posting to {full_url}: {json.dumps(payload)}")
            response: httpx.Response = await client.post(full_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

    async def sign(self, public_key: str, msg_hash: str, context: str | None = None) -> tuple[str, list[SignResult]]:
        """Request signatures over a message hash.

        Args:
            public_key: Public key identity of the signer group
            msg_hash: Hex-encoded hash to sign
            context: Context tag overriding the configured one

        Returns:
            Tuple of (key id, signatures)

        Raises:
            SigningError: If the request fails, the service reports an error
                or it answers malformed data
        """
        payload: dict[str, str] = {
            "pubkey": public_key,
            "msg_hash": msg_hash,
            "msg_context": self.context if context is None else context,
        }

        try:
            response: dict[str, Any] = await self._mpc_post(self.SIGN_PATH, payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"MPC sign request failed: {e}")
            raise SigningError(f"MPC sign request failed: {e}") from e

        match response:
            case {"error": error_msg} if error_msg:
                logger.error(f"MPC sign failed: {error_msg}")
                raise SigningError(f"MPC sign failed: {error_msg}")
            case {"key_id": str(key_id), "signatures": list(signatures)}:
                pass
            case _:
                logger.warning(f"Unknown MPC response format: {response}")
                raise SigningError("unknown MPC response format")

        results: list[SignResult] = []
        for item in signatures:
            try:
                results.append(SignResult(group_id=str(item["group_id"]), signature=bytes(HexBytes(item["signature"]))))
            except (KeyError, TypeError, ValueError) as e:
                raise SigningError(f"malformed signature entry: {e}") from e
        return key_id, results

    async def sign_one(self, public_key: str, msg_hash: str, context: str | None = None) -> tuple[str, bytes]:
        """Request exactly one signature.

        Raises:
            SignatureCountError: If the service returns zero or several signatures
        """
        key_id, results = await self.sign(public_key, msg_hash, context)
        if len(results) != 1:
            logger.warning(
                f"sign request requires one signature but got {len(results)}, keyID={key_id}"
            )
            raise SignatureCountError(
                f"sign request requires one signature but got {len(results)}"
            )
        logger.debug(f"Got signature from group {results[0].group_id}, keyID={key_id}")
        return key_id, results[0].signature
