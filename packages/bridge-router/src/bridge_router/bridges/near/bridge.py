"""
NEAR bridge implementation.

Builds ``any_swap_in`` / ``swap_in_native`` function calls against the
router contract, resolves sequences through the shared nonce manager, signs
through the MPC service and broadcasts through the NEAR RPC.
"""

import base64
import json
import logging
import re
from typing import TYPE_CHECKING, Any

import base58

from ...amounts import check_swap_value, convert_decimals
from ...config import ChainConfig
from ...errors import (
    BridgeError,
    EmptySender,
    EncodingError,
    ForbiddenInput,
    InvalidReceiver,
    MissingPublicKey,
    MissingTokenConfig,
    MsgHashMismatch,
    NoBridgeForChainID,
    SenderMismatch,
    SwapTypeNotSupported,
    ToChainIDMismatch,
    TokenDecimalsMismatch,
    TxNotValidated,
    WrongCountOfMsgHashes,
    WrongRawTx,
    WrongSignatureLength,
    WrongValue,
)
from ...models import ResolvedExtras, SwapBuildRequest, SwapType, SwapVerificationResult, VerifyArgs
from ...utils.borsh_encoder import SIGNATURE_LENGTH
from ..base import Bridge
from .rpc import NearRPCClient
from .transaction import (
    Action,
    FunctionCall,
    PublicKey,
    RawTransaction,
    Signature,
    SignedTransaction,
    create_transaction,
)
from .verify import verify_swapout_tx

if TYPE_CHECKING:
    from ...router import Router

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 70_000_000_000_000
SWAPIN_METHOD = "any_swap_in"
SWAPIN_NATIVE_METHOD = "swap_in_native"

_ACCOUNT_ID_PATTERN = re.compile(r"^(([a-z\d]+[-_])*[a-z\d]+\.)*([a-z\d]+[-_])*[a-z\d]+$")
_MIN_ACCOUNT_ID_LEN = 2
_MAX_ACCOUNT_ID_LEN = 64


def is_valid_account_id(account_id: str) -> bool:
    """Check NEAR account id rules (named and implicit accounts)."""
    if not _MIN_ACCOUNT_ID_LEN <= len(account_id) <= _MAX_ACCOUNT_ID_LEN:
        return False
    return _ACCOUNT_ID_PATTERN.fullmatch(account_id) is not None


def decode_msg_hash(msg_hash: str) -> bytes | None:
    """
    Decode a message hash given as 0x-hex, bare 64-char hex or base58.

    Returns None if the value is none of these.
    """
    hex_part = msg_hash[2:] if msg_hash[:2] in ("0x", "0X") else msg_hash
    if msg_hash != hex_part or len(hex_part) == 64:
        try:
            return bytes.fromhex(hex_part)
        except ValueError:
            return None
    try:
        return base58.b58decode(msg_hash)
    except ValueError:
        return None


def build_swapin_args(swap_key: str, token: str, to: str, amount: str, from_chain_id: str) -> bytes:
    """JSON arguments shared by both swap-in methods."""
    call_args = {
        "tx": swap_key,
        "token": token,
        "to": to,
        "amount": amount,
        "from_chain_id": from_chain_id,
    }
    return json.dumps(call_args, separators=(",", ":")).encode()


def create_function_call(
    swap_key: str,
    method_name: str,
    token: str,
    to: str,
    amount: str,
    from_chain_id: str,
    gas: int,
) -> list[Action]:
    if method_name not in (SWAPIN_METHOD, SWAPIN_NATIVE_METHOD):
        raise ValueError(f"unknown swap-in method name: {method_name!r}")
    logger.info(
        f"createFunctionCall {method_name=} {swap_key=} {token=} {to=} {amount=} {from_chain_id=}"
    )
    args = build_swapin_args(swap_key, token, to, amount, from_chain_id)
    return [FunctionCall(method_name=method_name, args=args, gas=gas, deposit=0)]


class NearBridge(Bridge):
    """Transaction lifecycle for NEAR."""

    def __init__(self, chain_config: ChainConfig, router: "Router", rpc: NearRPCClient | None = None) -> None:
        super().__init__(chain_config, router)
        self.rpc = rpc or NearRPCClient(chain_config.gateways)

    def is_valid_address(self, address: str) -> bool:
        return is_valid_account_id(address)

    # Build

    async def build_raw_transaction(self, request: SwapBuildRequest) -> RawTransaction:
        """
        Build the unsigned swap-in transaction for a request.

        Args:
            request: Swap to complete on this chain

        Returns:
            RawTransaction calling the router contract

        Raises:
            BridgeError: Validation or configuration failures, see errors module
        """
        if not self.router.config.test_mode and request.to_chain_id != self.chain_id:
            raise ToChainIDMismatch(f"to chain id {request.to_chain_id} != bridge chain id {self.chain_id}")
        if request.input is not None:
            raise ForbiddenInput()
        if not request.sender:
            raise EmptySender()

        token_store = self.router.token_store
        router_mpc = token_store.get_router_mpc(request.token_id, self.chain_id)
        if not router_mpc:
            raise SenderMismatch(f"no router mpc configured for {request.token_id} on chain {self.chain_id}")
        if request.sender.lower() != router_mpc.lower():
            logger.error(f"build tx mpc mismatch have={request.sender} want={router_mpc}")
            raise SenderMismatch(f"sender {request.sender} is not the router mpc {router_mpc}")

        if request.swap_type != SwapType.ERC20_SWAP:
            raise SwapTypeNotSupported(f"swap type {request.swap_type.value} not supported")

        mpc_pubkey = token_store.get_mpc_public_key(request.sender)
        if not mpc_pubkey:
            raise MissingPublicKey(f"missing public key of {request.sender}")
        public_key = PublicKey.from_string(mpc_pubkey)

        multichain_token = token_store.get_multichain_token(request.token_id, request.to_chain_id)
        if not multichain_token:
            logger.warning(
                f"get multichain token failed tokenID={request.token_id} chainID={request.to_chain_id}"
            )
            raise MissingTokenConfig(f"no {request.token_id} token on chain {request.to_chain_id}")
        if self.get_token_config(multichain_token) is None:
            raise MissingTokenConfig(f"missing token config of {multichain_token}")

        receiver, amount = self.get_receiver_and_amount(request, multichain_token)
        extras = await self.init_extra(request)

        try:
            block_hash = base58.b58decode(extras.block_hash)
        except ValueError as e:
            raise EncodingError(f"invalid block hash {extras.block_hash!r}: {e}") from e

        method = SWAPIN_NATIVE_METHOD if request.for_native else SWAPIN_METHOD
        actions = create_function_call(
            request.swap_key,
            method,
            multichain_token,
            receiver,
            str(amount),
            str(request.from_chain_id),
            extras.gas,
        )
        router_contract = self.get_router_contract(multichain_token)
        return create_transaction(
            request.sender, public_key, router_contract, extras.sequence, block_hash, actions
        )

    def get_receiver_and_amount(self, request: SwapBuildRequest, multichain_token: str) -> tuple[str, int]:
        """
        Validate the receiver and rescale the swap value to this chain's decimals.

        Raises:
            InvalidReceiver, NoBridgeForChainID, MissingTokenConfig, WrongValue
        """
        receiver = request.bind
        if not self.is_valid_address(receiver):
            logger.warning(f"swapout to wrong receiver {receiver=}")
            raise InvalidReceiver(f"swapout to invalid receiver {receiver!r}")

        from_bridge = self.router.get_bridge_by_chain_id(request.from_chain_id)
        if from_bridge is None:
            raise NoBridgeForChainID(f"no bridge for chain {request.from_chain_id}")

        from_token = from_bridge.get_token_config(request.token)
        if from_token is None:
            logger.warning(f"get token config failed chainID={request.from_chain_id} token={request.token}")
            raise MissingTokenConfig(f"missing token config of {request.token} on chain {request.from_chain_id}")
        if request.origin_decimals is not None and request.origin_decimals != from_token.decimals:
            raise TokenDecimalsMismatch(
                f"request decimals {request.origin_decimals} != configured {from_token.decimals}"
            )

        to_token = self.get_token_config(multichain_token)
        if to_token is None:
            raise MissingTokenConfig(f"missing token config of {multichain_token}")

        if not check_swap_value(request.origin_value, from_token.decimals, to_token.decimals):
            raise WrongValue(f"cannot deliver value {request.origin_value}")
        amount = convert_decimals(request.origin_value, from_token.decimals, to_token.decimals)
        return receiver, amount

    async def init_extra(self, request: SwapBuildRequest) -> ResolvedExtras:
        """Resolve every missing extra once; resolved fields are left untouched."""
        extras = request.extras
        if extras.sequence is None:
            extras.sequence = await self.get_seq(request)
        if extras.gas is None:
            extras.gas = DEFAULT_GAS_LIMIT
        if extras.block_hash is None:
            extras.block_hash = await self.get_latest_block_hash()
        return extras

    # Chain queries

    async def get_latest_block_hash(self) -> str:
        block = await self.rpc.get_latest_block()
        return block["header"]["hash"]

    async def get_latest_block_number(self) -> int:
        block = await self.rpc.get_latest_block()
        return int(block["header"]["height"])

    async def get_block_header(self, block_hash: str) -> dict[str, Any]:
        block = await self.rpc.get_block_by_hash(block_hash)
        return block["header"]

    async def get_block_number_by_hash(self, block_hash: str) -> int:
        header = await self.get_block_header(block_hash)
        return int(header["height"])

    async def get_transaction(self, tx_hash: str) -> dict[str, Any]:
        return await self.rpc.get_transaction(tx_hash, self.chain_config.router_contract)

    async def get_account_nonce(self, account_id: str, public_key: str) -> int:
        """Next nonce of an access key (the chain stores the last used one)."""
        access_key = await self.rpc.view_access_key(account_id, public_key)
        return int(access_key["nonce"]) + 1

    # Nonce-setter half

    async def get_pool_nonce(self, address: str) -> int:
        mpc_pubkey = self.router.token_store.get_mpc_public_key(address)
        if not mpc_pubkey:
            raise MissingPublicKey(f"missing public key of {address}")
        return await self.get_account_nonce(address, str(PublicKey.from_string(mpc_pubkey)))

    async def get_tx_block_info(self, tx_hash: str) -> tuple[int, int]:
        try:
            tx = await self.get_transaction(tx_hash)
            header = await self.get_block_header(tx["transaction_outcome"]["block_hash"])
        except (BridgeError, KeyError, TypeError) as e:
            logger.debug(f"get tx block info failed for {tx_hash}: {e}")
            return 0, 0
        return int(header["height"]), int(header["timestamp"]) // 1_000_000_000

    # Sign and submit

    async def sign_transaction(self, raw_tx: Any, public_key: str) -> tuple[SignedTransaction, str]:
        """
        Sign a raw transaction through the MPC service.

        The sha256 digest of the encoded transaction is sent as hex; the
        returned transaction id is the base58 form of the same digest.

        Raises:
            WrongRawTx: If ``raw_tx`` is not a NEAR RawTransaction
            SignatureCountError: If the service does not return exactly one signature
            WrongSignatureLength: If the signature is not 64 bytes
        """
        if not isinstance(raw_tx, RawTransaction):
            raise WrongRawTx(f"expected RawTransaction, got {type(raw_tx).__name__}")

        digest = raw_tx.hash()
        key_id, signature = await self.router.mpc.sign_one(public_key, "0x" + digest.hex())

        if len(signature) != SIGNATURE_LENGTH:
            logger.error(
                f"wrong signature length keyID={key_id} have={len(signature)} want={SIGNATURE_LENGTH}"
            )
            raise WrongSignatureLength(f"signature has {len(signature)} bytes, want {SIGNATURE_LENGTH}")

        signed_tx = SignedTransaction(transaction=raw_tx, signature=Signature(signature))
        tx_hash = base58.b58encode(digest).decode()
        logger.info(f"MPC sign success keyID={key_id} txhash={tx_hash} nonce={raw_tx.nonce}")
        return signed_tx, tx_hash

    def verify_msg_hash(self, raw_tx: Any, msg_hashes: list[str]) -> None:
        """
        Check the hash a signer was asked to sign matches the transaction.

        The hash may be given as the 0x-hex digest sent to the signer or as
        the base58 transaction id; both are compared as raw bytes.

        Raises:
            WrongRawTx, WrongCountOfMsgHashes, MsgHashMismatch
        """
        if not isinstance(raw_tx, RawTransaction):
            raise WrongRawTx(f"expected RawTransaction, got {type(raw_tx).__name__}")
        if not msg_hashes:
            raise WrongCountOfMsgHashes()
        digest = raw_tx.hash()
        if decode_msg_hash(msg_hashes[0]) != digest:
            logger.info(f"message hash mismatch want={msg_hashes[0]} have={raw_tx.tx_hash}")
            raise MsgHashMismatch(f"want {msg_hashes[0]}, have 0x{digest.hex()} ({raw_tx.tx_hash})")

    async def send_transaction(self, signed_tx: Any) -> str:
        """
        Broadcast a signed transaction.

        The sequence is recorded as used as soon as the chain accepts the
        transaction, even if its execution then fails.

        Raises:
            WrongRawTx: If ``signed_tx`` is not a NEAR SignedTransaction
            TxNotValidated: If the transaction executed with a failure
        """
        if not isinstance(signed_tx, SignedTransaction):
            raise WrongRawTx(f"expected SignedTransaction, got {type(signed_tx).__name__}")

        encoded = base64.b64encode(signed_tx.serialize()).decode()
        result = await self.rpc.broadcast_tx_commit(encoded)

        tx = signed_tx.transaction
        self.set_nonce(tx.signer_id, tx.nonce)

        tx_hash = result.get("transaction", {}).get("hash") or signed_tx.tx_hash
        if isinstance(status := result.get("status"), dict) and "Failure" in status:
            logger.error(f"NEAR tx {tx_hash} failed: {status['Failure']}")
            raise TxNotValidated(f"tx {tx_hash} failed: {status['Failure']}")

        logger.info(f"NEAR tx sent: {tx_hash} nonce={tx.nonce}")
        return tx_hash

    # Verify

    async def verify_transaction(self, tx_hash: str, args: VerifyArgs) -> SwapVerificationResult:
        match args.swap_type:
            case SwapType.ERC20_SWAP:
                return await verify_swapout_tx(self, tx_hash, args.log_index, args.allow_unstable)
            case _:
                raise SwapTypeNotSupported(f"swap type {args.swap_type.value} not supported")
