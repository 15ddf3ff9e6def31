"""
NEAR transaction model and wire encoding.

Actions are a tagged union: one frozen dataclass per action kind, each
carrying its one-byte discriminant. ``encode_action`` dispatches on the
variant and ``RawTransaction.serialize`` produces the exact bytes NEAR
validators hash and verify.
"""

import hashlib
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

import base58

from ...errors import EncodingError
from ...utils.borsh_encoder import BLOCK_HASH_LENGTH, PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH, BorshEncoder


class KeyType(IntEnum):
    ED25519 = 0


class ActionKind(IntEnum):
    CREATE_ACCOUNT = 0
    DEPLOY_CONTRACT = 1
    FUNCTION_CALL = 2
    TRANSFER = 3
    STAKE = 4
    ADD_KEY = 5
    DELETE_KEY = 6
    DELETE_ACCOUNT = 7


@dataclass(frozen=True, slots=True)
class PublicKey:
    """An ed25519 public key in NEAR encoding."""

    data: bytes
    key_type: KeyType = KeyType.ED25519

    def __post_init__(self) -> None:
        if len(self.data) != PUBLIC_KEY_LENGTH:
            raise EncodingError(
                f"publickey length is not equal {PUBLIC_KEY_LENGTH}, length={len(self.data)}"
            )

    @classmethod
    def from_string(cls, value: str) -> "PublicKey":
        """
        Parse a public key from ``ed25519:<base58>`` or 64-character hex.

        Raises:
            EncodingError: If the key cannot be decoded
        """
        value = value.strip()
        if value.startswith("ed25519:"):
            try:
                raw = base58.b58decode(value.removeprefix("ed25519:"))
            except ValueError as e:
                raise EncodingError(f"invalid base58 public key: {e}") from e
            return cls(raw)
        hex_value = value.removeprefix("0x")
        if len(hex_value) != PUBLIC_KEY_LENGTH * 2:
            raise EncodingError(f"unsupported public key format: {value!r}")
        try:
            return cls(bytes.fromhex(hex_value))
        except ValueError as e:
            raise EncodingError(f"invalid hex public key: {e}") from e

    def __str__(self) -> str:
        return "ed25519:" + base58.b58encode(self.data).decode()

    @property
    def address(self) -> str:
        """Implicit account id owned by this key."""
        return self.data.hex()

    def serialize(self) -> bytes:
        return BorshEncoder.encode_public_key(int(self.key_type), self.data)


@dataclass(frozen=True, slots=True)
class Signature:
    data: bytes
    key_type: KeyType = KeyType.ED25519

    def __post_init__(self) -> None:
        if len(self.data) != SIGNATURE_LENGTH:
            raise EncodingError(
                f"signature length is not equal {SIGNATURE_LENGTH}, length={len(self.data)}"
            )

    def serialize(self) -> bytes:
        return BorshEncoder.encode_signature(int(self.key_type), self.data)


# Actions


@dataclass(frozen=True, slots=True)
class CreateAccount:
    KIND: ClassVar[ActionKind] = ActionKind.CREATE_ACCOUNT


@dataclass(frozen=True, slots=True)
class DeployContract:
    code: bytes
    KIND: ClassVar[ActionKind] = ActionKind.DEPLOY_CONTRACT


@dataclass(frozen=True, slots=True)
class FunctionCall:
    method_name: str
    args: bytes
    gas: int
    deposit: int = 0
    KIND: ClassVar[ActionKind] = ActionKind.FUNCTION_CALL


@dataclass(frozen=True, slots=True)
class Transfer:
    deposit: int
    KIND: ClassVar[ActionKind] = ActionKind.TRANSFER


@dataclass(frozen=True, slots=True)
class Stake:
    stake: int
    public_key: PublicKey
    KIND: ClassVar[ActionKind] = ActionKind.STAKE


@dataclass(frozen=True, slots=True)
class FunctionCallPermission:
    receiver_id: str
    method_names: tuple[str, ...] = ()
    allowance: int | None = None


@dataclass(frozen=True, slots=True)
class AccessKey:
    """Access key; ``permission`` of None means full access."""

    nonce: int = 0
    permission: FunctionCallPermission | None = None


@dataclass(frozen=True, slots=True)
class AddKey:
    public_key: PublicKey
    access_key: AccessKey = field(default_factory=AccessKey)
    KIND: ClassVar[ActionKind] = ActionKind.ADD_KEY


@dataclass(frozen=True, slots=True)
class DeleteKey:
    public_key: PublicKey
    KIND: ClassVar[ActionKind] = ActionKind.DELETE_KEY


@dataclass(frozen=True, slots=True)
class DeleteAccount:
    beneficiary_id: str
    KIND: ClassVar[ActionKind] = ActionKind.DELETE_ACCOUNT


Action = (
    CreateAccount
    | DeployContract
    | FunctionCall
    | Transfer
    | Stake
    | AddKey
    | DeleteKey
    | DeleteAccount
)


def _encode_access_key(access_key: AccessKey) -> bytes:
    data = BorshEncoder.encode_u64(access_key.nonce)
    match access_key.permission:
        case None:
            return data + BorshEncoder.encode_u8(1)
        case FunctionCallPermission(receiver_id, method_names, allowance):
            allowance_bytes = None if allowance is None else BorshEncoder.encode_u128(allowance)
            return (
                data
                + BorshEncoder.encode_u8(0)
                + BorshEncoder.encode_option(allowance_bytes)
                + BorshEncoder.encode_string(receiver_id)
                + BorshEncoder.encode_vec(BorshEncoder.encode_string(m) for m in method_names)
            )
    raise EncodingError(f"unknown access key permission: {access_key.permission!r}")


def encode_action(action: Action) -> bytes:
    """
    Encode an action as its discriminant byte followed by its fields.

    Raises:
        EncodingError: For unknown action types or malformed fields
    """
    match action:
        case CreateAccount():
            body = b""
        case DeployContract(code):
            body = BorshEncoder.encode_bytes(code)
        case FunctionCall(method_name, args, gas, deposit):
            body = (
                BorshEncoder.encode_string(method_name)
                + BorshEncoder.encode_bytes(args)
                + BorshEncoder.encode_u64(gas)
                + BorshEncoder.encode_u128(deposit)
            )
        case Transfer(deposit):
            body = BorshEncoder.encode_u128(deposit)
        case Stake(stake, public_key):
            body = BorshEncoder.encode_u128(stake) + public_key.serialize()
        case AddKey(public_key, access_key):
            body = public_key.serialize() + _encode_access_key(access_key)
        case DeleteKey(public_key):
            body = public_key.serialize()
        case DeleteAccount(beneficiary_id):
            body = BorshEncoder.encode_string(beneficiary_id)
        case _:
            raise EncodingError(f"unknown action type: {type(action).__name__}")
    return BorshEncoder.encode_u8(int(action.KIND)) + body


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """An unsigned NEAR transaction."""

    signer_id: str
    public_key: PublicKey
    receiver_id: str
    nonce: int
    block_hash: bytes
    actions: tuple[Action, ...]

    def serialize(self) -> bytes:
        return (
            BorshEncoder.encode_string(self.signer_id)
            + self.public_key.serialize()
            + BorshEncoder.encode_u64(self.nonce)
            + BorshEncoder.encode_string(self.receiver_id)
            + BorshEncoder.encode_block_hash(self.block_hash)
            + BorshEncoder.encode_vec(encode_action(action) for action in self.actions)
        )

    def hash(self) -> bytes:
        """sha256 digest of the serialized transaction; this is what gets signed."""
        return hashlib.sha256(self.serialize()).digest()

    @property
    def tx_hash(self) -> str:
        """Base58 transaction id, as reported by NEAR explorers and RPC."""
        return base58.b58encode(self.hash()).decode()


@dataclass(frozen=True, slots=True)
class SignedTransaction:
    transaction: RawTransaction
    signature: Signature

    def serialize(self) -> bytes:
        return self.transaction.serialize() + self.signature.serialize()

    @property
    def tx_hash(self) -> str:
        return self.transaction.tx_hash


def create_transaction(
    signer_id: str,
    public_key: PublicKey,
    receiver_id: str,
    nonce: int,
    block_hash: bytes,
    actions: list[Action] | tuple[Action, ...],
) -> RawTransaction:
    if len(block_hash) != BLOCK_HASH_LENGTH:
        raise EncodingError(f"blockhash length is not equal {BLOCK_HASH_LENGTH}, length={len(block_hash)}")
    return RawTransaction(
        signer_id=signer_id,
        public_key=public_key,
        receiver_id=receiver_id,
        nonce=nonce,
        block_hash=bytes(block_hash),
        actions=tuple(actions),
    )
