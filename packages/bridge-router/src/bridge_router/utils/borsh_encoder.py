"""
Canonical binary encoding utilities for the bridge router.

This module provides the Borsh-compatible primitive encoders used to build
the exact byte string a remote signer signs. The encoding is one-directional
(there is no decoder) and deterministic: equal values always encode to equal
bytes.
"""

import logging
from collections.abc import Iterable

from ..errors import EncodingError

logger = logging.getLogger(__name__)

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
BLOCK_HASH_LENGTH = 32

_U8_MAX = (1 << 8) - 1
_U32_MAX = (1 << 32) - 1
_U64_MAX = (1 << 64) - 1


class BorshEncoder:
    """Encoders for primitive and composite values."""

    @staticmethod
    def _check_range(value: int, maximum: int, name: str) -> None:
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodingError(f"{name} must be an integer, got {type(value).__name__}")
        if value < 0 or value > maximum:
            raise EncodingError(f"{name} out of range: {value}")

    @staticmethod
    def encode_u8(value: int) -> bytes:
        BorshEncoder._check_range(value, _U8_MAX, "u8")
        return value.to_bytes(1, "little")

    @staticmethod
    def encode_u32(value: int) -> bytes:
        BorshEncoder._check_range(value, _U32_MAX, "u32")
        return value.to_bytes(4, "little")

    @staticmethod
    def encode_u64(value: int) -> bytes:
        BorshEncoder._check_range(value, _U64_MAX, "u64")
        return value.to_bytes(8, "little")

    @staticmethod
    def encode_u128(value: int) -> bytes:
        """
        Encode an unsigned 128-bit integer.

        The minimal big-endian representation of the value is left-padded to
        16 bytes and then reversed, giving the little-endian form.

        Args:
            value: Non-negative integer below 2**128

        Returns:
            Exactly 16 bytes

        Raises:
            EncodingError: If the value is negative or needs more than 16 bytes
        """
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodingError(f"u128 must be an integer, got {type(value).__name__}")
        if value < 0:
            raise EncodingError(f"u128 cannot be negative: {value}")
        minimal = value.to_bytes((value.bit_length() + 7) // 8, "big")
        if len(minimal) > 16:
            raise EncodingError(f"u128 overflow: {len(minimal)} bytes needed")
        return minimal.rjust(16, b"\0")[::-1]

    @staticmethod
    def encode_string(value: str) -> bytes:
        """
        Encode a string as a u32 little-endian byte length followed by UTF-8.

        Raises:
            EncodingError: If the string is empty
        """
        if not isinstance(value, str):
            raise EncodingError(f"string expected, got {type(value).__name__}")
        if value == "":
            raise EncodingError("string is empty")
        raw = value.encode("utf-8")
        return BorshEncoder.encode_u32(len(raw)) + raw

    @staticmethod
    def encode_bytes(value: bytes) -> bytes:
        """Encode a variable-length byte vector (u32 length prefix)."""
        return BorshEncoder.encode_u32(len(value)) + bytes(value)

    @staticmethod
    def encode_fixed(value: bytes, length: int, name: str = "bytes") -> bytes:
        """
        Encode a fixed-size byte array verbatim.

        Raises:
            EncodingError: If ``value`` is not exactly ``length`` bytes
        """
        if len(value) != length:
            raise EncodingError(f"{name} length is not equal {length}, length={len(value)}")
        return bytes(value)

    @staticmethod
    def encode_public_key(key_type: int, data: bytes) -> bytes:
        return BorshEncoder.encode_u8(key_type) + BorshEncoder.encode_fixed(
            data, PUBLIC_KEY_LENGTH, "publickey"
        )

    @staticmethod
    def encode_signature(key_type: int, data: bytes) -> bytes:
        return BorshEncoder.encode_u8(key_type) + BorshEncoder.encode_fixed(
            data, SIGNATURE_LENGTH, "signature"
        )

    @staticmethod
    def encode_block_hash(data: bytes) -> bytes:
        return BorshEncoder.encode_fixed(data, BLOCK_HASH_LENGTH, "blockhash")

    @staticmethod
    def encode_option(value: bytes | None) -> bytes:
        """Encode an optional value already rendered to bytes."""
        if value is None:
            return b"\x00"
        return b"\x01" + value

    @staticmethod
    def encode_vec(items: Iterable[bytes]) -> bytes:
        """Encode a sequence of pre-encoded items with a u32 count prefix."""
        items = list(items)
        return BorshEncoder.encode_u32(len(items)) + b"".join(items)
