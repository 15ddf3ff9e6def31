"""
Error types for the bridge router.

Every failure the lifecycle engine can surface is a ``BridgeError`` tagged
with an ``ErrorKind``. Callers branch on the kind (or on ``retryable``)
instead of parsing messages.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Broad error categories."""
    VALIDATION = "VALIDATION"
    CONFIGURATION = "CONFIGURATION"
    TRANSIENT = "TRANSIENT"
    TERMINAL = "TERMINAL"
    ENCODING = "ENCODING"
    REMOTE_SIGNING = "REMOTE_SIGNING"


class BridgeError(Exception):
    """Base class for all router errors."""

    kind: ErrorKind = ErrorKind.TERMINAL
    retryable: bool = False
    default_message: str = "bridge error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "kind": self.kind.value,
            "retryable": self.retryable,
        }


# Validation


class ValidationError(BridgeError):
    kind = ErrorKind.VALIDATION
    default_message = "invalid request"


class ToChainIDMismatch(ValidationError):
    default_message = "destination chain id mismatch"


class EmptySender(ValidationError):
    default_message = "forbid empty sender"


class ForbiddenInput(ValidationError):
    default_message = "forbid build raw swap tx with input data"


class SwapTypeNotSupported(ValidationError):
    default_message = "swap type not supported"


class InvalidReceiver(ValidationError):
    default_message = "swapout to invalid receiver"


class WrongRawTx(ValidationError):
    default_message = "wrong raw tx"


class WrongCountOfMsgHashes(ValidationError):
    default_message = "wrong count of msg hashes"


# Configuration


class ConfigurationError(BridgeError):
    kind = ErrorKind.CONFIGURATION
    default_message = "configuration error"


class SenderMismatch(ConfigurationError):
    default_message = "sender mismatch"


class MissingPublicKey(ConfigurationError):
    default_message = "missing mpc public key"


class MissingTokenConfig(ConfigurationError):
    default_message = "missing token config"


class NoBridgeForChainID(ConfigurationError):
    default_message = "no bridge for chain id"


class TokenDecimalsMismatch(ConfigurationError):
    default_message = "token decimals mismatch"


# Transient chain state


class TransientError(BridgeError):
    kind = ErrorKind.TRANSIENT
    retryable = True
    default_message = "transient chain state"


class RPCQueryError(TransientError):
    """An RPC call failed; carries the failing method and its key arguments."""

    def __init__(self, method: str, *args: Any, cause: BaseException | None = None) -> None:
        self.method = method
        self.args_ = args
        self.cause = cause
        parts = ", ".join(str(arg) for arg in args)
        message = f"rpc query error: {method}({parts})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class TxNotStable(TransientError):
    default_message = "tx not stable"


# Terminal on-chain


class TerminalError(BridgeError):
    kind = ErrorKind.TERMINAL
    default_message = "swap rejected"


class TxNotFound(TerminalError):
    default_message = "tx not found"


class TxNotValidated(TerminalError):
    default_message = "tx not validated"


class TxBeforeInitialHeight(TerminalError):
    default_message = "tx before initial block height"


class LogParseError(TerminalError):
    default_message = "tx logs is not LogSwapOut"


class WrongSender(TerminalError):
    default_message = "tx with wrong sender"


class WrongValue(TerminalError):
    default_message = "tx with wrong value"


class WrongBindAddress(TerminalError):
    default_message = "wrong bind address"


class MsgHashMismatch(TerminalError):
    default_message = "message hash mismatch"


# Encoding


class EncodingError(BridgeError):
    kind = ErrorKind.ENCODING
    default_message = "encoding error"


# Remote signing


class SigningError(BridgeError):
    kind = ErrorKind.REMOTE_SIGNING
    default_message = "remote signing failed"


class SignatureCountError(SigningError):
    default_message = "sign request requires exactly one signature"


class WrongSignatureLength(SigningError):
    default_message = "wrong signature length"
