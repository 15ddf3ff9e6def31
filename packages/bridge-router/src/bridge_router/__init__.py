"""
Bridge router package.

Builds, signs, submits and verifies cross-chain swap transactions.
"""

from .config import RouterConfig
from .errors import BridgeError, ErrorKind
from .models import SwapBuildRequest, SwapType, SwapVerificationResult, VerifyArgs
from .router import Router

__all__ = [
    "BridgeError",
    "ErrorKind",
    "Router",
    "RouterConfig",
    "SwapBuildRequest",
    "SwapType",
    "SwapVerificationResult",
    "VerifyArgs",
]
__version__ = "0.1.0"
