from .base import Bridge
from .evm import EvmBridge
from .near import NearBridge

__all__ = ["Bridge", "EvmBridge", "NearBridge"]
