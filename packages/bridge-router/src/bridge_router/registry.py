"""
Chain id to bridge implementation dispatch.

Selection order:

1. explicit chain id sets, for families addressed by small well-known ids;
2. predicates, for families whose ids come from reserved ranges (NEAR stub ids);
3. the default account-model (EVM) bridge for any other positive id.

A non-positive chain id can never be a valid deployment and stops startup.
"""

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from .bridges.base import Bridge
from .bridges.evm import EvmBridge
from .bridges.near import NearBridge, supports_chain_id as is_near_chain_id
from .config import ChainConfig
from .errors import NoBridgeForChainID

if TYPE_CHECKING:
    from .router import Router

logger = logging.getLogger(__name__)

BridgeFactory = Callable[[ChainConfig, "Router"], Bridge]

# Well-known EVM chains; other positive ids reach the default bridge only
# when unknown chain ids are allowed.
KNOWN_EVM_CHAIN_IDS = frozenset({
    1,         # Ethereum
    10,        # Optimism
    56,        # BNB Smart Chain
    97,        # BNB Smart Chain testnet
    100,       # Gnosis
    137,       # Polygon
    250,       # Fantom
    8453,      # Base
    23294,     # Sapphire
    23295,     # Sapphire testnet
    42161,     # Arbitrum One
    43114,     # Avalanche C-Chain
    11155111,  # Sepolia
})


class BridgeRegistry:
    """Registry of bridge factories keyed by chain id sets and predicates."""

    def __init__(
        self,
        default_factory: BridgeFactory = EvmBridge,
        known_default_chain_ids: Iterable[int] = KNOWN_EVM_CHAIN_IDS,
        allow_unknown_chain_ids: bool = True,
    ) -> None:
        self._by_id: dict[int, BridgeFactory] = {}
        self._predicates: list[tuple[Callable[[int], bool], BridgeFactory]] = []
        self.default_factory = default_factory
        self.known_default_chain_ids = frozenset(known_default_chain_ids)
        self.allow_unknown_chain_ids = allow_unknown_chain_ids

    def register_ids(self, chain_ids: Iterable[int], factory: BridgeFactory) -> None:
        for chain_id in chain_ids:
            self._by_id[chain_id] = factory

    def register_predicate(self, predicate: Callable[[int], bool], factory: BridgeFactory) -> None:
        self._predicates.append((predicate, factory))

    def select_factory(self, chain_id: int) -> BridgeFactory:
        """
        Pick the bridge factory responsible for a chain id.

        Raises:
            SystemExit: If the chain id is not positive
            NoBridgeForChainID: If the id is unknown and unknown ids are not allowed
        """
        if chain_id <= 0:
            logger.critical(f"wrong chainID {chain_id}")
            raise SystemExit(f"invalid chain id {chain_id}")

        if (factory := self._by_id.get(chain_id)) is not None:
            return factory

        for predicate, factory in self._predicates:
            if predicate(chain_id):
                return factory

        if chain_id not in self.known_default_chain_ids:
            if not self.allow_unknown_chain_ids:
                raise NoBridgeForChainID(f"unknown chain id {chain_id}")
            logger.warning(f"chain id {chain_id} is not a known chain, using the default bridge")
        return self.default_factory

    def new_bridge(self, chain_config: ChainConfig, router: "Router") -> Bridge:
        factory = self.select_factory(chain_config.chain_id)
        bridge = factory(chain_config, router)
        logger.info(f"new bridge {type(bridge).__name__} for chain {chain_config.chain_id}")
        return bridge


def default_registry(allow_unknown_chain_ids: bool = True) -> BridgeRegistry:
    registry = BridgeRegistry(allow_unknown_chain_ids=allow_unknown_chain_ids)
    registry.register_predicate(is_near_chain_id, NearBridge)
    return registry
