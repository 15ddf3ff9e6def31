"""
Router: owns the shared collaborators every bridge needs.

Bridges are created once at startup and then only read, so lookups take
no lock.
"""

import logging

from .bridges.base import Bridge
from .config import RouterConfig
from .registry import BridgeRegistry, default_registry
from .sequencer import NonceManager
from .token_store import TokenConfigStore
from .utils.mpc_utility import MPCUtility

logger = logging.getLogger(__name__)


class Router:
    """Process-wide bridge router."""

    def __init__(
        self,
        config: RouterConfig,
        token_store: TokenConfigStore,
        nonces: NonceManager | None = None,
        mpc: MPCUtility | None = None,
        registry: BridgeRegistry | None = None,
    ) -> None:
        self.config = config
        self.token_store = token_store
        self.nonces = nonces or NonceManager()
        self.mpc = mpc or MPCUtility(
            url=config.mpc.api_address,
            timeout=config.mpc.request_timeout,
            context=config.mpc.sign_context,
        )
        self.registry = registry or default_registry(config.allow_unknown_chain_ids)
        self.bridges: dict[int, Bridge] = {}

    @classmethod
    def from_config(cls, config: RouterConfig) -> "Router":
        """Build a router and its bridges from configuration."""
        router = cls(config, TokenConfigStore.from_configs(config.chains, config.tokens))
        router.init_bridges()
        return router

    def init_bridges(self) -> None:
        for chain in self.config.chains:
            self.bridges[chain.chain_id] = self.registry.new_bridge(chain, self)
        logger.info(f"Initialized {len(self.bridges)} bridges")

    def get_bridge_by_chain_id(self, chain_id: int) -> Bridge | None:
        return self.bridges.get(chain_id)
