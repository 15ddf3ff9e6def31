"""
Read-mostly store of token and MPC configuration.

Readers grab the current ``TokenSnapshot`` reference and work on it for the
whole build or verification; ``reload`` swaps in a new snapshot without
touching the one readers hold, so the read path takes no lock.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .config import ChainConfig, TokenConfig

logger = logging.getLogger(__name__)


def _norm(address: str) -> str:
    return address.strip().lower()


@dataclass(frozen=True)
class TokenSnapshot:
    """Immutable view of token configuration at one point in time."""

    tokens: Mapping[tuple[int, str], TokenConfig] = field(default_factory=dict)
    multichain_tokens: Mapping[tuple[str, int], str] = field(default_factory=dict)
    router_mpcs: Mapping[int, str] = field(default_factory=dict)
    mpc_public_keys: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        chains: Iterable[ChainConfig],
        tokens: Iterable[TokenConfig],
    ) -> "TokenSnapshot":
        token_map: dict[tuple[int, str], TokenConfig] = {}
        multichain: dict[tuple[str, int], str] = {}
        router_mpcs: dict[int, str] = {}
        pubkeys: dict[str, str] = {}

        for chain in chains:
            if chain.router_mpc:
                router_mpcs[chain.chain_id] = chain.router_mpc
                if chain.router_mpc_pubkey:
                    pubkeys[_norm(chain.router_mpc)] = chain.router_mpc_pubkey

        for token in tokens:
            key = (token.chain_id, _norm(token.contract_address))
            if key in token_map:
                raise ValueError(
                    f"Duplicate token config for {token.contract_address} on chain {token.chain_id}"
                )
            token_map[key] = token
            multichain[(token.token_id.lower(), token.chain_id)] = token.contract_address

        return cls(
            tokens=MappingProxyType(token_map),
            multichain_tokens=MappingProxyType(multichain),
            router_mpcs=MappingProxyType(router_mpcs),
            mpc_public_keys=MappingProxyType(pubkeys),
        )

    def get_token_config(self, chain_id: int, token_address: str) -> TokenConfig | None:
        return self.tokens.get((chain_id, _norm(token_address)))

    def get_multichain_token(self, token_id: str, chain_id: int) -> str | None:
        return self.multichain_tokens.get((token_id.lower(), chain_id))

    def get_router_mpc(self, token_id: str, chain_id: int) -> str | None:
        """MPC address for a token on a chain; a token-level override wins."""
        if (address := self.get_multichain_token(token_id, chain_id)) is not None:
            token = self.get_token_config(chain_id, address)
            if token is not None and token.router_mpc:
                return token.router_mpc
        return self.router_mpcs.get(chain_id)

    def get_mpc_public_key(self, address: str) -> str | None:
        return self.mpc_public_keys.get(_norm(address))


class TokenConfigStore:
    """Holds the current token snapshot; hot-reloadable."""

    def __init__(self, snapshot: TokenSnapshot | None = None) -> None:
        self._snapshot = snapshot or TokenSnapshot()

    @classmethod
    def from_configs(
        cls, chains: Iterable[ChainConfig], tokens: Iterable[TokenConfig]
    ) -> "TokenConfigStore":
        return cls(TokenSnapshot.build(chains, tokens))

    @property
    def snapshot(self) -> TokenSnapshot:
        return self._snapshot

    def reload(self, chains: Iterable[ChainConfig], tokens: Iterable[TokenConfig]) -> None:
        snapshot = TokenSnapshot.build(chains, tokens)
        self._snapshot = snapshot
        logger.info(f"Token config reloaded: {len(snapshot.tokens)} tokens")

    def get_token_config(self, chain_id: int, token_address: str) -> TokenConfig | None:
        return self._snapshot.get_token_config(chain_id, token_address)

    def get_multichain_token(self, token_id: str, chain_id: int) -> str | None:
        return self._snapshot.get_multichain_token(token_id, chain_id)

    def get_router_mpc(self, token_id: str, chain_id: int) -> str | None:
        return self._snapshot.get_router_mpc(token_id, chain_id)

    def get_mpc_public_key(self, address: str) -> str | None:
        return self._snapshot.get_mpc_public_key(address)
