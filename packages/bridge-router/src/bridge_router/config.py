"""Configuration management for the bridge router.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from a JSON document named by ``ROUTER_CONFIG_FILE``
with a few environment overrides.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, ClassVar
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def parse_chain_id(value: Any) -> int:
    """Parse a chain id given as an int or a decimal string."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid chain id: {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip(), 10)
    except ValueError:
        raise ValueError(f"Invalid chain id: {value!r}") from None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for one chain served by the router.

    Attributes:
        chain_id: Chain identifier
        blockchain: Chain family name (e.g. 'near', 'ethereum')
        router_contract: Router/deposit contract on this chain
        confirmations: Blocks required on top of a swap-out before it is stable
        initial_height: First block height the router tracks
        gateways: RPC endpoints, tried in order
        router_mpc: MPC address controlling the router on this chain
        router_mpc_pubkey: Public key of ``router_mpc``
    """

    chain_id: int
    blockchain: str
    router_contract: str
    gateways: tuple[str, ...]
    confirmations: int = 0
    initial_height: int = 0
    router_mpc: str | None = None
    router_mpc_pubkey: str | None = None

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.blockchain:
            raise ValueError(f"Chain {self.chain_id}: blockchain name is required")

        if not self.router_contract:
            raise ValueError(f"Chain {self.chain_id}: router contract is required")

        if not self.gateways:
            raise ValueError(f"Chain {self.chain_id}: at least one gateway is required")

        for gateway in self.gateways:
            parsed = urlparse(gateway)
            if parsed.scheme not in ('http', 'https'):
                raise ValueError(
                    f"Chain {self.chain_id}: invalid gateway URL scheme: {parsed.scheme}. "
                    "Expected http or https"
                )

        if self.confirmations < 0:
            raise ValueError(f"Chain {self.chain_id}: confirmations must be non-negative, got {self.confirmations}")

        if self.initial_height < 0:
            raise ValueError(f"Chain {self.chain_id}: initial height must be non-negative, got {self.initial_height}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChainConfig":
        gateways = data.get("gateways", [])
        if isinstance(gateways, str):
            gateways = [gateways]
        return cls(
            chain_id=parse_chain_id(data["chain_id"]),
            blockchain=str(data.get("blockchain", "")).lower(),
            router_contract=data.get("router_contract", ""),
            gateways=tuple(gateways),
            confirmations=int(data.get("confirmations", 0)),
            initial_height=int(data.get("initial_height", 0)),
            router_mpc=data.get("router_mpc"),
            router_mpc_pubkey=data.get("router_mpc_pubkey"),
        )


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """Chain-local configuration of a multichain token.

    Attributes:
        chain_id: Chain the token lives on
        token_id: Canonical multichain token identifier (e.g. 'USDC')
        contract_address: Chain-local token contract/account
        decimals: Token decimal precision
        router_contract: Router/deposit contract handling this token
        router_mpc: MPC address overriding the chain's router MPC
    """

    chain_id: int
    token_id: str
    contract_address: str
    decimals: int
    router_contract: str
    router_mpc: str | None = None

    MAX_DECIMALS: ClassVar[int] = 255

    def __post_init__(self) -> None:
        if not self.token_id:
            raise ValueError(f"Token on chain {self.chain_id}: token id is required")
        if not self.contract_address:
            raise ValueError(f"Token {self.token_id} on chain {self.chain_id}: contract address is required")
        if not 0 <= self.decimals <= self.MAX_DECIMALS:
            raise ValueError(
                f"Token {self.token_id} on chain {self.chain_id}: decimals out of range, got {self.decimals}"
            )
        if not self.router_contract:
            raise ValueError(f"Token {self.token_id} on chain {self.chain_id}: router contract is required")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenConfig":
        return cls(
            chain_id=parse_chain_id(data["chain_id"]),
            token_id=data.get("token_id", ""),
            contract_address=data.get("contract_address", ""),
            decimals=int(data.get("decimals", -1)),
            router_contract=data.get("router_contract", ""),
            router_mpc=data.get("router_mpc"),
        )


@dataclass(frozen=True, slots=True)
class MPCConfig:
    """Configuration of the threshold signing service.

    Attributes:
        api_address: http(s) URL or Unix socket path; empty for the default socket
        request_timeout: HTTP request timeout in seconds
        sign_context: Optional context tag sent with each sign request
    """

    api_address: str = ""
    request_timeout: int = 30
    sign_context: str = ""

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ValueError(f"MPC request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 300:
            raise ValueError(f"MPC request timeout too long (max 300s), got {self.request_timeout}")


@dataclass(frozen=True, slots=True)
class SequenceConfig:
    """Sequence (nonce) allocation settings.

    Attributes:
        parallel_swap: Allocate sequences from the process-wide counter
        auto_nonce_chain_ids: Chains whose sequences increase automatically in memory
        retry_count: Attempts for the pending-sequence RPC query
        retry_interval: Seconds between those attempts
    """

    parallel_swap: bool = False
    auto_nonce_chain_ids: frozenset[int] = frozenset()
    retry_count: int = 3
    retry_interval: float = 1.0

    def __post_init__(self) -> None:
        if self.retry_count < 1:
            raise ValueError(f"Retry count must be at least 1, got {self.retry_count}")
        if self.retry_count > 10:
            raise ValueError(f"Retry count too high (max 10), got {self.retry_count}")
        if self.retry_interval < 0:
            raise ValueError(f"Retry interval must be non-negative, got {self.retry_interval}")

    def is_auto_nonce_enabled(self, chain_id: int) -> bool:
        return chain_id in self.auto_nonce_chain_ids


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Main configuration for the bridge router.

    Attributes:
        chains: Chains served by this router
        tokens: Token configurations across all chains
        mpc: Threshold signing service settings
        sequence: Sequence allocation settings
        test_mode: Skip the destination chain id check when building
        allow_unknown_chain_ids: Dispatch unrecognized positive chain ids to
            the default account-model bridge
    """

    chains: tuple[ChainConfig, ...] = ()
    tokens: tuple[TokenConfig, ...] = ()
    mpc: MPCConfig = field(default_factory=MPCConfig)
    sequence: SequenceConfig = field(default_factory=SequenceConfig)
    test_mode: bool = False
    allow_unknown_chain_ids: bool = True

    def __post_init__(self) -> None:
        seen: set[int] = set()
        for chain in self.chains:
            if chain.chain_id in seen:
                raise ValueError(f"Duplicate chain config for chain {chain.chain_id}")
            seen.add(chain.chain_id)

    def get_chain_config(self, chain_id: int) -> ChainConfig | None:
        for chain in self.chains:
            if chain.chain_id == chain_id:
                return chain
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RouterConfig":
        mpc_data = data.get("mpc", {})
        sequence_data = data.get("sequence", {})
        return cls(
            chains=tuple(ChainConfig.from_dict(c) for c in data.get("chains", [])),
            tokens=tuple(TokenConfig.from_dict(t) for t in data.get("tokens", [])),
            mpc=MPCConfig(
                api_address=mpc_data.get("api_address", ""),
                request_timeout=int(mpc_data.get("request_timeout", 30)),
                sign_context=mpc_data.get("sign_context", ""),
            ),
            sequence=SequenceConfig(
                parallel_swap=bool(sequence_data.get("parallel_swap", False)),
                auto_nonce_chain_ids=frozenset(
                    parse_chain_id(c) for c in sequence_data.get("auto_nonce_chain_ids", [])
                ),
                retry_count=int(sequence_data.get("retry_count", 3)),
                retry_interval=float(sequence_data.get("retry_interval", 1.0)),
            ),
            test_mode=bool(data.get("test_mode", False)),
            allow_unknown_chain_ids=bool(data.get("allow_unknown_chain_ids", True)),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "RouterConfig":
        """
        Load configuration from a JSON file.

        Raises:
            ValueError: If the file is missing, not JSON, or fails validation
        """
        config_path = Path(path)
        if not config_path.is_file():
            raise ValueError(f"Router config file not found: {config_path}")
        try:
            with config_path.open() as file:
                data = json.load(file)
        except json.JSONDecodeError as e:
            raise ValueError(f"Router config file {config_path} is not valid JSON: {e}") from None
        try:
            return cls.from_dict(data)
        except KeyError as e:
            raise ValueError(f"Router config file {config_path} is missing field {e}") from None

    @classmethod
    def from_env(cls) -> "RouterConfig":
        """
        Load configuration from ``ROUTER_CONFIG_FILE`` and environment overrides.

        Overrides:
            MPC_API_ADDRESS: signing service URL or socket path
            PARALLEL_SWAP: enable parallel-safe sequence allocation
            TEST_MODE: skip the destination chain id check

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        config_file = os.environ.get("ROUTER_CONFIG_FILE")
        if not config_file:
            raise ValueError(
                "ROUTER_CONFIG_FILE environment variable is required. "
                "This is the JSON file describing chains, tokens and the MPC service."
            )

        config = cls.from_file(config_file)

        if (mpc_address := os.environ.get("MPC_API_ADDRESS")) is not None:
            config = replace(config, mpc=replace(config.mpc, api_address=mpc_address))

        if (parallel := os.environ.get("PARALLEL_SWAP")) is not None:
            config = replace(
                config, sequence=replace(config.sequence, parallel_swap=_parse_bool(parallel))
            )

        if (test_mode := os.environ.get("TEST_MODE")) is not None:
            config = replace(config, test_mode=_parse_bool(test_mode))

        return config

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Bridge Router Configuration")
        logger.info("=" * 60)

        for chain in self.chains:
            logger.info(f"Chain {chain.chain_id} ({chain.blockchain}):")
            logger.info(f"  Router Contract: {chain.router_contract}")
            logger.info(f"  Gateways: {len(chain.gateways)}")
            logger.info(f"  Confirmations: {chain.confirmations}")
            logger.info(f"  Initial Height: {chain.initial_height}")
            logger.info(f"  Router MPC: {chain.router_mpc or '[NOT SET]'}")

        logger.info(f"Tokens: {len(self.tokens)} configured")

        logger.info("MPC Settings:")
        logger.info(f"  API Address: {'[SET]' if self.mpc.api_address else '[DEFAULT SOCKET]'}")
        logger.info(f"  Request Timeout: {self.mpc.request_timeout} seconds")

        logger.info("Sequence Settings:")
        logger.info(f"  Parallel Swap: {self.sequence.parallel_swap}")
        logger.info(f"  Auto Nonce Chains: {sorted(self.sequence.auto_nonce_chain_ids)}")
        logger.info(f"  RPC Retry: {self.sequence.retry_count} x {self.sequence.retry_interval}s")

        logger.info(f"Mode: {'TEST' if self.test_mode else 'PRODUCTION'}")
        logger.info("=" * 60)
