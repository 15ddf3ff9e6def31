"""
Stub chain ids for chains without a native numeric chain id.

Such chains get an id derived from their name: the ASCII name read as a
big-endian integer, plus a per-network offset, folded into the reserved
range starting at ``STUB_CHAIN_ID_BASE``.
"""

STUB_CHAIN_ID_BASE = 1_000_000_000_000

NETWORK_OFFSETS: dict[str, int] = {
    "mainnet": 0,
    "testnet": 1,
    "devnet": 2,
}


def stub_chain_id(name: str, network: str) -> int:
    """
    Derive the stub chain id of a chain family on a network.

    >>> stub_chain_id("NEAR", "mainnet")
    1001313161554
    """
    if network not in NETWORK_OFFSETS:
        raise ValueError(f"Unknown network {network!r}, expected one of {sorted(NETWORK_OFFSETS)}")
    value = int.from_bytes(name.encode("ascii"), "big") + NETWORK_OFFSETS[network]
    return value % STUB_CHAIN_ID_BASE + STUB_CHAIN_ID_BASE


def is_stub_chain_id(chain_id: int) -> bool:
    return STUB_CHAIN_ID_BASE <= chain_id < 2 * STUB_CHAIN_ID_BASE
