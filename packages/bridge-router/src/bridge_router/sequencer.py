"""
Per-sender sequence (nonce) bookkeeping.

The ``NonceManager`` owns two counter maps, each keyed by
(chain id, lowercase sender):

- parallel counters, handed out by ``allocate`` under a per-sender lock so
  concurrent builds for one sender never share a sequence;
- swap nonces, the next sequence after the last one submitted. They back
  the automatic in-memory strategy and the monotonic adjustment of stale
  RPC answers.

Unrelated senders never contend: each key has its own ``asyncio.Lock``.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

NonceKey = tuple[int, str]


class NonceManager:
    """Sequence counters shared by all bridges in the process."""

    def __init__(self) -> None:
        self._locks: dict[NonceKey, asyncio.Lock] = {}
        self._parallel: dict[NonceKey, int] = {}
        self._swap_nonces: dict[NonceKey, int] = {}

    @staticmethod
    def _key(chain_id: int, address: str) -> NonceKey:
        return (chain_id, address.lower())

    def _lock_for(self, key: NonceKey) -> asyncio.Lock:
        # setdefault is atomic on the event loop thread
        return self._locks.setdefault(key, asyncio.Lock())

    async def allocate(
        self,
        chain_id: int,
        address: str,
        fetch_start: Callable[[], Awaitable[int]],
    ) -> int:
        """
        Allocate the next sequence for a sender.

        The counter is seeded once from ``fetch_start`` (normally the chain's
        pending sequence); later allocations are purely in memory.

        Args:
            chain_id: Chain the sequence belongs to
            address: Sender address
            fetch_start: Coroutine factory returning the first usable sequence

        Returns:
            A sequence no other in-flight allocation for this sender received
        """
        key = self._key(chain_id, address)
        async with self._lock_for(key):
            if key not in self._parallel:
                start = await fetch_start()
                self._parallel[key] = max(start, self._swap_nonces.get(key, 0))
                logger.info(f"Seeded parallel nonce for {address} on chain {chain_id}: {self._parallel[key]}")
            nonce = self._parallel[key]
            self._parallel[key] = nonce + 1
            return nonce

    async def get_swap_nonce(
        self,
        chain_id: int,
        address: str,
        fetch_start: Callable[[], Awaitable[int]],
    ) -> int:
        """
        Current automatically increasing nonce for a sender.

        The value advances through ``set_nonce`` once a transaction using it
        is submitted. An unknown sender is seeded from ``fetch_start``.
        """
        key = self._key(chain_id, address)
        async with self._lock_for(key):
            if key not in self._swap_nonces:
                self._swap_nonces[key] = await fetch_start()
            return self._swap_nonces[key]

    def adjust_nonce(self, chain_id: int, address: str, nonce: int) -> int:
        """
        Guard against a stale RPC answer.

        Returns the larger of ``nonce`` and the next sequence this process
        already knows to be free.
        """
        known = self._swap_nonces.get(self._key(chain_id, address), 0)
        if known > nonce:
            logger.info(f"Adjust nonce for {address} on chain {chain_id}: rpc={nonce} local={known}")
            return known
        return nonce

    def set_nonce(self, chain_id: int, address: str, used_nonce: int) -> None:
        """Record that ``used_nonce`` was submitted; counters only move forward."""
        key = self._key(chain_id, address)
        next_nonce = used_nonce + 1
        if next_nonce > self._swap_nonces.get(key, 0):
            self._swap_nonces[key] = next_nonce

    def reset(self, chain_id: int, address: str) -> None:
        """Forget all counters of a sender so the next allocation re-seeds from the chain."""
        key = self._key(chain_id, address)
        self._parallel.pop(key, None)
        self._swap_nonces.pop(key, None)

    def get_stats(self) -> dict:
        return {
            'parallel_senders': len(self._parallel),
            'swap_nonce_senders': len(self._swap_nonces),
        }
