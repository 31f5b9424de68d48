"""
In-memory cache of built Markov chains, one per set of user identifiers.
Chains are never mutated; refreshing means dropping the entry and rebuilding.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, FrozenSet, Iterable, List, Optional

from parrot.config import settings
from .markov import MarkovChain

logger = logging.getLogger(__name__)

ChainKey = FrozenSet[str]


def make_key(user_ids) -> ChainKey:
    if isinstance(user_ids, (int, str)):
        user_ids = [user_ids]
    return frozenset(str(u) for u in user_ids)


class ChainCache:
    """LRU cache of chains keyed by the frozen set of user ids."""

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.CHAIN_CACHE_SIZE
        self._chains: "OrderedDict[ChainKey, MarkovChain]" = OrderedDict()
        self._lock = threading.Lock()
        # Bumped by every invalidate(); builds that straddle a bump are not cached
        self._generation = 0

    def __len__(self) -> int:
        return len(self._chains)

    def __contains__(self, user_ids) -> bool:
        return make_key(user_ids) in self._chains

    def get_or_load(self, user_ids: Iterable, loader: Callable[[List[str]], MarkovChain]) -> MarkovChain:
        """
        Return the cached chain for these users, building it with loader on a miss.

        The build runs outside the lock. If two requests race, the first
        stored chain wins and the other is discarded. If the cache is
        invalidated while building, the result is returned but not stored.
        """
        key = make_key(user_ids)
        with self._lock:
            chain = self._chains.get(key)
            if chain is not None:
                self._chains.move_to_end(key)
                return chain
            generation = self._generation

        chain = loader(sorted(key))

        with self._lock:
            existing = self._chains.get(key)
            if existing is not None:
                return existing
            if self._generation != generation:
                logger.debug(f"[ChainCache] Invalidated during build, not caching {sorted(key)}")
                return chain
            self._chains[key] = chain
            while len(self._chains) > self.max_size:
                evicted, _ = self._chains.popitem(last=False)
                logger.debug(f"[ChainCache] Evicted {sorted(evicted)}")
        return chain

    def invalidate(self, user_id=None) -> int:
        """
        Drop cached chains. With user_id, only chains that include that user.

        Returns:
            Number of chains dropped
        """
        with self._lock:
            self._generation += 1
            if user_id is None:
                dropped = len(self._chains)
                self._chains.clear()
                return dropped
            uid = str(user_id)
            stale = [key for key in self._chains if uid in key]
            for key in stale:
                del self._chains[key]
            return len(stale)

    def keys(self) -> List[List[str]]:
        with self._lock:
            return [sorted(key) for key in self._chains]


_cache: Optional[ChainCache] = None


def get_chain_cache() -> ChainCache:
    """Get or create the process-wide chain cache."""
    global _cache
    if _cache is None:
        _cache = ChainCache()
    return _cache
