#!/usr/bin/env python3
"""Search-based translator for Arbitrum-style rollups.

On these chains ``block.number`` inside a contract returns the L1 block
number, so an emitted number has to be mapped back to local block heights.
Think of the chain as a virtual array of settlement heights indexed by
local height, for example::

    [42, 42, 42, 42, 42, 155, 155, 155, 430, 430, 430, ...]

The array is non-decreasing, so the local blocks carrying one settlement
height form a contiguous run that two binary searches can find.
"""

import asyncio
import logging
import time
from typing import Any

from .cache import CacheLookup, TranslationCache, range_for_boundaries
from .chain_client import ChainClient
from .models import CacheEntry, ChainHead, QueryRange
from .translator import validate_emitted_number

# Get logger for this module
logger = logging.getLogger(__name__)


class _Resolution:
    """Probe bookkeeping for a single resolution."""

    def __init__(self, client: ChainClient, known: dict[int, int]) -> None:
        self.client = client
        self.known = known
        self.observed: dict[int, int] = {}
        self.remote_calls = 0

    async def settlement_height(self, local_height: int) -> int:
        if local_height in self.known:
            return self.known[local_height]
        self.remote_calls += 1
        settlement = await self.client.get_settlement_height(local_height)
        self.known[local_height] = settlement
        self.observed[local_height] = settlement
        return settlement

    async def first_height_where(self, head: int, at_or_past, floor: int = 0) -> int:
        """
        Binary search for the lowest local height in ``[floor, head]`` whose
        settlement height satisfies ``at_or_past``.

        Returns ``head + 1`` when no such height exists.
        """
        low = floor
        high = head + 1
        for height, settlement in self.known.items():
            if height > head:
                continue
            if at_or_past(settlement):
                high = min(high, height)
            else:
                low = max(low, height + 1)

        while low < high:
            mid = (low + high) // 2
            if at_or_past(await self.settlement_height(mid)):
                high = mid
            else:
                low = mid + 1
        return low


class ArbitrumBlockTranslator:
    """
    Translates L1-emitted block numbers into local ranges by binary search.

    Features:
    - Cached resolutions answered without remote calls
    - Neighbouring resolutions narrow new searches
    - Head notifications evict anything a reorganization could invalidate
    """

    def __init__(
        self,
        client: ChainClient,
        logger: logging.Logger | None = None,
        cache: TranslationCache | None = None,
        cache_max_entries: int = 10_000,
    ) -> None:
        """
        Initialize the ArbitrumBlockTranslator.

        Args:
            client: Chain client used for head and settlement-height lookups
            logger: Logger for diagnostics (module logger if omitted)
            cache: Cache instance to use (a new one if omitted)
            cache_max_entries: Capacity of a newly created cache
        """
        self.client = client
        self.logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.cache = cache or TranslationCache(max_entries=cache_max_entries, logger=self.logger)

        self.latest_head: ChainHead | None = None

        # Metrics tracking
        self.cache_hits = 0
        self.derived_hits = 0
        self.cache_misses = 0
        self.searches = 0
        self.remote_calls = 0
        self.evictions = 0

    def __repr__(self) -> str:
        return f"ArbitrumBlockTranslator(cached={len(self.cache)})"

    async def number_to_query_range(
        self,
        emitted_number: int,
        timeout: float | None = None,
    ) -> QueryRange:
        """
        Resolve an L1-emitted block number into a local query range.

        If the target lies beyond what the chain has produced so far, the
        widest safe range (last block below the target through the current
        head) is returned; this is a normal result, not an error.

        Args:
            emitted_number: Settlement-layer number recorded by the event
            timeout: Optional deadline in seconds for the whole resolution

        Returns:
            Inclusive local QueryRange

        Raises:
            ValueError: If emitted_number is negative
            ChainClientError: If a remote call fails; nothing is cached
            asyncio.TimeoutError: If ``timeout`` expires before resolution
        """
        target = validate_emitted_number(emitted_number)
        if timeout is None:
            return await self._resolve(target)
        return await asyncio.wait_for(self._resolve(target), timeout=timeout)

    def on_new_head(self, head: ChainHead) -> None:
        """
        Evict cached data that a new head could have invalidated.

        :param head: The new canonical chain head
        """
        self.latest_head = head
        height = head.invalidation_height
        evicted = self.cache.evict_from(height)
        if evicted:
            self.evictions += evicted
            self.logger.info(
                f"Evicted {evicted} cached translations at or above local block {height} "
                f"({'reorg' if head.is_reorg else 'new head'} {head})"
            )

    async def _resolve(self, target: int) -> QueryRange:
        lookup: CacheLookup = self.cache.lookup(target)
        if lookup.entry is not None:
            if lookup.derived:
                self.derived_hits += 1
                self.logger.debug(f"Derived {target} -> {lookup.entry.query_range} from neighbours")
            else:
                self.cache_hits += 1
                self.logger.debug(f"Cache hit {target} -> {lookup.entry.query_range}")
            return lookup.entry.query_range

        self.cache_misses += 1
        self.searches += 1
        mark = time.monotonic()

        resolution = _Resolution(self.client, dict(lookup.bounds))
        self.remote_calls += 1
        head = await self.client.get_local_height()

        try:
            start = await resolution.first_height_where(head, lambda s: s >= target)
            if start > head:
                # Every local block so far settles below the target
                query_range = QueryRange(head, head)
                self.cache.commit(None, resolution.observed, lookup.generation)
                self.logger.warning(
                    f"Settlement height {target} not reached by local head {head}; "
                    f"using widest safe range {query_range}"
                )
                return query_range

            boundary = await resolution.first_height_where(
                head, lambda s: s > target, floor=start
            )
        finally:
            self.remote_calls += resolution.remote_calls

        if boundary > head:
            # The head still carries the target, later blocks may too
            query_range = QueryRange(start, head)
            self.cache.commit(None, resolution.observed, lookup.generation)
        else:
            query_range = range_for_boundaries(start, boundary)
            entry = CacheEntry(
                emitted_number=target,
                query_range=query_range,
                resolved_at_height=head,
                start_height=start,
                boundary_height=boundary,
            )
            self.cache.commit(entry, resolution.observed, lookup.generation)

        self.logger.debug(
            f"Resolved {target} -> {query_range} in {time.monotonic() - mark:.3f}s "
            f"with {resolution.remote_calls + 1} lookups (head {head})"
        )
        return query_range

    def log_metrics(self) -> None:
        """Log current translation metrics."""
        self.logger.info(
            f"Translator metrics - Hits: {self.cache_hits}, "
            f"Derived: {self.derived_hits}, "
            f"Misses: {self.cache_misses}, "
            f"Remote calls: {self.remote_calls}, "
            f"Evicted: {self.evictions}, "
            f"Cached: {len(self.cache)}"
        )

    def get_status(self) -> dict[str, Any]:
        """
        Get current status of the translator.

        Returns:
            Dictionary with status information
        """
        return {
            "cache_hits": self.cache_hits,
            "derived_hits": self.derived_hits,
            "cache_misses": self.cache_misses,
            "searches": self.searches,
            "remote_calls": self.remote_calls,
            "evictions": self.evictions,
            "cached_entries": len(self.cache),
            "latest_head": self.latest_head.number if self.latest_head else None,
        }
