#!/usr/bin/env python3
"""In-memory cache for settlement-to-local block translations.

The cache keeps two kinds of knowledge, both ordered and monotonic:

* resolved entries, keyed by emitted (settlement-layer) number;
* probe observations, mapping a local height to the settlement height
  that block reported.

Every read, write and eviction takes a single lock, and no method awaits,
so the lock is never held across a remote call.
"""

import logging
import threading
from bisect import bisect_left, bisect_right, insort
from collections import deque
from dataclasses import dataclass

from .errors import CacheInvariantError
from .models import CacheEntry, QueryRange

# Number of recent evictions remembered for stale-commit detection
EVICTION_LOG_SIZE = 256


def range_for_boundaries(start_height: int, boundary_height: int) -> QueryRange:
    """Build the query range between two search boundaries.

    Args:
        start_height: Lowest local height with settlement height >= target
        boundary_height: Lowest local height with settlement height > target

    Returns:
        ``[start, boundary - 1]`` when some block carries the target exactly,
        otherwise the single block ``[start, start]`` where the settlement
        height first passes the target
    """
    if boundary_height > start_height:
        return QueryRange(start_height, boundary_height - 1)
    return QueryRange(start_height, start_height)


@dataclass(frozen=True, slots=True)
class CacheLookup:
    """Result of a cache lookup for one emitted number.

    Attributes:
        generation: Cache generation the lookup was taken at
        entry: Resolved entry, exact or derived from its neighbours
        derived: Whether ``entry`` was derived without a remote call
        bounds: Tightest known (local height, settlement height) observations
            around the target, used to narrow a search
    """

    generation: int
    entry: CacheEntry | None = None
    derived: bool = False
    bounds: tuple[tuple[int, int], ...] = ()


class TranslationCache:
    """
    Reorg-aware cache shared by all resolutions of one translator.

    Uses sorted key lists with bisect for ordered neighbour lookups and a
    bounded deque of recent eviction heights so that a resolution started
    before an eviction cannot re-insert data derived from evicted blocks.
    """

    def __init__(
        self,
        max_entries: int = 10_000,
        max_observations: int = 50_000,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            max_entries: Maximum number of resolved entries to keep
            max_observations: Maximum number of probe observations to keep
            logger: Logger for conflict and eviction messages
        """
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        if max_observations <= 0:
            raise ValueError(f"max_observations must be positive, got {max_observations}")

        self.max_entries = max_entries
        self.max_observations = max_observations
        self.logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._lock = threading.Lock()

        self._entries: dict[int, CacheEntry] = {}
        self._entry_keys: list[int] = []

        # Parallel sorted lists; settlements are non-decreasing in height
        self._obs_heights: list[int] = []
        self._obs_settlements: list[int] = []

        self._generation = 0
        self._evictions: deque[tuple[int, int]] = deque(maxlen=EVICTION_LOG_SIZE)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def observation_count(self) -> int:
        with self._lock:
            return len(self._obs_heights)

    def get(self, emitted_number: int) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(emitted_number)

    def entries(self) -> list[CacheEntry]:
        """Return all resolved entries ordered by emitted number."""
        with self._lock:
            return [self._entries[k] for k in self._entry_keys]

    def lookup(self, target: int) -> CacheLookup:
        """
        Look up a target emitted number.

        Returns an exact entry if one exists. If the two neighbouring entries
        are ``target - 1`` and ``target + 1``, every local block between them
        carries ``target`` exactly, so the range is derived and stored without
        any remote call. Otherwise the tightest known observations are
        returned as search bounds.

        Args:
            target: Emitted settlement-layer number

        Returns:
            CacheLookup describing what the cache knows about ``target``
        """
        with self._lock:
            entry = self._entries.get(target)
            if entry is not None:
                return CacheLookup(generation=self._generation, entry=entry)

            derived = self._derive_locked(target)
            if derived is not None:
                self._insert_entry_locked(derived)
                return CacheLookup(generation=self._generation, entry=derived, derived=True)

            return CacheLookup(generation=self._generation, bounds=self._bounds_locked(target))

    def commit(
        self,
        entry: CacheEntry | None,
        observations: dict[int, int],
        generation: int,
    ) -> bool:
        """
        Store the results of a resolution that started at ``generation``.

        Anything depending on a local height evicted since then is dropped.

        Args:
            entry: Resolved entry to store, or None to store only observations
            observations: Probed local height -> settlement height
            generation: Generation returned by the lookup that began the resolution

        Returns:
            True if ``entry`` was stored
        """
        with self._lock:
            floor = self._eviction_floor_locked(generation)

            for height in sorted(observations):
                if floor is not None and height >= floor:
                    continue
                self._insert_observation_locked(height, observations[height])

            if entry is None:
                return False
            if floor is not None and entry.depends_on(floor):
                self.logger.debug(
                    f"Discarding stale resolution of {entry.emitted_number}: "
                    f"blocks from {floor} were evicted during the search"
                )
                return False

            self._insert_entry_locked(entry)
            return True

    def evict_from(self, local_height: int) -> int:
        """
        Evict everything that depends on local heights at or above ``local_height``.

        Args:
            local_height: Lowest local height that can no longer be trusted

        Returns:
            Number of resolved entries evicted
        """
        with self._lock:
            self._generation += 1
            self._evictions.append((self._generation, local_height))

            stale = [k for k in self._entry_keys if self._entries[k].depends_on(local_height)]
            for key in stale:
                self._remove_entry_locked(key)

            cut = bisect_left(self._obs_heights, local_height)
            del self._obs_heights[cut:]
            del self._obs_settlements[cut:]

            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._evictions.append((self._generation, 0))
            self._entries.clear()
            self._entry_keys.clear()
            self._obs_heights.clear()
            self._obs_settlements.clear()

    def validate(self) -> None:
        """
        Check the monotonic invariants of the cache.

        Raises:
            CacheInvariantError: If two entries or two observations are
                ordered inconsistently
        """
        with self._lock:
            for lower_key, upper_key in zip(self._entry_keys, self._entry_keys[1:]):
                lower = self._entries[lower_key].query_range
                upper = self._entries[upper_key].query_range
                if lower.to_block > upper.from_block:
                    raise CacheInvariantError(
                        f"Range {lower} of {lower_key} overlaps range {upper} of {upper_key}"
                    )
            for i in range(1, len(self._obs_heights)):
                if self._obs_settlements[i - 1] > self._obs_settlements[i]:
                    raise CacheInvariantError(
                        f"Settlement height decreases between local blocks "
                        f"{self._obs_heights[i - 1]} and {self._obs_heights[i]}"
                    )

    def _eviction_floor_locked(self, generation: int) -> int | None:
        if generation == self._generation:
            return None
        oldest_logged = self._evictions[0][0] if self._evictions else self._generation + 1
        if oldest_logged > generation + 1:
            # Evictions since the snapshot have been forgotten
            return 0
        return min(height for gen, height in self._evictions if gen > generation)

    def _derive_locked(self, target: int) -> CacheEntry | None:
        idx = bisect_left(self._entry_keys, target)
        if idx == 0 or idx == len(self._entry_keys):
            return None
        below = self._entries[self._entry_keys[idx - 1]]
        above = self._entries[self._entry_keys[idx]]
        if above.emitted_number - below.emitted_number != 2:
            return None

        start = below.boundary_height
        boundary = above.start_height
        if boundary < start:
            return None
        return CacheEntry(
            emitted_number=target,
            query_range=range_for_boundaries(start, boundary),
            resolved_at_height=max(below.resolved_at_height, above.resolved_at_height),
            start_height=start,
            boundary_height=boundary,
        )

    def _bounds_locked(self, target: int) -> tuple[tuple[int, int], ...]:
        heights, settlements = self._obs_heights, self._obs_settlements
        picks: set[int] = set()

        lt = bisect_left(settlements, target)  # first index with settlement >= target
        gt = bisect_right(settlements, target)  # first index with settlement > target
        for idx in (lt - 1, lt, gt - 1, gt):
            if 0 <= idx < len(heights):
                picks.add(idx)

        return tuple((heights[i], settlements[i]) for i in sorted(picks))

    def _insert_observation_locked(self, height: int, settlement: int) -> None:
        heights, settlements = self._obs_heights, self._obs_settlements

        idx = bisect_left(heights, height)
        if idx < len(heights) and heights[idx] == height:
            if settlements[idx] == settlement:
                return
            self.logger.warning(
                f"Local block {height} now reports settlement height {settlement} "
                f"(was {settlements[idx]}); replacing observation"
            )
            del heights[idx]
            del settlements[idx]

        conflicts = 0
        while idx > 0 and settlements[idx - 1] > settlement:
            idx -= 1
            del heights[idx]
            del settlements[idx]
            conflicts += 1
        while idx < len(heights) and settlements[idx] < settlement:
            del heights[idx]
            del settlements[idx]
            conflicts += 1
        if conflicts:
            self.logger.warning(
                f"Dropped {conflicts} observations inconsistent with local block "
                f"{height} at settlement height {settlement}"
            )

        heights.insert(idx, height)
        settlements.insert(idx, settlement)

        while len(heights) > self.max_observations:
            heights.pop(0)
            settlements.pop(0)

    def _insert_entry_locked(self, entry: CacheEntry) -> None:
        key = entry.emitted_number
        if key in self._entries:
            self._remove_entry_locked(key)

        # Existing entries are ordered, so conflicts sit next to the insertion point
        conflicts = 0
        idx = bisect_left(self._entry_keys, key)
        while idx > 0:
            left = self._entries[self._entry_keys[idx - 1]]
            if left.query_range.to_block <= entry.query_range.from_block:
                break
            self._remove_entry_locked(left.emitted_number)
            idx -= 1
            conflicts += 1
        while idx < len(self._entry_keys):
            right = self._entries[self._entry_keys[idx]]
            if right.query_range.from_block >= entry.query_range.to_block:
                break
            self._remove_entry_locked(right.emitted_number)
            conflicts += 1
        if conflicts:
            self.logger.warning(
                f"Evicted {conflicts} cached ranges inconsistent with "
                f"{key} -> {entry.query_range}"
            )

        insort(self._entry_keys, key)
        self._entries[key] = entry

        while len(self._entry_keys) > self.max_entries:
            self._remove_entry_locked(self._entry_keys[0])

    def _remove_entry_locked(self, key: int) -> None:
        del self._entries[key]
        idx = bisect_left(self._entry_keys, key)
        del self._entry_keys[idx]
