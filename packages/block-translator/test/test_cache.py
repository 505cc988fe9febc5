"""Unit tests for the TranslationCache class."""

import logging

import pytest

from block_translator.cache import TranslationCache, range_for_boundaries
from block_translator.errors import CacheInvariantError
from block_translator.models import CacheEntry, QueryRange


def make_entry(emitted: int, start: int, boundary: int, head: int = 1000) -> CacheEntry:
    return CacheEntry(
        emitted_number=emitted,
        query_range=range_for_boundaries(start, boundary),
        resolved_at_height=head,
        start_height=start,
        boundary_height=boundary,
    )


class TestRangeForBoundaries:
    """Tests for building ranges from search boundaries."""

    def test_run_of_blocks(self):
        assert range_for_boundaries(200, 205) == QueryRange(200, 204)

    def test_single_block_run(self):
        assert range_for_boundaries(7, 8) == QueryRange(7, 7)

    def test_skipped_settlement_height(self):
        """Test that equal boundaries give the block where the height is passed."""
        assert range_for_boundaries(3, 3) == QueryRange(3, 3)


class TestTranslationCache:
    """Test suite for TranslationCache."""

    def test_empty_lookup(self):
        """Test that an empty cache has no entry and no bounds."""
        cache = TranslationCache()

        lookup = cache.lookup(40)

        assert lookup.entry is None
        assert lookup.bounds == ()
        assert lookup.generation == 0

    def test_commit_and_exact_lookup(self):
        """Test that a committed entry is returned on lookup."""
        cache = TranslationCache()
        entry = make_entry(40, 200, 205)

        assert cache.commit(entry, {199: 39, 200: 40, 205: 41}, generation=0) is True

        lookup = cache.lookup(40)
        assert lookup.entry == entry
        assert lookup.derived is False
        assert cache.observation_count == 3

    def test_bounds_from_observations(self):
        """Test that lookups return the tightest observations around the target."""
        cache = TranslationCache()
        cache.commit(None, {100: 20, 150: 30, 199: 39, 210: 42, 400: 80}, generation=0)

        lookup = cache.lookup(41)

        assert (199, 39) in lookup.bounds
        assert (210, 42) in lookup.bounds
        assert (100, 20) not in lookup.bounds
        assert (400, 80) not in lookup.bounds

    def test_derives_range_between_neighbours(self):
        """Test derivation when the neighbours are exactly one height away."""
        cache = TranslationCache()
        cache.commit(make_entry(40, 200, 205), {}, generation=0)
        cache.commit(make_entry(42, 210, 215), {}, generation=0)

        lookup = cache.lookup(41)

        assert lookup.derived is True
        assert lookup.entry.query_range == QueryRange(205, 209)
        assert cache.get(41) is not None

    def test_no_derivation_for_wide_bracket(self):
        """Test that neighbours further apart only provide search bounds."""
        cache = TranslationCache()
        cache.commit(make_entry(40, 200, 205), {}, generation=0)
        cache.commit(make_entry(43, 215, 220), {}, generation=0)

        lookup = cache.lookup(41)

        assert lookup.entry is None

    def test_evict_from_height(self):
        """Test that eviction removes entries and observations at or above a height."""
        cache = TranslationCache()
        cache.commit(make_entry(10, 50, 55), {49: 9, 55: 11}, generation=0)
        cache.commit(make_entry(40, 200, 205), {199: 39, 205: 41}, generation=0)

        evicted = cache.evict_from(204)

        assert evicted == 1
        assert cache.get(10) is not None
        assert cache.get(40) is None
        assert cache.observation_count == 3
        assert cache.generation == 1

    def test_stale_commit_dropped(self):
        """Test that results depending on evicted heights are not stored."""
        cache = TranslationCache()
        generation = cache.lookup(40).generation
        cache.evict_from(150)

        stored = cache.commit(make_entry(40, 200, 205), {100: 20, 199: 39}, generation)

        assert stored is False
        assert cache.get(40) is None
        # Observations below the eviction height are still valid
        assert cache.observation_count == 1

    def test_commit_below_eviction_kept(self):
        """Test that results entirely below a concurrent eviction are stored."""
        cache = TranslationCache()
        generation = cache.lookup(10).generation
        cache.evict_from(500)

        assert cache.commit(make_entry(10, 50, 55), {}, generation) is True

    def test_forgotten_evictions_drop_commit(self):
        """Test that a snapshot older than the eviction log is treated as fully stale."""
        cache = TranslationCache()
        generation = cache.lookup(10).generation
        for height in range(300):
            cache.evict_from(10_000 + height)

        assert cache.commit(make_entry(10, 50, 55), {}, generation) is False

    def test_conflicting_entry_evicts_neighbour(self):
        """Test that an entry breaking monotonicity replaces the conflicting one."""
        cache = TranslationCache()
        cache.commit(make_entry(40, 200, 205), {}, generation=0)

        # 41 now starts inside 40's range, so 40 is no longer trustworthy
        cache.commit(make_entry(41, 203, 208), {}, generation=0)

        assert cache.get(40) is None
        assert cache.get(41) is not None
        cache.validate()

    def test_conflicts_logged_through_given_logger(self, caplog):
        """Test that conflict warnings use the logger the cache was built with."""
        cache = TranslationCache(logger=logging.getLogger("test.cache"))
        cache.commit(make_entry(40, 200, 205), {}, generation=0)

        with caplog.at_level(logging.WARNING, logger="test.cache"):
            cache.commit(make_entry(41, 203, 208), {}, generation=0)

        assert [r.name for r in caplog.records] == ["test.cache"]
        assert "Evicted 1 cached ranges" in caplog.text

    def test_conflicting_observation_replaced(self):
        """Test that a non-monotonic observation drops the older conflicting ones."""
        cache = TranslationCache()
        cache.commit(None, {100: 20, 200: 40, 300: 60}, generation=0)

        cache.commit(None, {150: 50}, generation=0)

        cache.validate()
        assert cache.observation_count == 3

    def test_capacity_drops_lowest_entries(self):
        """Test that the oldest emitted numbers are dropped over capacity."""
        cache = TranslationCache(max_entries=3)
        for i in range(5):
            cache.commit(make_entry(i * 10, i * 100, i * 100 + 5), {}, generation=0)

        assert len(cache) == 3
        assert [e.emitted_number for e in cache.entries()] == [20, 30, 40]

    def test_observation_capacity(self):
        cache = TranslationCache(max_observations=4)
        cache.commit(None, {h: h for h in range(10)}, generation=0)

        assert cache.observation_count == 4

    def test_validate_detects_overlap(self):
        """Test that validate reports overlapping ranges."""
        cache = TranslationCache()
        cache.commit(make_entry(40, 200, 205), {}, generation=0)
        cache._entries[41] = make_entry(41, 201, 209)
        cache._entry_keys.append(41)

        with pytest.raises(CacheInvariantError):
            cache.validate()

    def test_clear(self):
        cache = TranslationCache()
        cache.commit(make_entry(40, 200, 205), {200: 40}, generation=0)

        cache.clear()

        assert len(cache) == 0
        assert cache.observation_count == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError, match="max_entries must be positive"):
            TranslationCache(max_entries=0)
