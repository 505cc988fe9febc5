#!/usr/bin/env python3
"""Data models for the block translator.

This module provides immutable data classes for query ranges, chain heads
and cache entries used throughout the translation layer.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class QueryRange:
    """An inclusive range of local block numbers for a log filter query.

    Attributes:
        from_block: First local block to scan (inclusive)
        to_block: Last local block to scan (inclusive)
    """

    from_block: int
    to_block: int

    def __post_init__(self) -> None:
        """Validate range bounds."""
        if self.from_block < 0 or self.to_block < 0:
            raise ValueError(
                f"Block numbers must be non-negative, got "
                f"{self.from_block}-{self.to_block}"
            )
        if self.from_block > self.to_block:
            raise ValueError(
                f"Empty query range: from_block {self.from_block} "
                f"is above to_block {self.to_block}"
            )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"[{self.from_block}, {self.to_block}]"

    @property
    def span(self) -> int:
        """Number of blocks covered by the range."""
        return self.to_block - self.from_block + 1

    def contains(self, block_number: int) -> bool:
        return self.from_block <= block_number <= self.to_block

    def overlaps(self, other: "QueryRange") -> bool:
        return self.from_block <= other.to_block and other.from_block <= self.to_block

    def to_filter_params(self) -> dict[str, str]:
        """Convert to the ``fromBlock``/``toBlock`` pair of an eth_getLogs filter."""
        return {
            "fromBlock": hex(self.from_block),
            "toBlock": hex(self.to_block),
        }


@dataclass(frozen=True, slots=True)
class ChainHead:
    """A canonical chain head as observed by the head tracker.

    Attributes:
        number: Local block height of the head
        hash: Block hash (with 0x prefix), if known
        parent_hash: Parent block hash (with 0x prefix), if known
        fork_height: Lowest local height replaced by a reorganization,
            or None when the head simply extends the previous one
        unverified_from: Lowest local height the tracker could not check
            against a block it saw, or None when every block below the
            head was linked to a seen one
    """

    number: int
    hash: str | None = None
    parent_hash: str | None = None
    fork_height: int | None = None
    unverified_from: int | None = None

    def __str__(self) -> str:
        """Human-readable string representation."""
        short_hash = f"{self.hash[:10]}..." if self.hash else "?"
        if self.fork_height is not None:
            return f"ChainHead(number={self.number}, hash={short_hash}, fork={self.fork_height})"
        return f"ChainHead(number={self.number}, hash={short_hash})"

    @property
    def is_reorg(self) -> bool:
        return self.fork_height is not None

    @property
    def invalidation_height(self) -> int:
        """Lowest local height whose cached data can no longer be trusted."""
        bounds = [h for h in (self.fork_height, self.unverified_from) if h is not None]
        return min(bounds, default=self.number)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "number": self.number,
            "hash": self.hash,
            "parent_hash": self.parent_hash,
            "fork_height": self.fork_height,
            "unverified_from": self.unverified_from,
        }


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A resolved emitted block number.

    Attributes:
        emitted_number: The settlement-layer number taken from the event
        query_range: Local range resolved for it
        resolved_at_height: Local chain head at resolution time
        start_height: Lowest local height whose settlement height is
            at or above the emitted number
        boundary_height: Lowest local height whose settlement height is
            above the emitted number; the highest height the entry depends on
    """

    emitted_number: int
    query_range: QueryRange
    resolved_at_height: int
    start_height: int
    boundary_height: int

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"CacheEntry(emitted={self.emitted_number}, "
            f"range={self.query_range}, "
            f"resolved_at={self.resolved_at_height})"
        )

    def depends_on(self, local_height: int) -> bool:
        """Whether a change at or above ``local_height`` invalidates this entry."""
        return self.boundary_height >= local_height
