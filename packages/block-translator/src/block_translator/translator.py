#!/usr/bin/env python3
"""Translator strategies for emitted block numbers.

An event's recorded ``block.number`` does not always name a block of the
chain the event was read from. A translator turns that emitted number into
the local QueryRange a log filter should scan.
"""

from typing import Protocol, runtime_checkable

from .models import ChainHead, QueryRange


@runtime_checkable
class BlockTranslator(Protocol):
    """Strategy mapping an emitted block number to a local query range."""

    async def number_to_query_range(
        self,
        emitted_number: int,
        timeout: float | None = None,
    ) -> QueryRange:
        """Return the inclusive local range to scan for ``emitted_number``."""


@runtime_checkable
class HeadAwareTranslator(Protocol):
    """Optional capability of translators that react to chain head changes."""

    def on_new_head(self, head: ChainHead) -> None:
        """Handle a new canonical head; must return quickly."""


def supports_head_notifications(translator: object) -> bool:
    """Check whether a translator wants head-change notifications.

    Args:
        translator: Any translator instance

    Returns:
        True if the translator implements ``on_new_head``
    """
    return isinstance(translator, HeadAwareTranslator)


def validate_emitted_number(emitted_number: int) -> int:
    """Reject values that cannot be a block number."""
    if isinstance(emitted_number, bool) or not isinstance(emitted_number, int):
        raise ValueError(f"Emitted block number must be an integer, got {emitted_number!r}")
    if emitted_number < 0:
        raise ValueError(f"Emitted block number must be non-negative, got {emitted_number}")
    return emitted_number


class L1BlockTranslator:
    """Identity translator for chains whose emitted number is a local height."""

    async def number_to_query_range(
        self,
        emitted_number: int,
        timeout: float | None = None,
    ) -> QueryRange:
        n = validate_emitted_number(emitted_number)
        return QueryRange(n, n)

    def __repr__(self) -> str:
        return "L1BlockTranslator()"
