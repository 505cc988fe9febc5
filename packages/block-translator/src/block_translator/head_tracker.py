"""
Polling head tracker.

Follows the chain head over HTTP RPC, detects reorganizations by hash
linkage, and delivers each new canonical head to head-aware translators.
"""

import asyncio
import dataclasses
import logging
from collections import OrderedDict
from typing import Any

from .chain_client import ChainClient
from .models import ChainHead
from .translator import HeadAwareTranslator, supports_head_notifications


class HeadTracker:
    """
    Polls the chain head and notifies listeners of every new canonical head.

    A bounded window of recent ``number -> hash`` pairs is kept to find the
    fork height when the chain reorganizes.
    """

    def __init__(
        self,
        client: ChainClient,
        interval: float = 2,
        window: int = 128,
    ) -> None:
        """
        Initialize the head tracker.

        Args:
            client: Chain client used to fetch head headers
            interval: Polling interval in seconds
            window: Number of recent block hashes to remember
        """
        if window <= 0:
            raise ValueError(f"Window must be positive, got {window}")

        self.client = client
        self.interval = interval
        self.window = window

        self.listeners: list[HeadAwareTranslator] = []
        self.latest: ChainHead | None = None
        self.reorgs_detected = 0
        self.is_running = False

        self._recent: OrderedDict[int, str | None] = OrderedDict()

        # Setup logging
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def subscribe(self, listener: Any) -> bool:
        """
        Register a translator for head notifications.

        Args:
            listener: Any translator; only head-aware ones are registered

        Returns:
            True if the listener was registered
        """
        if not supports_head_notifications(listener):
            self.logger.debug(f"{listener!r} does not handle head notifications, skipping")
            return False
        if listener not in self.listeners:
            self.listeners.append(listener)
        return True

    def unsubscribe(self, listener: Any) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    async def poll_once(self) -> ChainHead | None:
        """
        Fetch the latest head and notify listeners if it changed.

        Returns:
            The delivered head, or None if the head did not change
        """
        head = await self.client.get_head()
        previous = self.latest
        if previous is not None and head.number == previous.number and head.hash == previous.hash:
            return None

        head = await self._link(head)
        if head.fork_height is not None:
            self.reorgs_detected += 1
            self.logger.warning(f"Chain reorganization detected from block {head.fork_height}: {head}")
        elif previous is not None and head.unverified_from is not None:
            self.logger.debug(
                f"Blocks {head.unverified_from}..{head.number - 1} were not seen; "
                f"treating them as unverified"
            )

        self._remember(head)
        self.latest = head
        self._notify(head)
        return head

    async def _link(self, head: ChainHead) -> ChainHead:
        """Attach the fork height, or the lowest unverified height, to a new head."""
        previous = self.latest
        if previous is None:
            # Nothing below the first head has been seen
            return dataclasses.replace(head, unverified_from=0)

        if head.number > previous.number:
            parent_number = head.number - 1
            if head.parent_hash is not None and parent_number in self._recent:
                if self._recent[parent_number] == head.parent_hash:
                    return head
                fork_height = await self._walk_back(parent_number - 1, parent_number)
                return dataclasses.replace(head, fork_height=fork_height)

            # Heads were skipped or the parent is unknown; only the previous head can be checked
            ancestor = await self.client.get_head(previous.number)
            if ancestor.hash == previous.hash:
                return dataclasses.replace(head, unverified_from=previous.number + 1)
            fork_height = await self._walk_back(previous.number - 1, previous.number)
            return dataclasses.replace(head, fork_height=fork_height)

        if self._recent.get(head.number) == head.hash:
            # Chain shortened back to a block we already know
            return dataclasses.replace(head, fork_height=head.number + 1)
        fork_height = await self._walk_back(head.number - 1, head.number)
        return dataclasses.replace(head, fork_height=fork_height)

    async def _walk_back(self, number: int, replaced: int) -> int:
        """Find the lowest replaced height by comparing remembered hashes."""
        while number >= 0 and number in self._recent:
            ancestor = await self.client.get_head(number)
            if ancestor.hash == self._recent[number]:
                return number + 1
            replaced = number
            number -= 1

        if number >= 0:
            self.logger.warning(
                f"Reorganization reaches beyond the {self.window} remembered blocks; "
                f"treating blocks from {replaced} as replaced"
            )
        return replaced

    def _remember(self, head: ChainHead) -> None:
        if head.fork_height is not None:
            for number in [n for n in self._recent if n >= head.fork_height]:
                del self._recent[number]
        self._recent[head.number] = head.hash
        while len(self._recent) > self.window:
            self._recent.popitem(last=False)

    def _notify(self, head: ChainHead) -> None:
        for listener in list(self.listeners):
            try:
                listener.on_new_head(head)
            except Exception as e:
                self.logger.error(f"Head listener {listener!r} failed for {head}: {e}", exc_info=True)

    async def start_polling(self) -> None:
        """Poll for new heads until stopped or cancelled."""
        if self.is_running:
            self.logger.warning("Head polling already running")
            return

        self.is_running = True
        self.logger.info(f"Starting head polling every {self.interval} seconds")

        while self.is_running:
            try:
                await self.poll_once()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                self.logger.info("Head polling cancelled")
                self.is_running = False
                raise
            except Exception as e:
                self.logger.error(f"Error polling chain head: {e}")
                await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        """Stop the polling loop."""
        self.logger.info("Stopping head polling")
        self.is_running = False

    def get_status(self) -> dict[str, Any]:
        """
        Get current status of the head tracker.

        Returns:
            Dictionary with status information
        """
        return {
            "is_running": self.is_running,
            "latest_head": self.latest.number if self.latest else None,
            "reorgs_detected": self.reorgs_detected,
            "listeners": len(self.listeners),
        }
