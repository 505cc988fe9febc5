"""Shared fixtures for block translator tests."""

import asyncio

import pytest

from block_translator.errors import ChainClientError
from block_translator.models import ChainHead


class FakeChainClient:
    """In-memory chain whose settlement heights come from a list.

    ``settlements[h]`` is the settlement height reported by local block ``h``;
    the head is the last index. Every call yields to the event loop so
    concurrent resolutions interleave.
    """

    def __init__(self, settlements: list[int], hashes: list[str] | None = None) -> None:
        self.settlements = list(settlements)
        self.hashes = list(hashes) if hashes is not None else [
            f"0x{h:064x}" for h in range(len(self.settlements))
        ]
        self.height_calls = 0
        self.settlement_calls = 0
        self.head_calls = 0
        self.fail_at: int | None = None
        self.fail_height_call = False
        self.delay = 0.0

    @property
    def calls(self) -> int:
        return self.height_calls + self.settlement_calls

    @property
    def head(self) -> int:
        return len(self.settlements) - 1

    async def _yield(self) -> None:
        await asyncio.sleep(self.delay)

    async def get_local_height(self) -> int:
        self.height_calls += 1
        await self._yield()
        if self.fail_height_call:
            raise ChainClientError("get_local_height", "connection refused")
        return self.head

    async def get_settlement_height(self, local_height: int) -> int:
        self.settlement_calls += 1
        await self._yield()
        if self.fail_at is not None and local_height == self.fail_at:
            raise ChainClientError("get_settlement_height", "connection reset", local_height)
        if not 0 <= local_height <= self.head:
            raise ChainClientError("get_settlement_height", "block not found", local_height)
        return self.settlements[local_height]

    async def get_head(self, number: int | None = None) -> ChainHead:
        self.head_calls += 1
        await self._yield()
        n = self.head if number is None else number
        return ChainHead(
            number=n,
            hash=self.hashes[n],
            parent_hash=self.hashes[n - 1] if n > 0 else None,
        )


def step_chain(head: int = 1000, width: int = 5) -> FakeChainClient:
    """Chain where ``settlement(local) = local // width``."""
    return FakeChainClient([h // width for h in range(head + 1)])


@pytest.fixture
def step_client() -> FakeChainClient:
    """Step-function chain with head 1000 and five local blocks per settlement height."""
    return step_chain()


@pytest.fixture
def make_client():
    """Factory building a fake chain from a list of settlement heights."""
    return FakeChainClient


@pytest.fixture
def make_step_client():
    """Factory building step-function chains."""
    return step_chain
