#!/usr/bin/env python3
"""Tests for chain types, translator dispatch and the identity translator."""

import logging
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from block_translator.arbitrum_translator import ArbitrumBlockTranslator
from block_translator.chain_type import ChainType
from block_translator.factory import TRANSLATORS, new_block_translator
from block_translator.models import ChainHead, QueryRange
from block_translator.translator import (
    BlockTranslator,
    L1BlockTranslator,
    supports_head_notifications,
)


@dataclass(frozen=True)
class StaticConfig:
    chain_type: str | ChainType | None


class TestChainType:
    """Tests for chain-type tag parsing."""

    def test_parse_known_tags(self):
        """Test that every member parses from its own value."""
        for member in ChainType:
            assert ChainType.parse(member.value) is member

    def test_parse_is_case_insensitive(self):
        assert ChainType.parse("Arbitrum") is ChainType.ARBITRUM
        assert ChainType.parse(" optimismbedrock ") is ChainType.OPTIMISM_BEDROCK

    def test_parse_unset(self):
        assert ChainType.parse("") is ChainType.UNSET
        assert ChainType.parse(None) is ChainType.UNSET

    def test_parse_unknown(self):
        assert ChainType.parse("dogechain") is None

    def test_str(self):
        assert str(ChainType.ZKSYNC) == "zksync"


class TestFactory:
    """Tests for new_block_translator."""

    def test_table_covers_every_chain_type(self):
        """Test that dispatch is exhaustive over the enum."""
        assert set(TRANSLATORS) == set(ChainType)

    def test_every_tag_gets_a_translator(self):
        """Test that every declared tag, including the empty one, yields a translator."""
        client = MagicMock()
        for member in ChainType:
            translator = new_block_translator(StaticConfig(member.value), client)
            assert translator is not None
            assert isinstance(translator, BlockTranslator)

    def test_arbitrum_gets_search_translator(self):
        client = MagicMock()

        translator = new_block_translator(StaticConfig("arbitrum"), client, cache_max_entries=5)

        assert isinstance(translator, ArbitrumBlockTranslator)
        assert translator.client is client
        assert translator.cache.max_entries == 5

    @pytest.mark.parametrize("tag", ["", "celo", "optimismBedrock", "zksync", ChainType.SCROLL, None])
    def test_simple_chains_get_identity_translator(self, tag):
        translator = new_block_translator(StaticConfig(tag), MagicMock())

        assert isinstance(translator, L1BlockTranslator)

    def test_unknown_tag_falls_back_with_warning(self, caplog):
        """Test that unknown tags fall back to the identity translator and log a warning."""
        with caplog.at_level(logging.WARNING):
            translator = new_block_translator(StaticConfig("moonchain"), MagicMock())

        assert isinstance(translator, L1BlockTranslator)
        assert "Unknown chain type 'moonchain'" in caplog.text

    def test_construction_does_no_io(self):
        """Test that building a translator never touches the client."""
        client = MagicMock()

        new_block_translator(StaticConfig("arbitrum"), client)

        assert client.method_calls == []

    def test_uses_given_logger(self):
        lggr = logging.getLogger("test.factory")

        translator = new_block_translator(StaticConfig("arbitrum"), MagicMock(), lggr)

        assert translator.logger is lggr


class TestL1BlockTranslator:
    """Tests for the identity translator."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [0, 1, 42, 19_000_000, 2**64 + 5])
    async def test_identity(self, n):
        """Test that every number maps to the single-block range (n, n)."""
        translator = L1BlockTranslator()

        assert await translator.number_to_query_range(n) == QueryRange(n, n)

    @pytest.mark.asyncio
    async def test_negative_rejected(self):
        with pytest.raises(ValueError):
            await L1BlockTranslator().number_to_query_range(-3)

    def test_no_head_capability(self):
        """Test that only the search translator takes head notifications."""
        assert supports_head_notifications(L1BlockTranslator()) is False
        assert supports_head_notifications(ArbitrumBlockTranslator(MagicMock())) is True


class TestModels:
    """Tests for the data model helpers."""

    def test_query_range_rejects_empty(self):
        with pytest.raises(ValueError, match="Empty query range"):
            QueryRange(10, 9)

    def test_query_range_rejects_negative(self):
        with pytest.raises(ValueError, match="non-negative"):
            QueryRange(-1, 4)

    def test_query_range_helpers(self):
        query_range = QueryRange(200, 204)

        assert query_range.span == 5
        assert query_range.contains(204)
        assert not query_range.contains(205)
        assert query_range.overlaps(QueryRange(204, 300))
        assert not query_range.overlaps(QueryRange(205, 300))
        assert query_range.to_filter_params() == {"fromBlock": "0xc8", "toBlock": "0xcc"}
        assert str(query_range) == "[200, 204]"

    def test_chain_head_invalidation_height(self):
        assert ChainHead(number=100).invalidation_height == 100
        assert ChainHead(number=100, fork_height=90).invalidation_height == 90
        assert ChainHead(number=100, fork_height=90).is_reorg
