"""Strategy factory selecting a block translator for a chain type."""

import logging
from collections.abc import Callable
from typing import Any, Protocol

from .arbitrum_translator import ArbitrumBlockTranslator
from .chain_client import ChainClient
from .chain_type import ChainType
from .translator import BlockTranslator, L1BlockTranslator

# Get logger for this module
logger = logging.getLogger(__name__)

TranslatorConstructor = Callable[..., BlockTranslator]


class ChainTypeSource(Protocol):
    """Read-only configuration accessor consulted at construction time."""

    @property
    def chain_type(self) -> "str | ChainType | None": ...


def _identity(client: ChainClient, lggr: logging.Logger, **_: Any) -> BlockTranslator:
    return L1BlockTranslator()


def _arbitrum(client: ChainClient, lggr: logging.Logger, **options: Any) -> BlockTranslator:
    return ArbitrumBlockTranslator(
        client,
        logger=lggr,
        cache_max_entries=options.get("cache_max_entries", 10_000),
    )


FALLBACK_TRANSLATOR: TranslatorConstructor = _identity

TRANSLATORS: dict[ChainType, TranslatorConstructor] = {
    ChainType.UNSET: _identity,
    ChainType.ARBITRUM: _arbitrum,
    ChainType.CELO: _identity,
    ChainType.GNOSIS: _identity,
    ChainType.KROMA: _identity,
    ChainType.METIS: _identity,
    ChainType.OPTIMISM_BEDROCK: _identity,
    ChainType.SEI: _identity,
    ChainType.SCROLL: _identity,
    ChainType.WEMIX: _identity,
    ChainType.XLAYER: _identity,
    ChainType.ZKEVM: _identity,
    ChainType.ZKSYNC: _identity,
    ChainType.ZIRCUIT: _identity,
}


def new_block_translator(
    config: ChainTypeSource,
    client: ChainClient,
    lggr: logging.Logger | None = None,
    **options: Any,
) -> BlockTranslator:
    """
    Return the block translator for the configured chain type.

    Unknown chain types fall back to the identity translator with a warning.
    No I/O happens here.

    Args:
        config: Object exposing the chain-type tag as ``chain_type``
        client: Chain client handed to search-based translators
        lggr: Logger handed to the translator (module logger if omitted)
        **options: Extra translator options such as ``cache_max_entries``

    Returns:
        A translator instance, never None
    """
    lggr = lggr or logger
    tag = config.chain_type
    chain_type = ChainType.parse(tag)

    if chain_type is None:
        lggr.warning(f"Unknown chain type {tag!r}, using L1 block translator")
        return FALLBACK_TRANSLATOR(client, lggr, **options)

    translator = TRANSLATORS[chain_type](client, lggr, **options)
    lggr.debug(f"Using {translator!r} for chain type {chain_type.value!r}")
    return translator
