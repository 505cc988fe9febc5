"""
Block translator package.

Maps block numbers emitted by contract events to the local block ranges a
log filter should scan, on L1 chains and settlement-layer rollups alike.
"""

from .arbitrum_translator import ArbitrumBlockTranslator
from .cache import TranslationCache
from .chain_client import ChainClient, Web3ChainClient
from .chain_type import ChainType
from .config import TranslatorConfig
from .errors import BlockTranslatorError, CacheInvariantError, ChainClientError
from .factory import new_block_translator
from .head_tracker import HeadTracker
from .models import CacheEntry, ChainHead, QueryRange
from .translator import (
    BlockTranslator,
    HeadAwareTranslator,
    L1BlockTranslator,
    supports_head_notifications,
)

__all__ = [
    "ArbitrumBlockTranslator",
    "BlockTranslator",
    "BlockTranslatorError",
    "CacheEntry",
    "CacheInvariantError",
    "ChainClient",
    "ChainClientError",
    "ChainHead",
    "ChainType",
    "HeadAwareTranslator",
    "HeadTracker",
    "L1BlockTranslator",
    "QueryRange",
    "TranslationCache",
    "TranslatorConfig",
    "Web3ChainClient",
    "new_block_translator",
    "supports_head_notifications",
]
__version__ = "0.1.0"
