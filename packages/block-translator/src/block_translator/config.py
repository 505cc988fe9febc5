#!/usr/bin/env python3
"""Configuration management for the block translator.

This module provides a type-safe configuration dataclass with validation.
Configuration is loaded from environment variables with sensible defaults
where appropriate.
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .chain_type import ChainType

# Get logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TranslatorConfig:
    """Configuration for a chain's block translator.

    Attributes:
        rpc_url: HTTP(S) or WS(S) RPC endpoint of the chain
        chain_type: Chain-type tag selecting the translator strategy
        request_timeout: Timeout for a single RPC call in seconds
        head_poll_interval: Seconds between chain head polls
        cache_max_entries: Maximum cached translations per chain
    """

    rpc_url: str
    chain_type: str = ""
    request_timeout: int = 30
    head_poll_interval: int = 2
    cache_max_entries: int = 10_000

    def __post_init__(self) -> None:
        """Validate translator configuration."""
        if not self.rpc_url:
            raise ValueError("RPC URL is required (RPC_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https', 'ws', 'wss'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. "
                "Expected http, https, ws, or wss"
            )

        # Normalize the tag; unknown tags are kept and resolved by the factory
        normalized = self.chain_type.strip() if self.chain_type else ""
        if normalized != self.chain_type:
            object.__setattr__(self, 'chain_type', normalized)

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.head_poll_interval <= 0:
            raise ValueError(f"Head poll interval must be positive, got {self.head_poll_interval}")
        if self.head_poll_interval > 300:
            raise ValueError(f"Head poll interval too long (max 300s), got {self.head_poll_interval}")

        if self.cache_max_entries <= 0:
            raise ValueError(f"Cache size must be positive, got {self.cache_max_entries}")
        if self.cache_max_entries > 1_000_000:
            raise ValueError(f"Cache size too large (max 1000000), got {self.cache_max_entries}")

    @property
    def is_known_chain_type(self) -> bool:
        return ChainType.parse(self.chain_type) is not None

    @classmethod
    def from_env(cls) -> "TranslatorConfig":
        """Load configuration from environment variables.

        Returns:
            TranslatorConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        rpc_url = os.environ.get("RPC_URL", "")
        if not rpc_url:
            raise ValueError(
                "RPC_URL environment variable is required. "
                "This should be the JSON-RPC endpoint of the chain to translate for."
            )

        return cls(
            rpc_url=rpc_url,
            chain_type=os.environ.get("CHAIN_TYPE", ""),
            request_timeout=int(os.environ.get("REQUEST_TIMEOUT", "30")),
            head_poll_interval=int(os.environ.get("HEAD_POLL_INTERVAL", "2")),
            cache_max_entries=int(os.environ.get("CACHE_MAX_ENTRIES", "10000")),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Block Translator Configuration")
        logger.info("=" * 60)
        logger.info(f"  RPC URL: {self.rpc_url}")
        logger.info(f"  Chain Type: {self.chain_type or '(unset)'}")
        if not self.is_known_chain_type:
            logger.info("  (unknown chain type, L1 translation will be used)")
        logger.info(f"  Request Timeout: {self.request_timeout} seconds")
        logger.info(f"  Head Poll Interval: {self.head_poll_interval} seconds")
        logger.info(f"  Cache Max Entries: {self.cache_max_entries}")
        logger.info("=" * 60)
