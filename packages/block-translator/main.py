#!/usr/bin/env python3
"""Entry point for the block translator command-line tool.

Resolves block numbers emitted by contract events into the local block
ranges a log filter should scan, optionally following the chain head.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from block_translator.chain_client import Web3ChainClient
from block_translator.config import TranslatorConfig
from block_translator.errors import ChainClientError
from block_translator.factory import new_block_translator
from block_translator.head_tracker import HeadTracker
from block_translator.translator import BlockTranslator


async def translate_all(translator: BlockTranslator, numbers: list[int], timeout: float) -> None:
    """Resolve and print each emitted number."""
    for number in numbers:
        query_range = await translator.number_to_query_range(number, timeout=timeout)
        print(f"{number}: {query_range.from_block}-{query_range.to_block}")


async def watch(
    translator: BlockTranslator,
    tracker: HeadTracker,
    numbers: list[int],
    interval: float,
    timeout: float,
) -> None:
    """Follow the chain head and re-resolve the numbers until cancelled.

    RPC failures and timeouts are logged and retried on the next tick.
    """
    while True:
        try:
            await tracker.poll_once()
            await translate_all(translator, numbers, timeout=timeout)
        except (ChainClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error during watch, retrying in {interval} seconds: {e}")
        await asyncio.sleep(interval)


async def main() -> None:
    """Main entry point for the block translator.

    Parses arguments, loads configuration from environment, builds the
    translator for the configured chain type and resolves the requested
    numbers.

    Raises:
        SystemExit: On configuration or runtime errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Block Translator - map emitted block numbers to log query ranges",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RPC_URL              - JSON-RPC endpoint of the chain
  CHAIN_TYPE           - Chain type tag (e.g. arbitrum; default: unset)
  REQUEST_TIMEOUT      - Timeout per RPC call (default: 30)
  HEAD_POLL_INTERVAL   - Head polling interval for --watch (default: 2)
  CACHE_MAX_ENTRIES    - Translation cache capacity (default: 10000)
  LOG_LEVEL            - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "numbers",
        nargs="+",
        type=int,
        help="Emitted block numbers to translate"
    )
    parser.add_argument(
        "--chain-type",
        default=None,
        help="Override CHAIN_TYPE from the environment"
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        default=False,
        help="Keep following the chain head and re-resolve on every poll"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    client: Web3ChainClient | None = None
    try:
        config: TranslatorConfig = TranslatorConfig.from_env()
        if args.chain_type is not None:
            config = TranslatorConfig(
                rpc_url=config.rpc_url,
                chain_type=args.chain_type,
                request_timeout=config.request_timeout,
                head_poll_interval=config.head_poll_interval,
                cache_max_entries=config.cache_max_entries,
            )
        config.log_config()

        client = Web3ChainClient(config.rpc_url, request_timeout=config.request_timeout)
        translator = new_block_translator(
            config, client, logger, cache_max_entries=config.cache_max_entries
        )

        if not args.watch:
            await translate_all(translator, args.numbers, timeout=config.request_timeout * 4)
            return

        tracker = HeadTracker(client, interval=config.head_poll_interval)
        tracker.subscribe(translator)
        await watch(
            translator,
            tracker,
            args.numbers,
            interval=config.head_poll_interval,
            timeout=config.request_timeout * 4,
        )

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - RPC_URL: JSON-RPC endpoint of the chain")
        logger.error("  - CHAIN_TYPE: Chain type tag (default: unset)")
        sys.exit(1)

    except ChainClientError as e:
        logger.error(f"Chain unreachable: {e}")
        sys.exit(2)

    except asyncio.TimeoutError:
        logger.error("Translation timed out")
        sys.exit(2)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down gracefully...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)

    finally:
        if client is not None:
            await client.close()


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(main())
