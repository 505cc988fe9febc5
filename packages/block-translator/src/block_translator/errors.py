"""Exceptions raised by the block translator."""


class BlockTranslatorError(Exception):
    """Base class for block translator errors."""


class ChainClientError(BlockTranslatorError):
    """A remote call to the chain failed.

    Attributes:
        method: Name of the client method that failed
        height: Local block height being queried, if any
    """

    def __init__(self, method: str, message: str, height: int | None = None) -> None:
        self.method = method
        self.height = height
        where = f" at height {height}" if height is not None else ""
        super().__init__(f"{method} failed{where}: {message}")


class CacheInvariantError(BlockTranslatorError):
    """Cached ranges are no longer ordered consistently with their emitted numbers."""
