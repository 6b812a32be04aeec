"""Cached quote lookups and parallel batch fan-out."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from .quote_cache import DEFAULT_QUOTE_TTL_SECONDS, TTLCache, quote_key
from .quotes import QuoteFetcher, QuoteRecord

logger = logging.getLogger(__name__)

EMPTY_SYMBOLS_MESSAGE = "symbols must be a non-empty array"


class EmptySymbolSetError(ValueError):
    """Raised when a batch request has no usable symbol list."""

    def __init__(self, message: str = EMPTY_SYMBOLS_MESSAGE):
        super().__init__(message)


@dataclass(frozen=True)
class ErrorDescriptor:
    """Per-symbol failure placed in a batch result."""
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error}


BatchResult = Dict[str, Union[QuoteRecord, ErrorDescriptor]]


def validate_symbols(symbols: Any) -> List[str]:
    """Return the de-duplicated symbol list, keeping first-seen order.

    Raises:
        EmptySymbolSetError: If `symbols` is not a non-empty list of non-empty strings.
    """
    if not isinstance(symbols, (list, tuple)) or not symbols:
        raise EmptySymbolSetError()
    if not all(isinstance(s, str) and s for s in symbols):
        raise EmptySymbolSetError()
    return list(dict.fromkeys(symbols))


class BatchOrchestrator:
    """Serves quotes through the cache and fans batches out concurrently."""

    def __init__(
        self,
        fetcher: QuoteFetcher,
        cache: TTLCache,
        ttl_seconds: float = DEFAULT_QUOTE_TTL_SECONDS,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def get_quote(self, symbol: str) -> QuoteRecord:
        """Return a cached quote for `symbol`, fetching it on a miss."""
        return await self.cache.get_or_fetch(
            quote_key(symbol),
            lambda: self.fetcher.fetch(symbol),
            self.ttl_seconds,
        )

    async def _settle(self, symbol: str) -> Union[QuoteRecord, ErrorDescriptor]:
        try:
            return await self.get_quote(symbol)
        except Exception as e:
            logger.error(f"Batch item error [{symbol}]: {e}")
            return ErrorDescriptor(error=str(e))

    async def fetch_batch(self, symbols: Any) -> BatchResult:
        """Fetch quotes for every symbol; one failure never affects the others.

        Args:
            symbols: List of symbols from the client

        Returns:
            Mapping of symbol to QuoteRecord or ErrorDescriptor, in request order

        Raises:
            EmptySymbolSetError: Before any fetch, if the list is missing or empty.
        """
        unique = validate_symbols(symbols)
        results = await asyncio.gather(*(self._settle(symbol) for symbol in unique))
        return dict(zip(unique, results))
