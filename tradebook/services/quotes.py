"""Live price lookups with a time-based cache and graceful fallback."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..config import settings, QuoteProvider

logger = logging.getLogger(__name__)


class QuoteError(Exception):
    """A provider could not produce a usable price."""


class QuoteRateLimited(QuoteError):
    """The provider throttled the request."""


@dataclass
class CachedQuote:
    price: float
    fetched_at: float


class QuoteCache:
    """Last-write-wins price map keyed by symbol.

    Entries are never evicted; an expired entry is still handed out as the
    fallback when a refresh fails.
    """

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, CachedQuote] = {}

    def get_fresh(self, symbol: str) -> Optional[float]:
        entry = self._entries.get(symbol)
        if entry is not None and self.clock() - entry.fetched_at < self.ttl:
            return entry.price
        return None

    def get_stale(self, symbol: str) -> Optional[float]:
        entry = self._entries.get(symbol)
        return entry.price if entry is not None else None

    def put(self, symbol: str, price: float) -> None:
        self._entries[symbol] = CachedQuote(price=price, fetched_at=self.clock())


class QuoteService:
    """Resolve a recent market price for a symbol.

    A cached price younger than the TTL is served without calling the
    provider. On a miss the provider is asked once; if it is throttled,
    unconfigured or failing, the last cached price (however old) is returned,
    or None when there is none.
    """

    def __init__(self, provider, cache: Optional[QuoteCache] = None):
        self.provider = provider
        self.cache = cache or QuoteCache(ttl=settings.quote_cache_ttl)

    @property
    def enabled(self) -> bool:
        return self.provider.configured

    async def get_price(self, symbol: str) -> Optional[float]:
        symbol = symbol.strip().upper()

        cached = self.cache.get_fresh(symbol)
        if cached is not None:
            return cached

        if not self.enabled:
            return self.cache.get_stale(symbol)

        try:
            price = await self.provider.fetch_price(symbol)
        except QuoteRateLimited as e:
            logger.warning(f"{self.provider.name} rate limit hit for {symbol}: {e}")
            return self.cache.get_stale(symbol)
        except Exception as e:
            logger.warning(f"Error fetching price for {symbol}: {e}")
            return self.cache.get_stale(symbol)

        self.cache.put(symbol, price)
        return price

    async def display_price(self, symbol: str, fallback: float) -> float:
        """Price shown next to a position or holding.

        Falls back to the record's own average price and converts symbols
        quoted in a foreign currency.
        """
        ltp = await self.get_price(symbol) or fallback
        if symbol in settings.fx_converted_symbols:
            ltp *= settings.fx_rate
        return ltp

    async def aclose(self) -> None:
        await self.provider.aclose()


def create_quote_provider(provider: Optional[QuoteProvider] = None):
    """Build the provider named by QUOTE_PROVIDER."""
    provider = provider or settings.quote_provider

    if provider is QuoteProvider.ALPACA:
        from .alpaca import AlpacaQuoteProvider
        return AlpacaQuoteProvider()

    from .alphavantage import AlphaVantageQuoteProvider
    return AlphaVantageQuoteProvider()


_quote_service: Optional[QuoteService] = None


def get_quote_service() -> QuoteService:
    """Process-wide quote service; the cache lives as long as the process."""
    global _quote_service
    if _quote_service is None:
        _quote_service = QuoteService(create_quote_provider())
        logger.info(f"Quote provider: {_quote_service.provider.name}")
    return _quote_service


async def close_quote_service() -> None:
    global _quote_service
    if _quote_service is not None:
        await _quote_service.aclose()
        _quote_service = None
