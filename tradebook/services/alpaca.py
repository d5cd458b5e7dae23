"""Alpaca market data integration."""

import asyncio
from typing import Optional
from alpaca.data.historical import StockHistoricalDataClient
from alpaca.data.requests import StockLatestQuoteRequest
import logging

from ..config import settings
from .quotes import QuoteError

logger = logging.getLogger(__name__)


class AlpacaQuoteProvider:
    """Latest quote mid price from Alpaca's market data API."""

    name = "alpaca"

    def __init__(self, data_client: Optional[StockHistoricalDataClient] = None):
        self._data_client = data_client

    @property
    def data_client(self) -> StockHistoricalDataClient:
        """Alpaca data client, created on first use."""
        if self._data_client is None:
            self._data_client = StockHistoricalDataClient(
                api_key=settings.alpaca_api_key,
                secret_key=settings.alpaca_secret_key
            )
        return self._data_client

    @property
    def configured(self) -> bool:
        return self._data_client is not None or bool(
            settings.alpaca_api_key and settings.alpaca_secret_key
        )

    async def fetch_price(self, symbol: str) -> float:
        """Get the latest mid price for a symbol."""
        try:
            loop = asyncio.get_running_loop()
            request = StockLatestQuoteRequest(symbol_or_symbols=symbol)
            quotes = await loop.run_in_executor(
                None, self.data_client.get_stock_latest_quote, request
            )
        except Exception as e:
            raise QuoteError(f"Alpaca quote request failed for {symbol}: {e}") from e

        quote = quotes.get(symbol)
        if quote is None:
            raise QuoteError(f"Alpaca returned no quote for {symbol}")

        bid = float(quote.bid_price or 0)
        ask = float(quote.ask_price or 0)
        if bid > 0 and ask > 0:
            return (bid + ask) / 2
        # One-sided book: use whichever side is quoted
        price = max(bid, ask)
        if price <= 0:
            raise QuoteError(f"Alpaca returned an empty book for {symbol}")
        return price

    async def aclose(self) -> None:
        return None
