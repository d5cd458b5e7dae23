"""Alpha Vantage GLOBAL_QUOTE integration."""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from .quotes import QuoteError, QuoteRateLimited

logger = logging.getLogger(__name__)


class AlphaVantageQuoteProvider:
    """Last traded price from Alpha Vantage's GLOBAL_QUOTE endpoint."""

    name = "alphavantage"

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_key = settings.alpha_vantage_api_key if api_key is None else api_key
        self.client = client or httpx.AsyncClient(
            base_url=settings.alpha_vantage_base_url,
            timeout=settings.quote_timeout
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def fetch_price(self, symbol: str) -> float:
        """Fetch the latest price for a symbol.

        Raises QuoteRateLimited when the API answers with a throttling notice
        instead of a quote, and QuoteError for any other failure.
        """
        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key}
        try:
            response = await self.client.get("/query", params=params)
            response.raise_for_status()
            data: Dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise QuoteError(f"Alpha Vantage request failed for {symbol}: {e}") from e

        # Throttled responses carry a Note (older API) or Information message
        notice = data.get("Note") or data.get("Information")
        if notice:
            raise QuoteRateLimited(str(notice))

        if "Error Message" in data:
            raise QuoteError(f"Alpha Vantage error for {symbol}: {data['Error Message']}")

        raw = (data.get("Global Quote") or {}).get("05. price") or "0"
        try:
            price = float(raw)
        except (TypeError, ValueError):
            price = 0.0

        if price <= 0:
            raise QuoteError(f"Alpha Vantage returned no price for {symbol}")
        return price

    async def aclose(self) -> None:
        await self.client.aclose()
