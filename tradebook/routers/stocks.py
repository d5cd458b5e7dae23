"""Per-symbol market commentary."""

import logging
from fastapi import APIRouter, Depends

from ..models import StockAnalysis
from ..services.llm import AnalysisService, get_analysis_service
from ..services.quotes import QuoteService, get_quote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stocks", tags=["stocks"])


@router.get("/analysis/{symbol}", response_model=StockAnalysis)
async def get_stock_analysis(
    symbol: str,
    quotes: QuoteService = Depends(get_quote_service),
    analysis: AnalysisService = Depends(get_analysis_service)
) -> StockAnalysis:
    """Current price and an AI-written short-term trend comment."""

    symbol = symbol.strip().upper()

    price = 0.0
    if quotes.enabled:
        price = await quotes.get_price(symbol) or 0.0

    text = await analysis.analyze(symbol)
    return StockAnalysis(symbol=symbol, price=price, analysis=text)
