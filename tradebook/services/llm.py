"""Generative-text service for short stock commentary."""

import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from ..config import settings

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response from AI model."


class AnalysisService:
    """Ask a chat model for a short-term trend comment on a symbol.

    The model's text is returned verbatim; nothing is parsed or validated.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncOpenAI(
            api_key=settings.gemini_api_key,
            base_url=settings.ai_base_url
        )
        self.model = model or settings.ai_model

    @staticmethod
    def build_prompt(symbol: str) -> str:
        return f"Analyze stock {symbol}. Predict short-term trend and explain briefly."

    def _get_generation_config(self) -> Dict[str, Any]:
        return {
            "max_tokens": 1024,
            "temperature": 0.7,
            "timeout": 60.0
        }

    async def analyze(self, symbol: str) -> str:
        """Return the model's commentary for a symbol."""
        logger.info(f"Calling {self.model} for {symbol} analysis")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": self.build_prompt(symbol)}],
            **self._get_generation_config()
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            logger.warning(f"Empty response from {self.model} for {symbol}")
            return NO_RESPONSE

        logger.debug(f"Raw response for {symbol}: {len(content)} chars")
        return content

    async def aclose(self) -> None:
        await self.client.close()


_analysis_service: Optional[AnalysisService] = None


def get_analysis_service() -> AnalysisService:
    global _analysis_service
    if _analysis_service is None:
        _analysis_service = AnalysisService()
    return _analysis_service


async def close_analysis_service() -> None:
    global _analysis_service
    if _analysis_service is not None:
        await _analysis_service.aclose()
        _analysis_service = None
