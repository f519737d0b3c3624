"""
Shared OpenAI-compatible client setup for the AI services.
"""

import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from flashpress.utils.config import get_openai_config

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Raised when the language model provider fails or returns unusable output."""


class OpenAIService:
    """
    Base class holding a lazily created AsyncOpenAI client.
    The client is built on first use so the app can start without a key.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or get_openai_config()
        self.model = self.config["model"]
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.config.get("api_key"):
                raise AIServiceError("AI provider API key is not configured")
            self._client = AsyncOpenAI(
                api_key=self.config["api_key"],
                base_url=self.config.get("base_url"),
                default_headers=self.config.get("default_headers"),
            )
        return self._client

    async def _complete(self, messages: List[Dict[str, str]], **kwargs) -> str:
        """
        Run a chat completion and return the first choice's text ("" if empty).

        Raises:
            AIServiceError: provider or network failure
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **kwargs
            )
        except OpenAIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise AIServiceError(str(e)) from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()
