"""
Conversational assistant for news, fact-checking and TNPSC preparation questions.
"""

import logging
from typing import Optional

from flashpress.ai.base import OpenAIService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are FlashPress News AI Assistant. You help users with:
- News summarization and analysis
- Fact-checking and verification
- TNPSC exam preparation guidance
- Current affairs discussions
Be helpful, accurate, and concise in your responses."""

FALLBACK_REPLY = "I'm sorry, I couldn't process your request."


class ChatAssistant(OpenAIService):

    async def reply(self, message: str, context: Optional[str] = None) -> str:
        user_message = f"Context: {context}\n\nUser Question: {message}" if context else message

        response = await self._complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_message},
            ],
            max_tokens=500,
        )
        return response or FALLBACK_REPLY
