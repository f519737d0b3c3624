"""
AI-powered summarization of free text, web pages, PDFs and video transcripts.
"""

import logging

from flashpress.ai.base import OpenAIService

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_WORDS = 150
FALLBACK_SUMMARY = "Unable to generate summary"


class TextSummarizer(OpenAIService):
    """
    Summarizes arbitrary text with a word budget.
    """

    async def summarize(self, text: str, max_length: int = DEFAULT_SUMMARY_WORDS) -> str:
        """
        Summarize text in at most `max_length` words.

        Args:
            text: Source text (already extracted from URL/PDF/transcript)
            max_length: Word budget for the summary

        Returns:
            Summary text, or a fixed fallback when the model returns nothing
        """
        prompt = (
            f"Please summarize the following text in {max_length} words or less "
            f"while maintaining key points:\n\n{text}"
        )

        summary = await self._complete(
            [{"role": "user", "content": prompt}],
            max_tokens=max(max_length * 2, 200),
        )

        logger.debug(f"Generated summary of {len(summary.split())} words")
        return summary or FALLBACK_SUMMARY
