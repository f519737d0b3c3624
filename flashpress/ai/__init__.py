"""Clients for the OpenAI-compatible chat completions API."""

from dataclasses import dataclass

from flashpress.ai.assistant import ChatAssistant
from flashpress.ai.base import AIServiceError
from flashpress.ai.fact_checker import FakeNewsDetector
from flashpress.ai.summarizer import TextSummarizer


@dataclass
class AIServices:
    summarizer: TextSummarizer
    fact_checker: FakeNewsDetector
    assistant: ChatAssistant


__all__ = [
    "AIServiceError",
    "AIServices",
    "ChatAssistant",
    "FakeNewsDetector",
    "TextSummarizer",
]
