"""
Fake news detection: scores the authenticity of a news text.
Known trusted outlets short-circuit; everything else is judged by the model.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flashpress.ai.base import AIServiceError, OpenAIService

logger = logging.getLogger(__name__)

TRUSTED_SOURCES = (
    "thanthi",
    "polimer",
    "suntv",
    "times of india",
    "the hindu",
    "indian express",
)

SYSTEM_PROMPT = (
    "You are an expert fact-checker and misinformation detection specialist. "
    "Analyze news content for authenticity."
)

ANALYSIS_TEMPLATE = """
Analyze the following news text for authenticity and potential misinformation. Consider factors like:
- Language patterns that suggest bias or sensationalism
- Factual consistency and logical flow
- Claims that seem extraordinary without evidence
- Writing style and professionalism

Respond with JSON in this format: {{ "isReal": boolean, "confidence": number (0-1), "explanation": string }}

Text to analyze: {text}
"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class AuthenticityReport:
    is_real: bool
    confidence: float
    explanation: str
    source_credibility: str  # high, medium, low


def source_credibility(source: Optional[str]) -> str:
    """'high' when the source names a trusted outlet, otherwise 'medium'."""
    if source and any(trusted in source.lower() for trusted in TRUSTED_SOURCES):
        return "high"
    return "medium"


def _clamp(value: Any, default: float = 0.5) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(0.0, min(1.0, number))


def _parse_verdict(raw: str) -> Dict[str, Any]:
    """
    Pull the JSON object out of the model reply. Reasoning models sometimes
    wrap it in prose or code fences.
    """
    match = _JSON_OBJECT.search(raw or "")
    if not match:
        raise AIServiceError("Model reply did not contain a JSON verdict")
    try:
        verdict = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AIServiceError(f"Malformed verdict JSON: {e}") from e
    if not isinstance(verdict, dict):
        raise AIServiceError("Verdict is not a JSON object")
    return verdict


class FakeNewsDetector(OpenAIService):
    """
    Scores news text for authenticity.
    """

    async def analyze(self, text: str, source: Optional[str] = None) -> AuthenticityReport:
        credibility = source_credibility(source)

        if credibility == "high":
            return AuthenticityReport(
                is_real=True,
                confidence=0.95,
                explanation="This news comes from a trusted and verified source.",
                source_credibility="high",
            )

        raw = await self._complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": ANALYSIS_TEMPLATE.format(text=text)},
            ],
            response_format={"type": "json_object"},
            temperature=0.1,
        )
        verdict = _parse_verdict(raw)

        return AuthenticityReport(
            is_real=bool(verdict.get("isReal", False)),
            confidence=_clamp(verdict.get("confidence", 0.5)),
            explanation=str(verdict.get("explanation") or "Analysis completed"),
            source_credibility=credibility,
        )
