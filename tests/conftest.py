"""
Shared fixtures: an in-memory app with the outbound collaborators replaced.
"""

import json
import os
from datetime import datetime, timezone

import pytest

# Settings are read at import time, so these must be set before flashpress is imported
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["NEWS_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

from fastapi.testclient import TestClient  # noqa: E402

from flashpress.ai import AIServices, ChatAssistant, FakeNewsDetector, TextSummarizer  # noqa: E402
from flashpress.scraper.api_connector import APIResponse, NewsArticle  # noqa: E402
from flashpress.scraper.extractor import ContentExtractionError, ContentExtractor  # noqa: E402

TEST_AI_CONFIG = {"api_key": "test-key", "base_url": None, "model": "test-model", "default_headers": {}}


def make_news_article(index: int, **overrides) -> NewsArticle:
    fields = dict(
        title=f"Headline {index}",
        url=f"https://news.example.com/story-{index}",
        source="Example Times",
        description=f"Description {index}",
        content=f"Content {index}",
        image_url=None,
        published_at=datetime(2024, 1, index, 8, 0, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return NewsArticle(**fields)


class CannedCompletionMixin:
    """Replaces the chat completion call with a fixed reply and records prompts."""

    canned_reply = ""

    def __init__(self, reply=None):
        super().__init__(config=TEST_AI_CONFIG)
        if reply is not None:
            self.canned_reply = reply
        self.calls = []

    async def _complete(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        return self.canned_reply


class FakeSummarizer(CannedCompletionMixin, TextSummarizer):
    canned_reply = "A short summary."


class FakeFactChecker(CannedCompletionMixin, FakeNewsDetector):
    canned_reply = json.dumps({"isReal": False, "confidence": 0.2, "explanation": "Sensational claims"})


class FakeAssistant(CannedCompletionMixin, ChatAssistant):
    canned_reply = "Here is what I found."


class FakeNewsConnector:
    """Serves preset headlines and search results and records each call."""

    def __init__(self, headlines=None, search_results=None):
        self.headlines = headlines if headlines is not None else [make_news_article(i) for i in (1, 2, 3)]
        self.search_results = search_results or []
        self.headline_calls = []
        self.search_calls = []

    async def get_top_headlines(self, category=None, country=None, page_size=20, page=1):
        self.headline_calls.append({"category": category, "page_size": page_size, "page": page})
        return APIResponse(articles=list(self.headlines), total_results=len(self.headlines))

    async def search_everything(self, query, page_size=20, page=1, language="en", sort_by="publishedAt"):
        self.search_calls.append({"query": query, "page_size": page_size, "page": page})
        return APIResponse(articles=list(self.search_results), total_results=len(self.search_results))


class FakeExtractor(ContentExtractor):
    """Pages and transcripts come from dicts; PDF parsing is real."""

    def __init__(self, pages=None, transcripts=None):
        super().__init__(config={"timeout": 5, "user_agent": "tests", "max_upload_bytes": 1024 * 1024})
        self.pages = pages or {}
        self.transcripts = transcripts or {}

    async def fetch_url_text(self, url):
        if url not in self.pages:
            raise ContentExtractionError("Failed to fetch content from URL")
        return self.pages[url]

    async def fetch_youtube_transcript(self, video_id):
        if video_id not in self.transcripts:
            raise ContentExtractionError("No transcript available for this video")
        return self.transcripts[video_id]


@pytest.fixture
def news_connector():
    return FakeNewsConnector()


@pytest.fixture
def ai_services():
    return AIServices(
        summarizer=FakeSummarizer(),
        fact_checker=FakeFactChecker(),
        assistant=FakeAssistant(),
    )


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def client(news_connector, ai_services, extractor):
    from flashpress.main import app

    # use context manager so the lifespan builds storage and services
    with TestClient(app) as c:
        app.state.news_feed.news_connector = news_connector
        app.state.ai = ai_services
        app.state.extractor = extractor
        yield c


def register(client, username="reader", email=None, password="secret-pass"):
    response = client.post("/api/auth/register", json={
        "username": username,
        "email": email or f"{username}@example.com",
        "password": password,
    })
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def register_user(client):
    def _register(username="reader", email=None, password="secret-pass"):
        return register(client, username, email, password)
    return _register


@pytest.fixture
def auth_headers(register_user):
    token = register_user()["token"]
    return {"Authorization": f"Bearer {token}"}
