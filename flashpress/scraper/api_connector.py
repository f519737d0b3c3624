"""
API connector for NewsAPI.org.
Provides top headlines (ingested into storage) and free-text search.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional

import aiohttp

from flashpress.db.entities import utcnow
from flashpress.utils.config import get_news_api_config

logger = logging.getLogger(__name__)

NEWSAPI_BASE_URL = "https://newsapi.org/v2"
MAX_PAGE_SIZE = 100


class NewsAPIError(Exception):
    """Raised when NewsAPI returns an error or cannot be reached."""


@dataclass
class NewsArticle:
    """
    Represents an article as returned by the news provider.
    """
    title: str
    url: str
    source: str
    description: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None


@dataclass
class APIResponse:
    """
    Represents a response from a news API.
    """
    articles: List[NewsArticle] = field(default_factory=list)
    total_results: int = 0
    status: str = "ok"


def sample_headlines() -> APIResponse:
    """Placeholder feed served when no NewsAPI key is configured."""
    return APIResponse(
        articles=[
            NewsArticle(
                title="Sample News Article",
                description="This is a sample news article. Please add your NEWS_API_KEY to get real news.",
                url="https://example.com",
                image_url="https://picsum.photos/400/200",
                published_at=utcnow(),
                source="Sample Source",
                content="Sample content for testing purposes.",
            )
        ],
        total_results=1,
    )


class NewsAPIConnector:
    """
    Connector for NewsAPI.org service.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize NewsAPI connector.

        Args:
            config: Dict with api_key, country and timeout; defaults to settings
        """
        self.config = config or get_news_api_config()
        self.api_key = self.config.get("api_key")
        self.country = self.config.get("country", "in")
        self.timeout = aiohttp.ClientTimeout(total=self.config.get("timeout", 30))
        self.base_url = NEWSAPI_BASE_URL

        if not self.api_key:
            logger.warning("NEWS_API_KEY not set; news features will return sample data")

    async def get_top_headlines(
        self,
        category: Optional[str] = None,
        country: Optional[str] = None,
        page_size: int = 20,
        page: int = 1
    ) -> APIResponse:
        """
        Get top headlines using NewsAPI headlines endpoint.

        Args:
            category: Category (business, entertainment, general, health, science, sports, technology);
                "all" means no filter
            country: Country code, defaults to the configured one ('in')
            page_size: Number of articles per page (max 100)
            page: Page number

        Returns:
            APIResponse with articles

        Raises:
            NewsAPIError: provider error or network failure
        """
        if not self.api_key:
            return sample_headlines()

        params = {
            "country": country or self.country,
            "pageSize": min(page_size, MAX_PAGE_SIZE),
            "page": page
        }

        if category and category != "all":
            params["category"] = category

        return await self._request("top-headlines", params)

    async def search_everything(
        self,
        query: str,
        page_size: int = 20,
        page: int = 1,
        language: str = "en",
        sort_by: str = "publishedAt"
    ) -> APIResponse:
        """
        Search articles using NewsAPI everything endpoint.

        Args:
            query: Search query
            page_size: Number of articles per page (max 100)
            page: Page number
            language: Article language
            sort_by: Sort order (relevancy, popularity, publishedAt)

        Returns:
            APIResponse with articles (empty without an API key)

        Raises:
            NewsAPIError: provider error or network failure
        """
        if not self.api_key:
            return APIResponse()

        params = {
            "q": query,
            "language": language,
            "sortBy": sort_by,
            "pageSize": min(page_size, MAX_PAGE_SIZE),
            "page": page
        }

        return await self._request("everything", params)

    async def _request(self, endpoint: str, params: Dict[str, Any]) -> APIResponse:
        url = f"{self.base_url}/{endpoint}"

        try:
            async with aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"X-Api-Key": self.api_key}
            ) as session:
                async with session.get(url, params=params) as response:
                    data = await response.json(content_type=None)

                    if response.status != 200:
                        message = data.get("message") if isinstance(data, dict) else None
                        raise NewsAPIError(
                            f"NewsAPI error: {response.status} {message or response.reason}"
                        )
        except aiohttp.ClientError as e:
            logger.error(f"NewsAPI request to {endpoint} failed: {e}")
            raise NewsAPIError(f"NewsAPI request failed: {e}") from e

        if data.get("status") == "error":
            raise NewsAPIError(f"NewsAPI error: {data.get('message')}")

        articles = []
        for article_data in data.get("articles", []):
            article = self._parse_newsapi_article(article_data)
            if article:
                articles.append(article)

        return APIResponse(
            articles=articles,
            total_results=data.get("totalResults", len(articles)),
            status=data.get("status", "ok")
        )

    def _parse_newsapi_article(self, data: Dict[str, Any]) -> Optional[NewsArticle]:
        """
        Parse NewsAPI article data into NewsArticle.

        Args:
            data: Article data from NewsAPI

        Returns:
            NewsArticle or None when title or url is missing
        """
        title = (data.get("title") or "").strip()
        url = (data.get("url") or "").strip()

        if not title or not url:
            return None

        published_at = None
        if data.get("publishedAt"):
            try:
                published_at = datetime.fromisoformat(
                    data["publishedAt"].replace("Z", "+00:00")
                )
            except ValueError:
                logger.debug(f"Unparseable publishedAt for {url}: {data['publishedAt']}")

        source_data = data.get("source") or {}

        return NewsArticle(
            title=title,
            url=url,
            source=source_data.get("name") or "Unknown",
            description=data.get("description"),
            content=data.get("content"),
            image_url=data.get("urlToImage"),
            published_at=published_at
        )
