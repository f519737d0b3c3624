"""
Workflow orchestrator for FlashPress.
Ties storage to the news provider: Read → Fetch → Store → Respond, plus the
multi-step interactions (like toggling, chat history) the routes delegate here.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from flashpress.db.entities import (
    Article, ChatMessage, DuplicateEntryError, NewArticle, utcnow
)
from flashpress.db.storage import Storage, is_category_filter
from flashpress.scraper.api_connector import NewsAPIConnector, NewsArticle

logger = logging.getLogger(__name__)


class ArticleNotFoundError(Exception):
    """Raised when an operation targets an article id that is not stored."""

    def __init__(self, article_id: str):
        super().__init__(f"Article {article_id} not found")
        self.article_id = article_id


@dataclass
class LikeResult:
    liked: bool
    likes: int


class NewsFeed:
    """
    Serves the article feed and article interactions on top of a Storage.
    """

    def __init__(self, storage: Storage, news_connector: NewsAPIConnector):
        self.storage = storage
        self.news_connector = news_connector

    async def get_articles(
        self,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> List[Article]:
        """
        Return a page of stored articles, ingesting top headlines when none are stored.

        Args:
            category: Category filter; empty or "all" lists everything
            page: 1-based page number
            limit: Page size

        Returns:
            Stored articles, newest first, or the freshly ingested headlines

        Raises:
            NewsAPIError: headlines could not be fetched
        """
        offset = (page - 1) * limit
        stored = await self.storage.get_articles(category, limit, offset)
        if stored:
            return stored

        logger.info(f"No stored articles for category={category!r} page={page}; fetching headlines")
        response = await self.news_connector.get_top_headlines(
            category=category,
            page_size=limit,
            page=page
        )

        ingest_category = category if is_category_filter(category) else "general"
        return await self._store_articles(response.articles, ingest_category)

    async def _store_articles(self, articles: List[NewsArticle], category: str) -> List[Article]:
        """Store provider articles one by one; failures are logged and skipped."""
        stored_articles = []

        for news_article in articles:
            existing_article = await self.storage.get_article_by_url(news_article.url)
            if existing_article:
                stored_articles.append(existing_article)
                continue

            try:
                article = await self.storage.create_article(
                    NewArticle(
                        title=news_article.title,
                        url=news_article.url,
                        source=news_article.source,
                        published_at=news_article.published_at or utcnow(),
                        category=category,
                        description=news_article.description or "",
                        content=news_article.content or "",
                        image_url=news_article.image_url or "",
                    )
                )
            except DuplicateEntryError:
                # Stored by a concurrent request since the lookup
                article = await self.storage.get_article_by_url(news_article.url)
                if article is None:
                    continue
            except Exception as e:
                logger.error(f"Failed to store article {news_article.url}: {e}")
                continue

            stored_articles.append(article)

        logger.info(f"Stored {len(stored_articles)} of {len(articles)} fetched articles")
        return stored_articles

    async def search(self, query: str, page: int = 1, limit: int = 20) -> List[NewsArticle]:
        """Search the news provider; results are not stored."""
        response = await self.news_connector.search_everything(query, page_size=limit, page=page)
        return response.articles

    async def toggle_like(self, user_id: str, article_id: str) -> LikeResult:
        """
        Like the article if the user has not liked it yet, otherwise unlike it.

        Raises:
            ArticleNotFoundError: unknown article id
        """
        existing_like = await self.storage.get_like(user_id, article_id)
        article = await self.storage.get_article_by_id(article_id)

        if article is None:
            raise ArticleNotFoundError(article_id)

        if existing_like:
            await self.storage.delete_like(user_id, article_id)
            likes = max(0, article.likes - 1)
            await self.storage.update_article_likes(article_id, likes)
            return LikeResult(liked=False, likes=likes)

        try:
            await self.storage.create_like(user_id, article_id)
        except DuplicateEntryError:
            # A concurrent toggle already liked it
            current = await self.storage.get_article_by_id(article_id)
            return LikeResult(liked=True, likes=current.likes if current else article.likes)

        likes = article.likes + 1
        await self.storage.update_article_likes(article_id, likes)
        return LikeResult(liked=True, likes=likes)

    async def add_comment(self, article_id: str, user_id: str, content: str):
        if await self.storage.get_article_by_id(article_id) is None:
            raise ArticleNotFoundError(article_id)
        return await self.storage.create_comment(article_id, user_id, content)

    async def record_chat_exchange(
        self,
        user_id: str,
        session_id: str,
        message: str,
        response: str
    ) -> str:
        """
        Append a user message and the assistant reply to a chat session.

        The session is created when it does not exist or belongs to another user.

        Returns:
            Id of the session the exchange was written to
        """
        timestamp = utcnow().isoformat()
        exchange = [
            ChatMessage(role="user", content=message, timestamp=timestamp),
            ChatMessage(role="assistant", content=response, timestamp=timestamp),
        ]

        session = await self.storage.get_chat_session(session_id)
        if session is not None and session.user_id == user_id:
            await self.storage.update_chat_session(session_id, session.messages + exchange)
            return session_id

        created = await self.storage.create_chat_session(user_id, exchange)
        logger.debug(f"Started chat session {created.id} for user {user_id}")
        return created.id
