"""
Persistence contract for users, articles, comments, likes, bookmarks,
study resources and chat sessions.
Provides an in-process implementation; the relational one lives in sql_storage.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional

from flashpress.db.entities import (
    Article, Bookmark, ChatMessage, ChatSession, Comment, DuplicateEntryError,
    Like, NewArticle, NewStudyResource, StudyResource, User, ensure_utc, utcnow
)

logger = logging.getLogger(__name__)

DEFAULT_ARTICLE_LIMIT = 20

SAMPLE_STUDY_RESOURCES = [
    NewStudyResource(
        title="Tamil Nadu History",
        category="book",
        subject="History",
        exam_stage="prelims",
        file_url="/books/tamil-history.pdf",
        description="Comprehensive guide to Tamil Nadu history for TNPSC prelims",
    ),
    NewStudyResource(
        title="Indian Polity",
        category="book",
        subject="Polity",
        exam_stage="mains",
        file_url="/books/indian-polity.pdf",
        description="Complete coverage of Indian polity for TNPSC mains",
    ),
    NewStudyResource(
        title="Geography Notes",
        category="notes",
        subject="Geography",
        exam_stage="prelims",
        file_url="/books/geography-notes.pdf",
        description="Important geography notes for TNPSC preparation",
    ),
]


def new_id() -> str:
    return str(uuid.uuid4())


def is_category_filter(category: Optional[str]) -> bool:
    """An empty category or "all" means no filtering."""
    return bool(category) and category != "all"


def _newest_first(items: list) -> list:
    # Later inserts win ties on created_at
    return sorted(reversed(items), key=lambda item: item.created_at, reverse=True)


class Storage(ABC):
    """
    Abstract base class for storage backends.

    Single lookups return None when absent. Lists come back newest first,
    except study resources which are ordered by title.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create tables, seed data)."""

    async def close(self) -> None:
        """Release backend resources."""

    async def health_check(self) -> bool:
        return True

    # Users

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create_user(self, username: str, email: str, password: str) -> User:
        """
        Create a user. `password` must already be hashed.

        Raises:
            DuplicateEntryError: username or email is taken
        """

    # Articles

    @abstractmethod
    async def get_articles(
        self,
        category: Optional[str] = None,
        limit: int = DEFAULT_ARTICLE_LIMIT,
        offset: int = 0
    ) -> List[Article]:
        pass

    @abstractmethod
    async def get_article_by_id(self, article_id: str) -> Optional[Article]:
        pass

    @abstractmethod
    async def get_article_by_url(self, url: str) -> Optional[Article]:
        pass

    @abstractmethod
    async def create_article(self, article: NewArticle) -> Article:
        """
        Raises:
            DuplicateEntryError: an article with the same url exists
        """

    @abstractmethod
    async def update_article_likes(self, article_id: str, likes: int) -> None:
        pass

    # Comments

    @abstractmethod
    async def get_comments_by_article_id(self, article_id: str) -> List[Comment]:
        pass

    @abstractmethod
    async def create_comment(self, article_id: str, user_id: str, content: str) -> Comment:
        pass

    # Likes

    @abstractmethod
    async def get_like(self, user_id: str, article_id: str) -> Optional[Like]:
        pass

    @abstractmethod
    async def create_like(self, user_id: str, article_id: str) -> Like:
        """
        Raises:
            DuplicateEntryError: the user already likes the article
        """

    @abstractmethod
    async def delete_like(self, user_id: str, article_id: str) -> None:
        pass

    # Bookmarks

    @abstractmethod
    async def get_bookmarks_by_user_id(self, user_id: str) -> List[Bookmark]:
        pass

    @abstractmethod
    async def create_bookmark(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        title: str
    ) -> Bookmark:
        pass

    @abstractmethod
    async def delete_bookmark(self, user_id: str, resource_type: str, resource_id: str) -> None:
        pass

    # Study resources

    @abstractmethod
    async def get_study_resources(
        self,
        category: Optional[str] = None,
        subject: Optional[str] = None,
        exam_stage: Optional[str] = None
    ) -> List[StudyResource]:
        pass

    @abstractmethod
    async def create_study_resource(self, resource: NewStudyResource) -> StudyResource:
        pass

    # Chat sessions

    @abstractmethod
    async def get_chat_session(self, session_id: str) -> Optional[ChatSession]:
        pass

    @abstractmethod
    async def get_chat_sessions_by_user_id(self, user_id: str) -> List[ChatSession]:
        pass

    @abstractmethod
    async def create_chat_session(
        self,
        user_id: Optional[str],
        messages: List[ChatMessage]
    ) -> ChatSession:
        pass

    @abstractmethod
    async def update_chat_session(self, session_id: str, messages: List[ChatMessage]) -> None:
        """Replace the session's message list wholesale."""


class MemoryStorage(Storage):
    """
    Process-lifetime storage backed by one dict per entity.
    There is no locking: concurrent writers to the same key race, last write wins.
    """

    def __init__(self, seed: bool = True):
        self.seed = seed
        self.users: Dict[str, User] = {}
        self.articles: Dict[str, Article] = {}
        self.comments: Dict[str, Comment] = {}
        self.likes: Dict[str, Like] = {}
        self.bookmarks: Dict[str, Bookmark] = {}
        self.study_resources: Dict[str, StudyResource] = {}
        self.chat_sessions: Dict[str, ChatSession] = {}

    async def initialize(self) -> None:
        """Seed the sample study resources once."""
        if self.seed and not self.study_resources:
            self._seed_study_resources()

    def _seed_study_resources(self) -> None:
        for sample in SAMPLE_STUDY_RESOURCES:
            resource = self._build_study_resource(sample)
            self.study_resources[resource.id] = resource
        logger.info(f"Seeded {len(SAMPLE_STUDY_RESOURCES)} sample study resources")

    @staticmethod
    def _build_study_resource(resource: NewStudyResource) -> StudyResource:
        return StudyResource(
            id=new_id(),
            title=resource.title,
            category=resource.category,
            subject=resource.subject,
            exam_stage=resource.exam_stage,
            file_url=resource.file_url or None,
            description=resource.description or None,
            created_at=utcnow(),
        )

    # Users

    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.email == email), None)

    async def create_user(self, username: str, email: str, password: str) -> User:
        if await self.get_user_by_username(username):
            raise DuplicateEntryError("User", "username", username)
        if await self.get_user_by_email(email):
            raise DuplicateEntryError("User", "email", email)

        user = User(id=new_id(), username=username, email=email, password=password, created_at=utcnow())
        self.users[user.id] = user
        return user

    # Articles

    async def get_articles(
        self,
        category: Optional[str] = None,
        limit: int = DEFAULT_ARTICLE_LIMIT,
        offset: int = 0
    ) -> List[Article]:
        articles = list(self.articles.values())
        if is_category_filter(category):
            articles = [a for a in articles if a.category == category]

        articles.sort(key=lambda a: a.published_at, reverse=True)
        offset = max(offset, 0)
        return articles[offset:offset + max(limit, 0)]

    async def get_article_by_id(self, article_id: str) -> Optional[Article]:
        return self.articles.get(article_id)

    async def get_article_by_url(self, url: str) -> Optional[Article]:
        return next((a for a in self.articles.values() if a.url == url), None)

    async def create_article(self, article: NewArticle) -> Article:
        if await self.get_article_by_url(article.url):
            raise DuplicateEntryError("Article", "url", article.url)

        stored = Article(
            id=new_id(),
            title=article.title,
            url=article.url,
            category=article.category,
            source=article.source,
            published_at=ensure_utc(article.published_at),
            description=article.description or None,
            content=article.content or None,
            image_url=article.image_url or None,
            likes=0,
            created_at=utcnow(),
        )
        self.articles[stored.id] = stored
        return stored

    async def update_article_likes(self, article_id: str, likes: int) -> None:
        article = self.articles.get(article_id)
        if article:
            self.articles[article_id] = replace(article, likes=likes)

    # Comments

    async def get_comments_by_article_id(self, article_id: str) -> List[Comment]:
        comments = [c for c in self.comments.values() if c.article_id == article_id]
        return _newest_first(comments)

    async def create_comment(self, article_id: str, user_id: str, content: str) -> Comment:
        comment = Comment(id=new_id(), article_id=article_id, user_id=user_id, content=content, created_at=utcnow())
        self.comments[comment.id] = comment
        return comment

    # Likes

    async def get_like(self, user_id: str, article_id: str) -> Optional[Like]:
        return next(
            (l for l in self.likes.values() if l.user_id == user_id and l.article_id == article_id),
            None
        )

    async def create_like(self, user_id: str, article_id: str) -> Like:
        if await self.get_like(user_id, article_id):
            raise DuplicateEntryError("Like", "user and article", (user_id, article_id))

        like = Like(id=new_id(), user_id=user_id, article_id=article_id, created_at=utcnow())
        self.likes[like.id] = like
        return like

    async def delete_like(self, user_id: str, article_id: str) -> None:
        like = await self.get_like(user_id, article_id)
        if like:
            self.likes.pop(like.id, None)

    # Bookmarks

    async def get_bookmarks_by_user_id(self, user_id: str) -> List[Bookmark]:
        bookmarks = [b for b in self.bookmarks.values() if b.user_id == user_id]
        return _newest_first(bookmarks)

    async def create_bookmark(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        title: str
    ) -> Bookmark:
        bookmark = Bookmark(
            id=new_id(),
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            title=title,
            created_at=utcnow(),
        )
        self.bookmarks[bookmark.id] = bookmark
        return bookmark

    async def delete_bookmark(self, user_id: str, resource_type: str, resource_id: str) -> None:
        matches = [
            b for b in self.bookmarks.values()
            if b.user_id == user_id and b.resource_type == resource_type and b.resource_id == resource_id
        ]
        for bookmark in matches:
            self.bookmarks.pop(bookmark.id, None)

    # Study resources

    async def get_study_resources(
        self,
        category: Optional[str] = None,
        subject: Optional[str] = None,
        exam_stage: Optional[str] = None
    ) -> List[StudyResource]:
        resources = list(self.study_resources.values())
        if category:
            resources = [r for r in resources if r.category == category]
        if subject:
            resources = [r for r in resources if r.subject == subject]
        if exam_stage:
            resources = [r for r in resources if r.exam_stage == exam_stage]
        return sorted(resources, key=lambda r: r.title)

    async def create_study_resource(self, resource: NewStudyResource) -> StudyResource:
        stored = self._build_study_resource(resource)
        self.study_resources[stored.id] = stored
        return stored

    # Chat sessions

    async def get_chat_session(self, session_id: str) -> Optional[ChatSession]:
        return self.chat_sessions.get(session_id)

    async def get_chat_sessions_by_user_id(self, user_id: str) -> List[ChatSession]:
        sessions = [s for s in self.chat_sessions.values() if s.user_id == user_id]
        return _newest_first(sessions)

    async def create_chat_session(
        self,
        user_id: Optional[str],
        messages: List[ChatMessage]
    ) -> ChatSession:
        session = ChatSession(id=new_id(), user_id=user_id, messages=list(messages), created_at=utcnow())
        self.chat_sessions[session.id] = session
        return session

    async def update_chat_session(self, session_id: str, messages: List[ChatMessage]) -> None:
        session = self.chat_sessions.get(session_id)
        if session:
            self.chat_sessions[session_id] = replace(session, messages=list(messages))


def create_storage(backend: str, database_url: Optional[str] = None) -> Storage:
    """
    Create the storage backend selected by configuration.

    Args:
        backend: "database" or "memory"
        database_url: SQLAlchemy URL, used by the database backend

    Returns:
        Storage instance (not yet initialized)
    """
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()

    if backend == "database":
        from flashpress.db.sql_storage import DatabaseStorage
        logger.info("Using relational database storage")
        return DatabaseStorage(database_url)

    raise ValueError(f"Unknown storage backend: {backend}")
