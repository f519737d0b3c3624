"""
Relational storage backend using the SQLAlchemy async ORM.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update, delete, and_
from sqlalchemy.exc import IntegrityError

from flashpress.db.database import DatabaseManager
from flashpress.db.entities import (
    Article, Bookmark, ChatMessage, ChatSession, Comment, DuplicateEntryError,
    Like, NewArticle, NewStudyResource, StudyResource, User, ensure_utc, utcnow
)
from flashpress.db.models import (
    ArticleRecord, BookmarkRecord, ChatSessionRecord, CommentRecord,
    LikeRecord, StudyResourceRecord, UserRecord
)
from flashpress.db.storage import DEFAULT_ARTICLE_LIMIT, Storage, is_category_filter, new_id

logger = logging.getLogger(__name__)


def _to_user(row: UserRecord) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        password=row.password,
        created_at=ensure_utc(row.created_at),
    )


def _to_article(row: ArticleRecord) -> Article:
    return Article(
        id=row.id,
        title=row.title,
        url=row.url,
        category=row.category,
        source=row.source,
        published_at=ensure_utc(row.published_at),
        description=row.description,
        content=row.content,
        image_url=row.image_url,
        likes=row.likes or 0,
        created_at=ensure_utc(row.created_at),
    )


def _to_comment(row: CommentRecord) -> Comment:
    return Comment(
        id=row.id,
        article_id=row.article_id,
        user_id=row.user_id,
        content=row.content,
        created_at=ensure_utc(row.created_at),
    )


def _to_like(row: LikeRecord) -> Like:
    return Like(id=row.id, user_id=row.user_id, article_id=row.article_id, created_at=ensure_utc(row.created_at))


def _to_bookmark(row: BookmarkRecord) -> Bookmark:
    return Bookmark(
        id=row.id,
        user_id=row.user_id,
        resource_type=row.resource_type,
        resource_id=row.resource_id,
        title=row.title,
        created_at=ensure_utc(row.created_at),
    )


def _to_study_resource(row: StudyResourceRecord) -> StudyResource:
    return StudyResource(
        id=row.id,
        title=row.title,
        category=row.category,
        subject=row.subject,
        exam_stage=row.exam_stage,
        file_url=row.file_url,
        description=row.description,
        created_at=ensure_utc(row.created_at),
    )


def _to_chat_session(row: ChatSessionRecord) -> ChatSession:
    return ChatSession(
        id=row.id,
        user_id=row.user_id,
        messages=[ChatMessage.from_dict(m) for m in (row.messages or [])],
        created_at=ensure_utc(row.created_at),
    )


class DatabaseStorage(Storage):
    """
    Storage backed by a relational database.

    Each call runs in its own session; isolation and concurrency control are
    left to the database. Uniqueness of usernames, emails, article URLs and
    likes is enforced by constraints. A rejected insert surfaces as
    DuplicateEntryError only when the conflicting row is actually there;
    other integrity failures (missing foreign keys) propagate unchanged.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.db = DatabaseManager(database_url)

    async def initialize(self) -> None:
        await self.db.initialize()

    async def close(self) -> None:
        await self.db.close()

    async def health_check(self) -> bool:
        return await self.db.health_check()

    # Users

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self.db.get_session() as session:
            row = await session.get(UserRecord, user_id)
            return _to_user(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self.db.get_session() as session:
            result = await session.execute(select(UserRecord).where(UserRecord.username == username))
            row = result.scalar_one_or_none()
            return _to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self.db.get_session() as session:
            result = await session.execute(select(UserRecord).where(UserRecord.email == email))
            row = result.scalar_one_or_none()
            return _to_user(row) if row else None

    async def create_user(self, username: str, email: str, password: str) -> User:
        row = UserRecord(id=new_id(), username=username, email=email, password=password, created_at=utcnow())
        try:
            async with self.db.get_session() as session:
                session.add(row)
                await session.flush()
        except IntegrityError as e:
            if await self.get_user_by_username(username) or await self.get_user_by_email(email):
                logger.warning(f"User insert rejected by unique constraint: {e.orig}")
                raise DuplicateEntryError("User", "username or email", username) from e
            raise
        return _to_user(row)

    # Articles

    async def get_articles(
        self,
        category: Optional[str] = None,
        limit: int = DEFAULT_ARTICLE_LIMIT,
        offset: int = 0
    ) -> List[Article]:
        query = select(ArticleRecord).order_by(ArticleRecord.published_at.desc())
        if is_category_filter(category):
            query = query.where(ArticleRecord.category == category)
        query = query.limit(max(limit, 0)).offset(max(offset, 0))

        async with self.db.get_session() as session:
            result = await session.execute(query)
            return [_to_article(row) for row in result.scalars().all()]

    async def get_article_by_id(self, article_id: str) -> Optional[Article]:
        async with self.db.get_session() as session:
            row = await session.get(ArticleRecord, article_id)
            return _to_article(row) if row else None

    async def get_article_by_url(self, url: str) -> Optional[Article]:
        async with self.db.get_session() as session:
            result = await session.execute(select(ArticleRecord).where(ArticleRecord.url == url))
            row = result.scalar_one_or_none()
            return _to_article(row) if row else None

    async def create_article(self, article: NewArticle) -> Article:
        row = ArticleRecord(
            id=new_id(),
            title=article.title,
            description=article.description or None,
            content=article.content or None,
            url=article.url,
            image_url=article.image_url or None,
            category=article.category,
            source=article.source,
            published_at=ensure_utc(article.published_at),
            likes=0,
            created_at=utcnow(),
        )
        try:
            async with self.db.get_session() as session:
                session.add(row)
                await session.flush()
        except IntegrityError as e:
            if await self.get_article_by_url(article.url):
                raise DuplicateEntryError("Article", "url", article.url) from e
            raise
        return _to_article(row)

    async def update_article_likes(self, article_id: str, likes: int) -> None:
        async with self.db.get_session() as session:
            await session.execute(
                update(ArticleRecord).where(ArticleRecord.id == article_id).values(likes=likes)
            )

    # Comments

    async def get_comments_by_article_id(self, article_id: str) -> List[Comment]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(CommentRecord)
                .where(CommentRecord.article_id == article_id)
                .order_by(CommentRecord.created_at.desc())
            )
            return [_to_comment(row) for row in result.scalars().all()]

    async def create_comment(self, article_id: str, user_id: str, content: str) -> Comment:
        row = CommentRecord(id=new_id(), article_id=article_id, user_id=user_id, content=content, created_at=utcnow())
        async with self.db.get_session() as session:
            session.add(row)
        return _to_comment(row)

    # Likes

    async def get_like(self, user_id: str, article_id: str) -> Optional[Like]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(LikeRecord).where(
                    and_(LikeRecord.user_id == user_id, LikeRecord.article_id == article_id)
                )
            )
            row = result.scalar_one_or_none()
            return _to_like(row) if row else None

    async def create_like(self, user_id: str, article_id: str) -> Like:
        row = LikeRecord(id=new_id(), user_id=user_id, article_id=article_id, created_at=utcnow())
        try:
            async with self.db.get_session() as session:
                session.add(row)
                await session.flush()
        except IntegrityError as e:
            if await self.get_like(user_id, article_id):
                raise DuplicateEntryError("Like", "user and article", (user_id, article_id)) from e
            raise
        return _to_like(row)

    async def delete_like(self, user_id: str, article_id: str) -> None:
        async with self.db.get_session() as session:
            await session.execute(
                delete(LikeRecord).where(
                    and_(LikeRecord.user_id == user_id, LikeRecord.article_id == article_id)
                )
            )

    # Bookmarks

    async def get_bookmarks_by_user_id(self, user_id: str) -> List[Bookmark]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(BookmarkRecord)
                .where(BookmarkRecord.user_id == user_id)
                .order_by(BookmarkRecord.created_at.desc())
            )
            return [_to_bookmark(row) for row in result.scalars().all()]

    async def create_bookmark(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        title: str
    ) -> Bookmark:
        row = BookmarkRecord(
            id=new_id(),
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            title=title,
            created_at=utcnow(),
        )
        async with self.db.get_session() as session:
            session.add(row)
        return _to_bookmark(row)

    async def delete_bookmark(self, user_id: str, resource_type: str, resource_id: str) -> None:
        async with self.db.get_session() as session:
            await session.execute(
                delete(BookmarkRecord).where(
                    and_(
                        BookmarkRecord.user_id == user_id,
                        BookmarkRecord.resource_type == resource_type,
                        BookmarkRecord.resource_id == resource_id,
                    )
                )
            )

    # Study resources

    async def get_study_resources(
        self,
        category: Optional[str] = None,
        subject: Optional[str] = None,
        exam_stage: Optional[str] = None
    ) -> List[StudyResource]:
        conditions = []
        if category:
            conditions.append(StudyResourceRecord.category == category)
        if subject:
            conditions.append(StudyResourceRecord.subject == subject)
        if exam_stage:
            conditions.append(StudyResourceRecord.exam_stage == exam_stage)

        query = select(StudyResourceRecord).order_by(StudyResourceRecord.title.asc())
        if conditions:
            query = query.where(and_(*conditions))

        async with self.db.get_session() as session:
            result = await session.execute(query)
            return [_to_study_resource(row) for row in result.scalars().all()]

    async def create_study_resource(self, resource: NewStudyResource) -> StudyResource:
        row = StudyResourceRecord(
            id=new_id(),
            title=resource.title,
            category=resource.category,
            subject=resource.subject,
            exam_stage=resource.exam_stage,
            file_url=resource.file_url or None,
            description=resource.description or None,
            created_at=utcnow(),
        )
        async with self.db.get_session() as session:
            session.add(row)
        return _to_study_resource(row)

    # Chat sessions

    async def get_chat_session(self, session_id: str) -> Optional[ChatSession]:
        async with self.db.get_session() as session:
            row = await session.get(ChatSessionRecord, session_id)
            return _to_chat_session(row) if row else None

    async def get_chat_sessions_by_user_id(self, user_id: str) -> List[ChatSession]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(ChatSessionRecord)
                .where(ChatSessionRecord.user_id == user_id)
                .order_by(ChatSessionRecord.created_at.desc())
            )
            return [_to_chat_session(row) for row in result.scalars().all()]

    async def create_chat_session(
        self,
        user_id: Optional[str],
        messages: List[ChatMessage]
    ) -> ChatSession:
        row = ChatSessionRecord(
            id=new_id(),
            user_id=user_id,
            messages=[m.to_dict() for m in messages],
            created_at=utcnow(),
        )
        async with self.db.get_session() as session:
            session.add(row)
        return _to_chat_session(row)

    async def update_chat_session(self, session_id: str, messages: List[ChatMessage]) -> None:
        async with self.db.get_session() as session:
            await session.execute(
                update(ChatSessionRecord)
                .where(ChatSessionRecord.id == session_id)
                .values(messages=[m.to_dict() for m in messages])
            )
