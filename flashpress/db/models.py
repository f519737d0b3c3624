"""
Database models for the FlashPress news service.
Defines SQLAlchemy models for users, articles, engagement, bookmarks,
study resources and chat sessions.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import (
    String, Text, DateTime, Integer, ForeignKey, JSON, Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column

from flashpress.db.entities import utcnow

Base = declarative_base()


class UserRecord(Base):
    """
    Registered user. `password` holds the bcrypt hash.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    comments: Mapped[List["CommentRecord"]] = relationship("CommentRecord", back_populates="user")

    def __repr__(self) -> str:
        return f"<UserRecord(id={self.id}, username='{self.username}')>"


class ArticleRecord(Base):
    """
    News article stored after the first fetch from the news provider.
    """
    __tablename__ = "articles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False, index=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general", index=True)
    source: Mapped[str] = mapped_column(String(200), nullable=False)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    comments: Mapped[List["CommentRecord"]] = relationship("CommentRecord", back_populates="article")

    def __repr__(self) -> str:
        return f"<ArticleRecord(id={self.id}, title='{self.title[:50]}...', source='{self.source}')>"


class CommentRecord(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    article_id: Mapped[str] = mapped_column(String(36), ForeignKey("articles.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    article: Mapped["ArticleRecord"] = relationship("ArticleRecord", back_populates="comments")
    user: Mapped["UserRecord"] = relationship("UserRecord", back_populates="comments")

    __table_args__ = (
        Index("idx_comment_article_created", "article_id", "created_at"),
    )


class LikeRecord(Base):
    """
    One like per (user, article); enforced by a unique constraint.
    """
    __tablename__ = "likes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    article_id: Mapped[str] = mapped_column(String(36), ForeignKey("articles.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "article_id", name="uq_like_user_article"),
    )


class BookmarkRecord(Base):
    """
    A user's saved reference to an article or study resource.
    """
    __tablename__ = "bookmarks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_bookmark_user_resource", "user_id", "resource_type", "resource_id"),
    )

    def __repr__(self) -> str:
        return f"<BookmarkRecord(user_id={self.user_id}, {self.resource_type}:{self.resource_id})>"


class StudyResourceRecord(Base):
    """
    Reference material for TNPSC exam preparation.
    """
    __tablename__ = "study_resources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # book, notes
    subject: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    exam_stage: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # prelims, mains
    file_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class ChatSessionRecord(Base):
    """
    Chat history; `messages` is a JSON list of {role, content, timestamp}.
    """
    __tablename__ = "chat_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    messages: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
