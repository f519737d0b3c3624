"""
Domain records shared by every storage backend.
Backends return these dataclasses, never ORM rows, so callers cannot tell
which backend produced them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DuplicateEntryError(Exception):
    """
    Raised when a create would violate a uniqueness invariant
    (user username/email, article url, one like per user and article).
    """

    def __init__(self, entity: str, field_name: str, value: Any = None):
        self.entity = entity
        self.field_name = field_name
        self.value = value
        super().__init__(f"{entity} with this {field_name} already exists")


@dataclass
class User:
    id: str
    username: str
    email: str
    password: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class PublicUser:
    """A user as exposed over the API, without the password hash."""
    id: str
    username: str
    email: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            created_at=user.created_at,
        )


@dataclass
class NewArticle:
    """
    Article fields supplied by the caller on insert.
    """
    title: str
    url: str
    source: str
    published_at: datetime
    category: str = "general"
    description: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None


@dataclass
class Article:
    id: str
    title: str
    url: str
    category: str
    source: str
    published_at: datetime
    description: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    likes: int = 0
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Comment:
    id: str
    article_id: str
    user_id: str
    content: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Like:
    id: str
    user_id: str
    article_id: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Bookmark:
    id: str
    user_id: str
    resource_type: str
    resource_id: str
    title: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NewStudyResource:
    title: str
    category: str
    subject: str
    exam_stage: str
    file_url: Optional[str] = None
    description: Optional[str] = None


@dataclass
class StudyResource:
    id: str
    title: str
    category: str
    subject: str
    exam_stage: str
    file_url: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ChatMessage:
    role: str
    content: str
    timestamp: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            role=str(data.get("role", "")),
            content=str(data.get("content", "")),
            timestamp=str(data.get("timestamp", "")),
        )


@dataclass
class ChatSession:
    id: str
    user_id: Optional[str]
    messages: List[ChatMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
