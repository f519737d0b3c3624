"""
Contract tests shared by the in-memory and relational storage backends.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from flashpress.db.entities import ChatMessage, DuplicateEntryError, NewArticle, NewStudyResource
from flashpress.db.sql_storage import DatabaseStorage
from flashpress.db.storage import SAMPLE_STUDY_RESOURCES, MemoryStorage, create_storage

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "database"])
async def storage(request):
    if request.param == "memory":
        store = MemoryStorage(seed=False)
    else:
        store = DatabaseStorage("sqlite+aiosqlite:///:memory:")
    await store.initialize()
    yield store
    await store.close()


def new_article(index, category="general", **overrides):
    fields = dict(
        title=f"Story {index}",
        url=f"https://example.com/story-{index}",
        source="Example Source",
        published_at=BASE_TIME + timedelta(hours=index),
        category=category,
        description="desc",
        content="body",
    )
    fields.update(overrides)
    return NewArticle(**fields)


async def test_create_and_lookup_user(storage):
    user = await storage.create_user("alice", "alice@example.com", "hashed")

    assert user.id
    assert (await storage.get_user(user.id)).username == "alice"
    assert (await storage.get_user_by_username("alice")).id == user.id
    assert (await storage.get_user_by_email("alice@example.com")).id == user.id
    assert await storage.get_user_by_username("bob") is None
    assert await storage.get_user("missing") is None


async def test_duplicate_username_or_email_rejected(storage):
    await storage.create_user("alice", "alice@example.com", "hashed")

    with pytest.raises(DuplicateEntryError):
        await storage.create_user("alice", "other@example.com", "hashed")
    with pytest.raises(DuplicateEntryError):
        await storage.create_user("other", "alice@example.com", "hashed")

    assert await storage.get_user_by_email("other@example.com") is None
    assert await storage.get_user_by_username("other") is None


async def test_article_defaults(storage):
    article = await storage.create_article(new_article(1))

    assert article.likes == 0
    assert article.published_at == BASE_TIME + timedelta(hours=1)
    assert (await storage.get_article_by_id(article.id)).url == article.url
    assert (await storage.get_article_by_url(article.url)).id == article.id


async def test_offset_timestamps_stored_as_utc(storage):
    ist = timezone(timedelta(hours=5, minutes=30))
    local = await storage.create_article(
        new_article(1, published_at=datetime(2024, 3, 1, 10, 0, tzinfo=ist))
    )
    await storage.create_article(new_article(2, published_at=datetime(2024, 3, 1, 5, 0, tzinfo=timezone.utc)))

    stored = await storage.get_article_by_id(local.id)
    assert stored.published_at == datetime(2024, 3, 1, 4, 30, tzinfo=timezone.utc)
    assert stored.published_at.utcoffset() == timedelta(0)
    assert [a.title for a in await storage.get_articles()] == ["Story 2", "Story 1"]


async def test_duplicate_article_url_rejected(storage):
    await storage.create_article(new_article(1))

    with pytest.raises(DuplicateEntryError):
        await storage.create_article(new_article(2, url="https://example.com/story-1"))


async def test_articles_filtered_by_category_newest_first(storage):
    await storage.create_article(new_article(1, category="sports"))
    await storage.create_article(new_article(2, category="business"))
    await storage.create_article(new_article(3, category="sports"))

    sports = await storage.get_articles("sports")
    assert [a.title for a in sports] == ["Story 3", "Story 1"]

    everything = await storage.get_articles("all")
    assert [a.title for a in everything] == ["Story 3", "Story 2", "Story 1"]


async def test_articles_paginate(storage):
    for index in range(1, 6):
        await storage.create_article(new_article(index))

    first_page = await storage.get_articles(limit=2, offset=0)
    second_page = await storage.get_articles(limit=2, offset=2)

    assert [a.title for a in first_page] == ["Story 5", "Story 4"]
    assert [a.title for a in second_page] == ["Story 3", "Story 2"]


async def test_update_article_likes(storage):
    article = await storage.create_article(new_article(1))

    await storage.update_article_likes(article.id, 4)

    assert (await storage.get_article_by_id(article.id)).likes == 4


async def test_like_lifecycle(storage):
    user = await storage.create_user("alice", "alice@example.com", "hashed")
    article = await storage.create_article(new_article(1))

    await storage.create_like(user.id, article.id)
    assert await storage.get_like(user.id, article.id) is not None

    with pytest.raises(DuplicateEntryError):
        await storage.create_like(user.id, article.id)

    await storage.delete_like(user.id, article.id)
    assert await storage.get_like(user.id, article.id) is None


async def test_like_for_unknown_user_is_not_a_duplicate():
    store = DatabaseStorage("sqlite+aiosqlite:///:memory:")
    await store.initialize()
    try:
        article = await store.create_article(new_article(1))

        with pytest.raises(IntegrityError):
            await store.create_like("no-such-user", article.id)
        assert await store.get_like("no-such-user", article.id) is None
    finally:
        await store.close()


async def test_comments_newest_first(storage):
    user = await storage.create_user("alice", "alice@example.com", "hashed")
    article = await storage.create_article(new_article(1))

    await storage.create_comment(article.id, user.id, "first")
    await storage.create_comment(article.id, user.id, "second")

    comments = await storage.get_comments_by_article_id(article.id)
    assert [c.content for c in comments] == ["second", "first"]
    assert await storage.get_comments_by_article_id("other") == []


async def test_bookmark_create_and_delete(storage):
    user = await storage.create_user("alice", "alice@example.com", "hashed")

    await storage.create_bookmark(user.id, "article", "a-1", "Saved story")
    await storage.create_bookmark(user.id, "resource", "r-1", "Saved notes")

    assert len(await storage.get_bookmarks_by_user_id(user.id)) == 2

    await storage.delete_bookmark(user.id, "article", "a-1")

    remaining = await storage.get_bookmarks_by_user_id(user.id)
    assert [(b.resource_type, b.resource_id) for b in remaining] == [("resource", "r-1")]


async def test_delete_bookmark_removes_every_duplicate(storage):
    user = await storage.create_user("alice", "alice@example.com", "hashed")

    await storage.create_bookmark(user.id, "article", "a-1", "Saved story")
    await storage.create_bookmark(user.id, "article", "a-1", "Saved story again")

    await storage.delete_bookmark(user.id, "article", "a-1")

    assert await storage.get_bookmarks_by_user_id(user.id) == []


async def test_delete_missing_bookmark_is_noop(storage):
    user = await storage.create_user("alice", "alice@example.com", "hashed")

    await storage.delete_bookmark(user.id, "article", "never-saved")

    assert await storage.get_bookmarks_by_user_id(user.id) == []


async def test_study_resource_filters(storage):
    for sample in SAMPLE_STUDY_RESOURCES:
        await storage.create_study_resource(sample)

    prelims = await storage.get_study_resources(exam_stage="prelims")
    assert [r.title for r in prelims] == ["Geography Notes", "Tamil Nadu History"]

    books = await storage.get_study_resources(category="book", subject="Polity")
    assert [r.title for r in books] == ["Indian Polity"]

    assert len(await storage.get_study_resources()) == 3


async def test_chat_session_messages_replaced_on_update(storage):
    user = await storage.create_user("alice", "alice@example.com", "hashed")
    first = [ChatMessage(role="user", content="hi", timestamp="2024-03-01T12:00:00+00:00")]

    session = await storage.create_chat_session(user.id, first)
    assert (await storage.get_chat_session(session.id)).messages == first

    updated = first + [ChatMessage(role="assistant", content="hello", timestamp="2024-03-01T12:00:01+00:00")]
    await storage.update_chat_session(session.id, updated)

    stored = await storage.get_chat_session(session.id)
    assert [m.content for m in stored.messages] == ["hi", "hello"]
    assert [s.id for s in await storage.get_chat_sessions_by_user_id(user.id)] == [session.id]


async def test_health_check(storage):
    assert await storage.health_check() is True


async def test_memory_storage_seeds_study_resources_on_initialize():
    store = MemoryStorage()
    assert await store.get_study_resources() == []

    await store.initialize()
    await store.initialize()

    resources = await store.get_study_resources()
    assert sorted(r.title for r in resources) == ["Geography Notes", "Indian Polity", "Tamil Nadu History"]


async def test_memory_storage_returns_copies_on_update():
    store = MemoryStorage(seed=False)
    article = await store.create_article(new_article(1))

    await store.update_article_likes(article.id, 3)

    assert article.likes == 0
    assert (await store.get_article_by_id(article.id)).likes == 3


def test_create_storage_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_storage("redis")


def test_create_storage_memory():
    assert isinstance(create_storage("memory"), MemoryStorage)


async def test_study_resource_without_file_url(storage):
    resource = await storage.create_study_resource(
        NewStudyResource(title="Mock Test", category="test", subject="General", exam_stage="prelims")
    )

    assert resource.file_url is None
    assert (await storage.get_study_resources(category="test"))[0].id == resource.id


async def test_database_initialize_creates_schema_and_close_releases_engine():
    store = DatabaseStorage("sqlite+aiosqlite:///:memory:")
    assert await store.health_check() is False

    await store.initialize()
    assert await store.get_articles() == []
    assert await store.health_check() is True

    await store.close()
    assert await store.health_check() is False
