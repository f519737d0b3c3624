"""
FastAPI main application for FlashPress News.
Provides REST API endpoints for the news feed, AI summarization, fake news
checks, the chat assistant, article interactions and TNPSC resources.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional, Dict, Any

from fastapi import APIRouter, FastAPI, HTTPException, Depends, File, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from flashpress import __version__
from flashpress.ai import AIServiceError, AIServices, ChatAssistant, FakeNewsDetector, TextSummarizer
from flashpress.auth.deps import (
    get_ai_services, get_auth_service, get_current_user, get_extractor,
    get_news_feed, get_optional_user, get_storage
)
from flashpress.auth.service import AuthService, ConflictError, InvalidCredentialsError, TokenPayload
from flashpress.db.entities import utcnow
from flashpress.db.storage import Storage, create_storage
from flashpress.orchestrator import ArticleNotFoundError, NewsFeed
from flashpress.scraper.api_connector import NewsAPIConnector, NewsAPIError
from flashpress.scraper.extractor import (
    ContentExtractionError, ContentExtractor, extract_youtube_video_id
)
from flashpress.utils.config import settings, get_cors_origins
from flashpress.utils.request_logger import RequestLoggerMiddleware
from flashpress.utils.syllabus import TNPSC_SYLLABUS

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

EXTRACT_PREVIEW_CHARS = 500


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Pydantic models for API requests
class RegisterRequestModel(CamelModel):
    username: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequestModel(CamelModel):
    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class SummarizeTextRequestModel(CamelModel):
    text: str = Field(..., min_length=1, description="Text to summarize")
    max_length: int = Field(default=150, ge=10, le=2000, description="Summary word budget")


class SummarizeUrlRequestModel(CamelModel):
    url: str = Field(..., min_length=1, description="Page or video URL")


class FakeCheckRequestModel(CamelModel):
    text: str = Field(..., min_length=1, description="News text to check")
    source: Optional[str] = Field(default=None, description="Claimed publisher")


class ChatRequestModel(CamelModel):
    message: str = Field(..., min_length=1)
    context: Optional[str] = None
    session_id: Optional[str] = Field(default=None, description="Chat session to append to")


class BookmarkCreateModel(CamelModel):
    resource_type: str = Field(..., min_length=1, description="article or resource")
    resource_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)


class BookmarkDeleteModel(CamelModel):
    resource_type: str = Field(..., min_length=1)
    resource_id: str = Field(..., min_length=1)


class CommentCreateModel(CamelModel):
    content: str = Field(..., min_length=1, max_length=5000)


# Pydantic models for API responses
class UserModel(CamelModel):
    id: str
    username: str
    email: str
    created_at: datetime


class AuthResponseModel(CamelModel):
    user: UserModel
    token: str


class ArticleModel(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    url: str
    image_url: Optional[str] = None
    category: str
    source: str
    published_at: datetime
    likes: int = 0
    created_at: datetime


class ArticlesResponseModel(CamelModel):
    articles: List[ArticleModel]


class ArticleResponseModel(CamelModel):
    article: ArticleModel


class SearchResultModel(CamelModel):
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    url: str
    image_url: Optional[str] = None
    source: str
    published_at: Optional[datetime] = None


class SearchResponseModel(CamelModel):
    articles: List[SearchResultModel]
    total_results: int


class SummaryResponseModel(CamelModel):
    summary: str


class ExtractedSummaryResponseModel(CamelModel):
    summary: str
    extracted_text: str


class FakeCheckResponseModel(CamelModel):
    is_real: bool
    confidence: float
    explanation: str
    source_credibility: str


class ChatResponseModel(CamelModel):
    response: str
    session_id: Optional[str] = None


class ChatMessageModel(CamelModel):
    role: str
    content: str
    timestamp: str


class ChatSessionModel(CamelModel):
    id: str
    user_id: Optional[str] = None
    messages: List[ChatMessageModel]
    created_at: datetime


class ChatSessionsResponseModel(CamelModel):
    sessions: List[ChatSessionModel]


class BookmarkModel(CamelModel):
    id: str
    user_id: str
    resource_type: str
    resource_id: str
    title: str
    created_at: datetime


class BookmarkResponseModel(CamelModel):
    bookmark: BookmarkModel


class BookmarksResponseModel(CamelModel):
    bookmarks: List[BookmarkModel]


class LikeResponseModel(CamelModel):
    liked: bool
    likes: int


class CommentModel(CamelModel):
    id: str
    article_id: str
    user_id: str
    content: str
    created_at: datetime


class CommentResponseModel(CamelModel):
    comment: CommentModel


class CommentsResponseModel(CamelModel):
    comments: List[CommentModel]


class StudyResourceModel(CamelModel):
    id: str
    title: str
    category: str
    subject: str
    exam_stage: str
    file_url: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime


class StudyResourcesResponseModel(CamelModel):
    resources: List[StudyResourceModel]


class MessageResponseModel(CamelModel):
    message: str


class HealthResponse(CamelModel):
    """Health check response model."""
    status: str
    storage: bool
    timestamp: datetime


def _to_model(model_cls, entity):
    """Build a wire model from a storage dataclass."""
    return model_cls(**asdict(entity))


# Application lifecycle
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting FlashPress News API...")
    storage: Storage = create_storage(settings.STORAGE_BACKEND, settings.DATABASE_URL)
    try:
        await storage.initialize()
        logger.info("Storage initialized successfully")
    except Exception as e:
        logger.error(f"Storage initialization failed: {e}")
        raise

    app.state.storage = storage
    app.state.auth_service = AuthService(
        storage,
        settings.SECRET_KEY,
        expire_days=settings.ACCESS_TOKEN_EXPIRE_DAYS
    )
    app.state.news_feed = NewsFeed(storage, NewsAPIConnector())
    app.state.ai = AIServices(
        summarizer=TextSummarizer(),
        fact_checker=FakeNewsDetector(),
        assistant=ChatAssistant()
    )
    app.state.extractor = ContentExtractor()

    yield

    # Shutdown
    logger.info("Shutting down FlashPress News API...")
    try:
        await storage.close()
        logger.info("Storage connections closed")
    except Exception as e:
        logger.error(f"Storage cleanup failed: {e}")


# Create FastAPI application
app = FastAPI(
    title="FlashPress News API",
    description="News aggregation, AI summarization and TNPSC preparation",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestLoggerMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = APIRouter(prefix=settings.API_PREFIX)


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "FlashPress News API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(storage: Storage = Depends(get_storage)):
    """Health check endpoint."""
    storage_healthy = await storage.health_check()

    return HealthResponse(
        status="healthy" if storage_healthy else "unhealthy",
        storage=storage_healthy,
        timestamp=utcnow()
    )


# Auth
@router.post("/auth/register", response_model=AuthResponseModel)
async def register(
    request: RegisterRequestModel,
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthResponseModel:
    try:
        result = await auth_service.register(request.username, request.email, request.password)
    except ConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AuthResponseModel(user=_to_model(UserModel, result.user), token=result.token)


@router.post("/auth/login", response_model=AuthResponseModel)
async def login(
    request: LoginRequestModel,
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthResponseModel:
    try:
        result = await auth_service.login(request.username, request.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))

    return AuthResponseModel(user=_to_model(UserModel, result.user), token=result.token)


@router.get("/auth/me", response_model=UserModel)
async def get_me(
    current_user: TokenPayload = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
) -> UserModel:
    """Return the authenticated user."""
    user = await storage.get_user(current_user.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return UserModel(id=user.id, username=user.username, email=user.email, created_at=user.created_at)


# News
@router.get("/news", response_model=ArticlesResponseModel)
async def get_news(
    category: Optional[str] = Query(default=None, description="Article category, or 'all'"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    news_feed: NewsFeed = Depends(get_news_feed)
) -> ArticlesResponseModel:
    """
    Stored articles for the requested page.
    When nothing is stored yet, top headlines are fetched and stored first.
    """
    try:
        articles = await news_feed.get_articles(category, page, limit)
    except NewsAPIError as e:
        logger.error(f"Fetching news failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch news articles")

    return ArticlesResponseModel(articles=[_to_model(ArticleModel, a) for a in articles])


@router.get("/news/search", response_model=SearchResponseModel)
async def search_news(
    q: str = Query(..., min_length=1, description="Search query"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    news_feed: NewsFeed = Depends(get_news_feed)
) -> SearchResponseModel:
    try:
        results = await news_feed.search(q.strip(), page, limit)
    except NewsAPIError as e:
        logger.error(f"News search failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to search news")

    return SearchResponseModel(
        articles=[_to_model(SearchResultModel, r) for r in results],
        total_results=len(results)
    )


@router.get("/articles/{article_id}", response_model=ArticleResponseModel)
async def get_article(article_id: str, storage: Storage = Depends(get_storage)) -> ArticleResponseModel:
    article = await storage.get_article_by_id(article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return ArticleResponseModel(article=_to_model(ArticleModel, article))


# Summarization
async def _summarize(ai: AIServices, text: str, max_length: int = 150) -> str:
    try:
        return await ai.summarizer.summarize(text, max_length)
    except AIServiceError as e:
        logger.error(f"Summarization failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to summarize content")


def _preview(text: str) -> str:
    return text[:EXTRACT_PREVIEW_CHARS] + "..."


@router.post("/summarize/text", response_model=SummaryResponseModel)
async def summarize_text(
    request: SummarizeTextRequestModel,
    ai: AIServices = Depends(get_ai_services)
) -> SummaryResponseModel:
    summary = await _summarize(ai, request.text, request.max_length)
    return SummaryResponseModel(summary=summary)


@router.post("/summarize/url", response_model=ExtractedSummaryResponseModel)
async def summarize_url(
    request: SummarizeUrlRequestModel,
    ai: AIServices = Depends(get_ai_services),
    extractor: ContentExtractor = Depends(get_extractor)
) -> ExtractedSummaryResponseModel:
    try:
        text = await extractor.fetch_url_text(request.url.strip())
    except ContentExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    summary = await _summarize(ai, text)
    return ExtractedSummaryResponseModel(summary=summary, extracted_text=_preview(text))


@router.post("/summarize/pdf", response_model=ExtractedSummaryResponseModel)
async def summarize_pdf(
    file: Optional[UploadFile] = File(default=None),
    ai: AIServices = Depends(get_ai_services),
    extractor: ContentExtractor = Depends(get_extractor)
) -> ExtractedSummaryResponseModel:
    if file is None:
        raise HTTPException(status_code=400, detail="PDF file is required")

    data = await file.read()
    try:
        text = await extractor.extract_pdf_text(data)
    except ContentExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    summary = await _summarize(ai, text)
    return ExtractedSummaryResponseModel(summary=summary, extracted_text=_preview(text))


@router.post("/summarize/youtube", response_model=ExtractedSummaryResponseModel)
async def summarize_youtube(
    request: SummarizeUrlRequestModel,
    ai: AIServices = Depends(get_ai_services),
    extractor: ContentExtractor = Depends(get_extractor)
) -> ExtractedSummaryResponseModel:
    video_id = extract_youtube_video_id(request.url)
    if not video_id:
        raise HTTPException(status_code=400, detail="Invalid YouTube URL")

    try:
        text = await extractor.fetch_youtube_transcript(video_id)
    except ContentExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    summary = await _summarize(ai, text)
    return ExtractedSummaryResponseModel(summary=summary, extracted_text=_preview(text))


# Fake news detection
@router.post("/fakecheck", response_model=FakeCheckResponseModel)
async def fake_check(
    request: FakeCheckRequestModel,
    ai: AIServices = Depends(get_ai_services)
) -> FakeCheckResponseModel:
    try:
        report = await ai.fact_checker.analyze(request.text, request.source)
    except AIServiceError as e:
        logger.error(f"Fake news check failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to check news authenticity")

    return _to_model(FakeCheckResponseModel, report)


# AI chat
@router.post("/chat", response_model=ChatResponseModel, response_model_exclude_none=True)
async def chat(
    request: ChatRequestModel,
    current_user: Optional[TokenPayload] = Depends(get_optional_user),
    ai: AIServices = Depends(get_ai_services),
    news_feed: NewsFeed = Depends(get_news_feed)
) -> ChatResponseModel:
    """
    Ask the assistant a question.
    Authenticated requests carrying a sessionId are saved to that session.
    """
    try:
        reply = await ai.assistant.reply(request.message, request.context)
    except AIServiceError as e:
        logger.error(f"AI chat failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to get AI response")

    session_id = None
    if current_user and request.session_id:
        try:
            session_id = await news_feed.record_chat_exchange(
                current_user.user_id, request.session_id, request.message, reply
            )
        except Exception as e:
            logger.error(f"Saving chat session failed: {e}")

    return ChatResponseModel(response=reply, session_id=session_id)


@router.get("/chat/sessions", response_model=ChatSessionsResponseModel)
async def get_chat_sessions(
    current_user: TokenPayload = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
) -> ChatSessionsResponseModel:
    sessions = await storage.get_chat_sessions_by_user_id(current_user.user_id)
    return ChatSessionsResponseModel(sessions=[_to_model(ChatSessionModel, s) for s in sessions])


# TNPSC resources
@router.get("/tnpsc/resources", response_model=StudyResourcesResponseModel)
async def get_tnpsc_resources(
    category: Optional[str] = Query(default=None),
    subject: Optional[str] = Query(default=None),
    exam_stage: Optional[str] = Query(default=None, alias="examStage"),
    storage: Storage = Depends(get_storage)
) -> StudyResourcesResponseModel:
    resources = await storage.get_study_resources(category, subject, exam_stage)
    return StudyResourcesResponseModel(resources=[_to_model(StudyResourceModel, r) for r in resources])


@router.get("/tnpsc/syllabus", response_model=Dict[str, Any])
async def get_tnpsc_syllabus() -> Dict[str, Any]:
    return TNPSC_SYLLABUS


# Article interactions
@router.post("/articles/{article_id}/like", response_model=LikeResponseModel)
async def toggle_like(
    article_id: str,
    current_user: TokenPayload = Depends(get_current_user),
    news_feed: NewsFeed = Depends(get_news_feed)
) -> LikeResponseModel:
    try:
        result = await news_feed.toggle_like(current_user.user_id, article_id)
    except ArticleNotFoundError:
        raise HTTPException(status_code=404, detail="Article not found")

    return LikeResponseModel(liked=result.liked, likes=result.likes)


@router.get("/articles/{article_id}/comments", response_model=CommentsResponseModel)
async def get_comments(article_id: str, storage: Storage = Depends(get_storage)) -> CommentsResponseModel:
    comments = await storage.get_comments_by_article_id(article_id)
    return CommentsResponseModel(comments=[_to_model(CommentModel, c) for c in comments])


@router.post("/articles/{article_id}/comments", response_model=CommentResponseModel)
async def create_comment(
    article_id: str,
    request: CommentCreateModel,
    current_user: TokenPayload = Depends(get_current_user),
    news_feed: NewsFeed = Depends(get_news_feed)
) -> CommentResponseModel:
    try:
        comment = await news_feed.add_comment(article_id, current_user.user_id, request.content)
    except ArticleNotFoundError:
        raise HTTPException(status_code=404, detail="Article not found")

    return CommentResponseModel(comment=_to_model(CommentModel, comment))


# Bookmarks
@router.get("/bookmarks", response_model=BookmarksResponseModel)
async def get_bookmarks(
    current_user: TokenPayload = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
) -> BookmarksResponseModel:
    bookmarks = await storage.get_bookmarks_by_user_id(current_user.user_id)
    return BookmarksResponseModel(bookmarks=[_to_model(BookmarkModel, b) for b in bookmarks])


@router.post("/bookmarks", response_model=BookmarkResponseModel)
async def create_bookmark(
    request: BookmarkCreateModel,
    current_user: TokenPayload = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
) -> BookmarkResponseModel:
    bookmark = await storage.create_bookmark(
        current_user.user_id, request.resource_type, request.resource_id, request.title
    )
    return BookmarkResponseModel(bookmark=_to_model(BookmarkModel, bookmark))


@router.delete("/bookmarks", response_model=MessageResponseModel)
async def delete_bookmark(
    request: BookmarkDeleteModel,
    current_user: TokenPayload = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
) -> MessageResponseModel:
    await storage.delete_bookmark(current_user.user_id, request.resource_type, request.resource_id)
    return MessageResponseModel(message="Bookmark removed")


app.include_router(router)


# Error handlers
def _error_body(message: Any, status_code: int) -> Dict[str, Any]:
    return {
        "message": message,
        "status_code": status_code,
        "timestamp": utcnow().isoformat()
    }


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, exc.status_code),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    """Malformed request bodies and parameters are client errors."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
            "type": error.get("type", "")
        }
        for error in exc.errors()
    ]
    content = _error_body("Invalid request data", status.HTTP_400_BAD_REQUEST)
    content["errors"] = errors
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle general exceptions."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", 500)
    )


if __name__ == "__main__":
    uvicorn.run(
        "flashpress.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
