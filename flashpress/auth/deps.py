"""API dependencies: request-scoped collaborators and bearer authentication"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from flashpress.ai import AIServices
from flashpress.auth.service import AuthService, TokenPayload
from flashpress.db.storage import Storage
from flashpress.orchestrator import NewsFeed
from flashpress.scraper.extractor import ContentExtractor

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_news_feed(request: Request) -> NewsFeed:
    return request.app.state.news_feed


def get_ai_services(request: Request) -> AIServices:
    return request.app.state.ai


def get_extractor(request: Request) -> ContentExtractor:
    return request.app.state.extractor


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenPayload:
    """
    Require a valid bearer token.
    Missing token -> 401; invalid or expired token -> 403.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = auth_service.verify_token(credentials.credentials)
    if payload is None:
        logger.info("Rejected invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token",
        )

    return payload


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[TokenPayload]:
    """Return the token payload when a valid bearer token is present, else None"""
    if credentials is None or not credentials.credentials:
        return None
    return auth_service.verify_token(credentials.credentials)
