"""
Text extraction from web pages, PDF uploads and YouTube transcripts.
Output feeds the summarizer; blocking libraries run in worker threads.
"""

import asyncio
import io
import logging
import re
from typing import Any, Dict, Optional

import aiohttp
from bs4 import BeautifulSoup
from newspaper import Article
from newspaper.article import ArticleException
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from flashpress.utils.config import get_extraction_config

logger = logging.getLogger(__name__)

MAX_URL_TEXT_CHARS = 5000
MIN_ARTICLE_CHARS = 100

YOUTUBE_ID_PATTERN = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\n?#]+)")

CONTENT_SELECTORS = [
    'article',
    '.article-content',
    '.post-content',
    '.entry-content',
    '.content',
    'main',
    '.main-content'
]


class ContentExtractionError(Exception):
    """Raised when no usable text can be obtained from a URL, PDF or video."""


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class ContentExtractor:
    """
    Pulls plain text out of the inputs accepted by the summarize endpoints.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or get_extraction_config()
        self.timeout = aiohttp.ClientTimeout(total=self.config["timeout"])
        self.user_agent = self.config["user_agent"]
        self.max_upload_bytes = self.config["max_upload_bytes"]

    async def fetch_url_text(self, url: str) -> str:
        """
        Fetch a web page and return its readable text, capped at 5000 characters.

        newspaper3k is tried first; pages it cannot parse fall back to
        BeautifulSoup over the raw HTML.

        Raises:
            ContentExtractionError: page could not be fetched or had no text
        """
        text = await asyncio.to_thread(self._newspaper_text, url)

        if not text:
            text = await self._manual_content_extraction(url)

        text = _normalize(text)
        if not text:
            raise ContentExtractionError("No readable text found at URL")

        return text[:MAX_URL_TEXT_CHARS]

    def _newspaper_text(self, url: str) -> str:
        try:
            article = Article(url, request_timeout=self.config["timeout"])
            article.download()
            article.parse()
        except ArticleException as e:
            logger.debug(f"newspaper3k could not extract {url}: {e}")
            return ""

        text = (article.text or "").strip()
        return text if len(text) > MIN_ARTICLE_CHARS else ""

    async def _manual_content_extraction(self, url: str) -> str:
        """
        Manual content extraction using BeautifulSoup as fallback.
        """
        try:
            async with aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent}
            ) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise ContentExtractionError("Failed to fetch content from URL")
                    html = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Fetching {url} failed: {e}")
            raise ContentExtractionError("Failed to fetch content from URL") from e

        soup = BeautifulSoup(html, 'html.parser')

        for tag in soup(["script", "style", "nav", "header", "footer", "aside"]):
            tag.decompose()

        for selector in CONTENT_SELECTORS:
            content_elem = soup.select_one(selector)
            if content_elem:
                text = content_elem.get_text(strip=True, separator=' ')
                if len(text) > 200:
                    return text

        paragraphs = soup.find_all('p')
        text = ' '.join(p.get_text(strip=True) for p in paragraphs)
        if len(text) > MIN_ARTICLE_CHARS:
            return text

        # Whole-page text for pages without paragraph markup
        return soup.get_text(separator=' ')

    async def extract_pdf_text(self, data: bytes) -> str:
        if len(data) > self.max_upload_bytes:
            raise ContentExtractionError("PDF file is too large")
        return await asyncio.to_thread(extract_pdf_text, data)

    async def fetch_youtube_transcript(self, video_id: str) -> str:
        return await asyncio.to_thread(fetch_youtube_transcript, video_id)


def extract_pdf_text(data: bytes) -> str:
    """
    Extract the text of every page of a PDF document.

    Raises:
        ContentExtractionError: unreadable PDF or no extractable text
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as e:
        raise ContentExtractionError(f"Could not read PDF: {e}") from e

    text = _normalize(" ".join(pages))
    if not text:
        raise ContentExtractionError("No text found in PDF")
    return text


def extract_youtube_video_id(url: str) -> Optional[str]:
    """Video id from a youtube.com/watch?v= or youtu.be/ link, else None."""
    match = YOUTUBE_ID_PATTERN.search(url or "")
    return match.group(1) if match else None


def fetch_youtube_transcript(video_id: str) -> str:
    """
    Download a video's transcript and join the caption snippets.

    Raises:
        ContentExtractionError: transcript unavailable or empty
    """
    try:
        transcript = YouTubeTranscriptApi().fetch(video_id)
    except CouldNotRetrieveTranscript as e:
        logger.info(f"No transcript for video {video_id}: {e.__class__.__name__}")
        raise ContentExtractionError("No transcript available for this video") from e

    text = _normalize(" ".join(snippet.text for snippet in transcript))
    if not text:
        raise ContentExtractionError("No transcript available for this video")
    return text
