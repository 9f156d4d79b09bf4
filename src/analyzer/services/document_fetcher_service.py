# src/analyzer/services/document_fetcher_service.py
import asyncio
import logging
from typing import Optional

import aiohttp
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from analyzer.errors import (
    AnalysisTimeoutError,
    DocumentParseError,
    FetchBadStatusError,
    FetchTransportError,
)
from analyzer.model import AnalyzerSettings, FetchedDocument

logger = logging.getLogger(__name__)


class DocumentFetcherService:
    """
    Fetches the page under analysis with a single GET and parses it.

    One attempt only: transport errors, timeouts, non-200 answers and parser
    failures are raised as distinct AnalysisError subclasses.
    """

    def __init__(self, settings: AnalyzerSettings, user_agent: str):
        self.settings = settings
        self.user_agent = user_agent
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.fetch_timeout),
                headers={
                    'Accept-Encoding': 'gzip, deflate',
                    'User-Agent': self.user_agent
                }
            )
            logger.debug("DocumentFetcherService: Session initialized.")

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("DocumentFetcherService: Session closed.")

    async def fetch(self, url: str) -> FetchedDocument:
        """Retrieves and parses the HTML document at the given URL."""
        await self.initialize()

        try:
            async with self.session.get(url) as response:
                status = response.status
                if status != 200:
                    logger.warning("Unexpected status code %d for %s", status, url)
                    raise FetchBadStatusError(url, status)

                raw_html = await self._read_content(response)
                final_url = str(response.url)

        except asyncio.TimeoutError as e:
            logger.error("Timed out fetching %s after %.1fs", url, self.settings.fetch_timeout)
            raise AnalysisTimeoutError(
                url, f"timed out after {self.settings.fetch_timeout:g}s fetching URL"
            ) from e
        except aiohttp.ClientError as e:
            logger.error("Failed to fetch %s: %s", url, e)
            raise FetchTransportError(url, f"failed to fetch URL: {e}") from e

        soup = self.parse(url, raw_html)

        logger.info(
            "Fetched and parsed %s (status_code=%d, content_length=%d)",
            url, status, len(raw_html)
        )
        return FetchedDocument(url=final_url, raw_html=raw_html, soup=soup)

    @staticmethod
    async def _read_content(response: aiohttp.ClientResponse) -> str:
        """Reads the full body as text, falling back to lossy UTF-8."""
        try:
            return await response.text()
        except UnicodeDecodeError:
            content_bytes = await response.read()
            return content_bytes.decode('utf-8', errors='replace')

    @staticmethod
    def parse(url: str, raw_html: str) -> BeautifulSoup:
        """
        Builds the document tree. On duplicate attribute keys the first value
        is kept.
        """
        try:
            return BeautifulSoup(raw_html, "html.parser", on_duplicate_attribute="ignore")
        except (ParserRejectedMarkup, AssertionError) as e:
            logger.error("Failed to parse HTML from %s: %s", url, e)
            raise DocumentParseError(url, f"failed to parse HTML: {e}") from e
