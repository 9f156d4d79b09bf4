# src/analyzer/services/link_probe_service.py
import asyncio
import logging
from typing import Optional
from urllib.parse import urljoin

import aiohttp

from analyzer.model import AnalyzerSettings
from analyzer.utils.url_utils import UrlUtils, HTTP_SCHEMES

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class LinkProbeService:
    """
    Judges whether a link is reachable.
    Manages the aiohttp session shared by all probe workers of one analysis.

    - Only http(s) links are probed; every other scheme counts as reachable.
    - HEAD first; one GET retry when HEAD fails at the transport level.
    - Redirects are followed up to `max_redirects` hops, then the last
      response is taken as-is.
    - Any status below 400 is reachable.
    """

    def __init__(self, settings: AnalyzerSettings, user_agent: str):
        self.settings = settings
        self.user_agent = user_agent
        self.max_redirects = settings.max_redirects
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            connector = aiohttp.TCPConnector(limit=self.settings.max_probe_workers * 2)
            self.session = aiohttp.ClientSession(
                connector=connector,
                headers={'User-Agent': self.user_agent}
            )
            logger.debug("LinkProbeService: Session initialized.")

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("LinkProbeService: Session closed.")

    async def probe(self, link: str, base_url: str, timeout: Optional[float] = None) -> bool:
        """
        Checks a harvested link. `timeout` bounds each attempt (HEAD, then GET)
        including its redirect hops.
        """
        try:
            resolved = UrlUtils.resolve(base_url, link)
        except ValueError:
            logger.debug("Cannot resolve link %r against %s.", link, base_url)
            return False

        scheme = UrlUtils.get_scheme(resolved)
        if scheme not in HTTP_SCHEMES:
            # mailto:, tel:, javascript: and friends are never requested.
            logger.debug("Skipping non-http link %r (scheme=%r).", link, scheme)
            return True

        timeout = timeout if timeout is not None else self.settings.probe_timeout

        status = await self._request(resolved, "HEAD", timeout)
        if status is None:
            logger.debug("HEAD failed for %s, retrying with GET.", resolved)
            status = await self._request(resolved, "GET", timeout)
        if status is None:
            return False

        if status >= 400:
            logger.debug("Link %s returned status %d.", resolved, status)
        return status < 400

    async def _request(self, url: str, method: str, timeout: float) -> Optional[int]:
        """Returns the final status code, or None on a transport failure or timeout."""
        await self.initialize()
        try:
            return await asyncio.wait_for(self._follow_redirects(url, method), timeout=timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("%s %s failed: %s", method, url, str(e) or type(e).__name__)
            return None
        except ValueError as e:
            # Raised by aiohttp/yarl for URLs it refuses to send.
            logger.debug("%s %s rejected: %s", method, url, e)
            return None

    async def _follow_redirects(self, url: str, method: str) -> int:
        current_url = url
        hops = 0
        while True:
            async with self.session.request(method, current_url, allow_redirects=False) as response:
                status = response.status
                location = response.headers.get('Location')

            if status not in REDIRECT_STATUSES or not location or hops >= self.max_redirects:
                return status

            hops += 1
            current_url = urljoin(current_url, location)
