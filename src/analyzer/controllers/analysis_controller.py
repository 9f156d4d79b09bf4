import asyncio
import logging
from enum import Enum
from typing import Optional

from analyzer.errors import AnalysisError
from analyzer.managers.link_accessibility_manager import LinkAccessibilityManager
from analyzer.model import AnalyzerSettings, FetchedDocument, LinkCounts, PageReport
from analyzer.services.document_fetcher_service import DocumentFetcherService
from analyzer.services.generate_default_user_agent_service import generate_default_user_agent
from analyzer.services.link_harvester_service import LinkHarvesterService
from analyzer.services.link_probe_service import LinkProbeService
from analyzer.services.page_structure_service import PageStructureService

logger = logging.getLogger(__name__)


class AnalysisState(str, Enum):
    FETCHING = "fetching"
    ANALYZING = "analyzing"
    DONE = "done"


class AnalysisController:
    """
    Analyses a single web page.

    The page is fetched once. Then five branches run concurrently against the
    read-only document:
    1.  **Extractors:** doctype, title, heading tally and login-form detection,
        each in a worker thread.
    2.  **Links:** harvesting followed by the `LinkAccessibilityManager`
        probe pool.

    Every branch returns its own value; the report is assembled only after
    all of them have finished.
    """

    def __init__(self, settings: Optional[AnalyzerSettings] = None, user_agent: Optional[str] = None):
        self.settings = settings or AnalyzerSettings()
        self.user_agent = user_agent or self.settings.user_agent or generate_default_user_agent()
        self.state: Optional[AnalysisState] = None

    def _set_state(self, state: AnalysisState) -> None:
        logger.debug("Analysis state: %s -> %s", self.state.value if self.state else None, state.value)
        self.state = state

    async def analyze(self, url: str) -> PageReport:
        """
        Fetches and analyses the page at `url`.

        Raises:
            AnalysisError: one of its subclasses when the page cannot be fetched or parsed.
        """
        self._set_state(AnalysisState.FETCHING)
        try:
            async with DocumentFetcherService(self.settings, self.user_agent) as fetcher:
                document = await fetcher.fetch(url)
        except AnalysisError as e:
            self._set_state(AnalysisState.DONE)
            logger.warning("Analysis of %s failed (%s): %s", url, e.kind, e.message)
            raise

        if document.url != url:
            # Links still resolve against the requested URL.
            logger.info("%s redirected to %s.", url, document.url)
        self._set_state(AnalysisState.ANALYZING)
        structure = PageStructureService(document.soup, document.raw_html, self.settings.version_sniff_chars)

        try:
            async with LinkProbeService(self.settings, self.user_agent) as prober:
                coordinator = LinkAccessibilityManager(prober, self.settings)
                html_version, page_title, heading_counts, has_login_form, link_counts = await asyncio.gather(
                    asyncio.to_thread(structure.detect_html_version),
                    asyncio.to_thread(structure.extract_title),
                    asyncio.to_thread(structure.count_headings),
                    asyncio.to_thread(structure.has_login_form),
                    self._analyze_links(url, document, coordinator),
                )
        finally:
            self._set_state(AnalysisState.DONE)

        report = PageReport(
            html_version=html_version,
            page_title=page_title,
            heading_counts=heading_counts,
            internal_link_count=link_counts.internal,
            external_link_count=link_counts.external,
            inaccessible_link_count=link_counts.inaccessible,
            has_login_form=has_login_form,
        )
        logger.info("Analysis of %s complete.", url)
        return report

    @staticmethod
    async def _analyze_links(
            base_url: str, document: FetchedDocument, coordinator: LinkAccessibilityManager
    ) -> LinkCounts:
        links = await asyncio.to_thread(LinkHarvesterService.harvest, document.soup)
        return await coordinator.analyze(links, base_url)


def analyze_page(url: str, settings: Optional[AnalyzerSettings] = None, user_agent: Optional[str] = None) -> PageReport:
    """Synchronous entry point: runs one analysis on a fresh event loop."""
    return asyncio.run(AnalysisController(settings, user_agent).analyze(url))


def analyze_page_or_default(url: str, settings: Optional[AnalyzerSettings] = None) -> PageReport:
    """
    Like `analyze_page`, but any analysis failure yields an empty report.
    Callers cannot tell a failed fetch from an empty page with this variant.
    """
    try:
        return analyze_page(url, settings)
    except AnalysisError:
        return PageReport()
