# src/analyzer/managers/link_accessibility_manager.py
import asyncio
import logging
from functools import partial
from typing import List, Optional

from analyzer.managers.link_worker_manager import LinkWorkerManager, STOP
from analyzer.managers.progress_manager import ProgressManager
from analyzer.model import AnalyzerSettings, LinkCounts, LinkVerdict
from analyzer.services.link_probe_service import LinkProbeService
from analyzer.utils.deadline import Deadline
from analyzer.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

# Closes the verdict queue once every worker has stopped.
_DONE = object()


class LinkAccessibilityManager:
    """
    Classifies and probes every harvested link and tallies the results.

    Three concurrent stages:
    1.  **Producer:** feeds the links onto a job queue, then one STOP per worker.
    2.  **Workers:** a `LinkWorkerManager` pool (at most `max_probe_workers`)
        turning each link into a `LinkVerdict`.
    3.  **Collector:** the only writer of the counters; drains the verdict
        queue until it is closed.

    The whole probing phase shares one deadline. When it passes, unfinished
    links are dropped and the counts gathered so far are returned.
    """

    def __init__(self, prober: LinkProbeService, settings: AnalyzerSettings):
        self.prober = prober
        self.settings = settings

    async def analyze(self, links: List[str], base_url: str) -> LinkCounts:
        if not links:
            return LinkCounts()

        deadline = Deadline(self.settings.probe_deadline)
        concurrency = min(self.settings.max_probe_workers, len(links))
        jobs: asyncio.Queue = asyncio.Queue()
        results: asyncio.Queue = asyncio.Queue()

        progress = None
        if self.settings.show_progress:
            progress = ProgressManager(total=len(links), desc="Probing links", unit="link")

        producer = asyncio.create_task(self._produce(links, jobs, concurrency))
        collector = asyncio.create_task(self._collect(results, progress))

        pool = LinkWorkerManager(
            work_coro=partial(self._check_link, base_url=base_url, deadline=deadline),
            jobs=jobs,
            results=results,
            concurrency=concurrency,
            deadline=deadline,
        )

        completed = False
        try:
            completed = await pool.run()
        finally:
            if not producer.done():
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)
            results.put_nowait(_DONE)
            counts = await collector
            if progress:
                progress.close(counts.inaccessible, cut_short=not completed)

        if not completed:
            logger.warning(
                "Link probing for %s stopped at the %.1fs deadline: %d of %d links tallied.",
                base_url, deadline.seconds, counts.total, len(links)
            )
        logger.info(
            "Links for %s: internal=%d external=%d inaccessible=%d",
            base_url, counts.internal, counts.external, counts.inaccessible
        )
        return counts

    @staticmethod
    async def _produce(links: List[str], jobs: asyncio.Queue, workers: int) -> None:
        for link in links:
            await jobs.put(link)
        for _ in range(workers):
            await jobs.put(STOP)

    async def _check_link(self, link: str, base_url: str, deadline: Deadline) -> Optional[LinkVerdict]:
        """Returns the verdict for one link, or None when the deadline overtook it."""
        timeout = deadline.cap(self.settings.probe_timeout)
        if timeout is None:
            return None

        is_internal = UrlUtils.is_internal_link(link, base_url)
        is_accessible = await self.prober.probe(link, base_url, timeout=timeout)

        if not is_accessible and deadline.expired:
            # The failure may only be the shared deadline cutting the request off.
            return None
        return LinkVerdict(is_internal=is_internal, is_accessible=is_accessible)

    @staticmethod
    async def _collect(results: asyncio.Queue, progress: Optional[ProgressManager]) -> LinkCounts:
        counts = LinkCounts()
        while True:
            verdict = await results.get()
            if verdict is _DONE:
                break

            if verdict.is_internal:
                counts.internal += 1
            else:
                counts.external += 1
            if not verdict.is_accessible:
                counts.inaccessible += 1

            if progress:
                progress.advance(inaccessible_count=counts.inaccessible)
        return counts
