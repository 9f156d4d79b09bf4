"""
Link Worker Manager
Runs a fixed pool of asynchronous workers over a job queue under a shared deadline.
"""

import asyncio
import logging
from typing import Callable, Awaitable, Any, List, Optional

from analyzer.utils.deadline import Deadline

logger = logging.getLogger(__name__)

# Put once per worker on the job queue to mark the end of the input.
STOP = object()


class LinkWorkerManager:
    """
    Manages a pool of asynchronous workers that pull items from a job queue
    and push each non-None result onto a result queue.

    Workers check the deadline before pulling the next item. When the deadline
    passes, workers still running are cancelled; results already pushed stay
    on the result queue.
    """

    def __init__(
            self,
            work_coro: Callable[[Any], Awaitable[Optional[Any]]],
            jobs: asyncio.Queue,
            results: asyncio.Queue,
            concurrency: int,
            deadline: Deadline,
    ):
        """
        Args:
            work_coro: Asynchronous function to execute for each queue item.
            jobs: The queue to retrieve items from; each worker stops on STOP.
            results: The queue results are pushed onto.
            concurrency: Number of parallel worker tasks to spawn.
            deadline: Shared budget for the whole pool.
        """
        self.work_coro = work_coro
        self.jobs = jobs
        self.results = results
        self.concurrency = concurrency
        self.deadline = deadline

        self._tasks: List[asyncio.Task] = []
        self._has_started: bool = False

    async def run(self) -> bool:
        """
        Start the worker pool and wait until it drains or the deadline passes.

        Returns:
            True if every worker finished on its own, False if the deadline cut the run short.
        """
        if self._has_started:
            logger.warning("LinkWorkerManager already running.")
            return False

        self._has_started = True
        logger.debug("Starting %d workers...", self.concurrency)

        self._tasks = [
            asyncio.create_task(self._worker_loop(f"Worker-{i + 1}"))
            for i in range(self.concurrency)
        ]

        try:
            _, pending = await asyncio.wait(self._tasks, timeout=self.deadline.remaining)
        except asyncio.CancelledError:
            await self.shutdown()
            raise

        if pending:
            logger.info("Deadline of %.1fs reached; abandoning %d busy workers.",
                        self.deadline.seconds, len(pending))
            await self.shutdown()

        logger.debug("All workers have been shut down and gathered.")
        # Workers that saw the deadline leave unprocessed items behind.
        return not pending and self.jobs.empty()

    async def shutdown(self) -> None:
        """Cancels every worker that is still running and waits for them."""
        running = [task for task in self._tasks if not task.done()]
        for task in running:
            task.cancel()
        await asyncio.gather(*running, return_exceptions=True)

    async def _worker_loop(self, name: str) -> None:
        logger.debug("[%s] Started.", name)

        while not self.deadline.expired:
            item = await self.jobs.get()
            if item is STOP:
                break

            try:
                result = await self.work_coro(item)
            except asyncio.CancelledError:
                logger.debug("[%s] Cancelled while processing %s.", name, item)
                raise
            except Exception:
                logger.exception("[%s] Unhandled exception processing item: %s", name, item)
                continue

            if result is not None:
                self.results.put_nowait(result)

        logger.debug("[%s] Stopped.", name)
