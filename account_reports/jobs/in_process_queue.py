"""In-process job queue using asyncio.

A fixed number of consumer tasks pull job ids off an ``asyncio.Queue`` and
run the synchronous worker function in the default thread executor, so
blocking data access never stalls the event loop.
No external broker (Redis, Celery) is needed.
"""

import asyncio
import logging
from typing import Callable, List

from account_reports.jobs.dispatcher import JobDispatcher

logger = logging.getLogger(__name__)


class InProcessQueue(JobDispatcher):
    """Local async job queue processed by ``concurrency`` consumer tasks."""

    def __init__(self, worker_fn: Callable[[str], None], concurrency: int = 1):
        """
        worker_fn: callable(job_id) -> None
            Runs one job to a terminal state. Expected never to raise.
        """
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._worker_fn = worker_fn
        self._concurrency = max(1, concurrency)
        self._tasks: List[asyncio.Task] = []
        self._running = False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._running

    async def submit(self, job_id: str) -> None:
        await self._queue.put(job_id)
        logger.debug("Queued job %s (pending=%d)", job_id, self._queue.qsize())

    async def start(self) -> None:
        self._running = True
        self._tasks = [
            asyncio.create_task(self._worker_loop(n))
            for n in range(self._concurrency)
        ]
        logger.info("Started %d job worker(s)", self._concurrency)

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Job workers stopped (%d job(s) left queued)", self.pending)

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        await self._queue.join()

    async def _worker_loop(self, worker_number: int) -> None:
        """Process jobs one at a time from the queue."""
        loop = asyncio.get_running_loop()
        while self._running:
            try:
                job_id = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await loop.run_in_executor(None, self._worker_fn, job_id)
            except Exception:
                logger.exception(
                    "Worker %d: unhandled error while running job %s",
                    worker_number,
                    job_id,
                )
            finally:
                self._queue.task_done()
