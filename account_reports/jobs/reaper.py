"""Periodic housekeeping: time out stuck jobs, purge expired ones."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from account_reports.errors import InvalidTransition, JobNotFound
from account_reports.jobs.models import JobRecord, utcnow
from account_reports.jobs.store import JobStore
from account_reports.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


class JobReaper:
    def __init__(
        self,
        job_store: JobStore,
        artifact_store: ArtifactStore,
        interval_seconds: float = 30.0,
        retention: timedelta = timedelta(hours=24),
    ):
        self._jobs = job_store
        self._artifacts = artifact_store
        self._interval = interval_seconds
        self._retention = retention
        self._task: Optional[asyncio.Task] = None

    def run_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or utcnow()
        timed_out = 0
        for record in self._jobs.list_overdue(now):
            if self._time_out(record, now):
                timed_out += 1

        purged = self._jobs.purge_terminal_before(now - self._retention)
        for record in purged:
            if record.result_location:
                self._artifacts.delete(record.result_location)

        if timed_out or purged:
            logger.info("Reaper timed out %d job(s), purged %d", timed_out, len(purged))
        return {"timed_out": timed_out, "purged": len(purged)}

    def _time_out(self, record: JobRecord, now: datetime) -> bool:
        message = (
            f"Job exceeded its deadline of {record.deadline.isoformat()} and was stopped."
        )

        def mutate(current: JobRecord) -> None:
            # Re-check under the store lock; the worker may have finished.
            if not current.is_past_deadline(now):
                raise InvalidTransition("job is no longer overdue")
            current.mark_failed(message)

        try:
            self._jobs.update(record.id, mutate)
        except (InvalidTransition, JobNotFound):
            return False
        logger.warning("Job %s timed out", record.id)
        return True

    async def start(self) -> None:
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("Reaper pass failed")
