"""In-memory job record repository, keyed by job id."""

import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from account_reports.errors import JobNotFound
from account_reports.jobs.models import JobOptions, JobRecord, JobStatus


class JobStore:
    """Holds every job record and serialises writes to them.

    Readers always receive deep copies, so a poll never observes a record
    while a mutation is half applied and can never write back through it.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._jobs: Dict[str, JobRecord] = {}

    def add(self, record: JobRecord) -> JobRecord:
        with self._lock:
            if record.id in self._jobs:
                raise ValueError(f"Job {record.id} already exists")
            self._jobs[record.id] = _validated(record)
            return record.model_copy(deep=True)

    def add_unless_active(self, record: JobRecord) -> Tuple[JobRecord, bool]:
        """Add ``record`` unless an identical request is already active.

        Returns the stored record and whether it was newly created.
        """
        with self._lock:
            existing = self.find_active(record.target_ref, record.options)
            if existing is not None:
                return existing, False
            return self.add(record), True

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            record = self._jobs.get(job_id)
            return record.model_copy(deep=True) if record else None

    def update(self, job_id: str, mutate: Callable[[JobRecord], None]) -> JobRecord:
        """Apply ``mutate`` to a working copy and commit it if it succeeds.

        If ``mutate`` raises, or leaves the record in a state a job record
        cannot hold, the stored record is left untouched and the exception
        propagates.
        """
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise JobNotFound(f"Job '{job_id}' was not found.")
            working = current.model_copy(deep=True)
            mutate(working)
            self._jobs[job_id] = _validated(working)
            return working.model_copy(deep=True)

    def find_active(self, target_ref: str, options: JobOptions) -> Optional[JobRecord]:
        """Oldest queued/processing, uncancelled job for the same target and options."""
        with self._lock:
            matches = [
                r for r in self._jobs.values()
                if r.target_ref == target_ref
                and r.options == options
                and r.status.is_active
                and not r.cancel_requested
            ]
            if not matches:
                return None
            return min(matches, key=lambda r: r.created_at).model_copy(deep=True)

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[JobRecord]:
        with self._lock:
            jobs = [
                r.model_copy(deep=True) for r in self._jobs.values()
                if status is None or r.status == status
            ]
        jobs.sort(key=lambda r: r.created_at)
        return jobs

    def list_overdue(self, now: datetime) -> List[JobRecord]:
        with self._lock:
            return [
                r.model_copy(deep=True) for r in self._jobs.values()
                if r.is_past_deadline(now)
            ]

    def purge_terminal_before(self, cutoff: datetime) -> List[JobRecord]:
        """Drop terminal records that finished before ``cutoff``; return them."""
        removed = []
        with self._lock:
            for job_id, record in list(self._jobs.items()):
                if (
                    record.status.is_terminal
                    and record.completed_at is not None
                    and record.completed_at < cutoff
                ):
                    removed.append(self._jobs.pop(job_id))
        return removed

    def count_by_status(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in JobStatus}
        with self._lock:
            for record in self._jobs.values():
                counts[record.status.value] += 1
        return counts


def _validated(record: JobRecord) -> JobRecord:
    # Attribute assignment skips model validation; re-run it before storing.
    return JobRecord.model_validate(record.model_dump())
