"""Status service: read-only view of a job record for pollers."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from account_reports.errors import JobNotFound
from account_reports.jobs.models import JobRecord, JobStatus
from account_reports.jobs.store import JobStore


class JobStatusView(BaseModel):
    job_id: str
    status: JobStatus
    progress_percent: int
    is_complete: bool
    error_message: Optional[str] = None
    completed_at: Optional[datetime] = None
    result_location: Optional[str] = None
    created_at: datetime
    cancel_requested: bool = False

    @classmethod
    def from_record(cls, record: JobRecord) -> "JobStatusView":
        view = cls(
            job_id=record.id,
            status=record.status,
            progress_percent=record.progress_percent,
            is_complete=record.is_complete,
            created_at=record.created_at,
            cancel_requested=record.cancel_requested,
        )
        if record.status == JobStatus.COMPLETED:
            view.completed_at = record.completed_at
            view.result_location = record.result_location
        elif record.status == JobStatus.FAILED:
            view.error_message = record.error_message
        return view


class StatusService:
    def __init__(self, job_store: JobStore):
        self._jobs = job_store

    def get_status(self, job_id: str) -> JobStatusView:
        """Current state of ``job_id``. Never mutates the record."""
        record = self._jobs.get(job_id)
        if record is None:
            raise JobNotFound(f"Job '{job_id}' was not found.")
        return JobStatusView.from_record(record)

