"""Cancellation of queued or processing jobs.

Cancelling only raises a flag on the record. The worker that owns the job
turns it into a failure at its next stage boundary, so the record keeps a
single writer for status changes.
"""

import logging

from account_reports.errors import JobNotCancellable
from account_reports.jobs.models import JobRecord
from account_reports.jobs.store import JobStore
from account_reports.services.status import JobStatusView

logger = logging.getLogger(__name__)


def cancel_job(job_store: JobStore, job_id: str) -> JobStatusView:
    def request(record: JobRecord) -> None:
        if record.status.is_terminal:
            raise JobNotCancellable(
                f"Job '{job_id}' is already {record.status.value} and cannot be cancelled."
            )
        record.cancel_requested = True

    record = job_store.update(job_id, request)
    logger.info("Cancellation requested for job %s (%s)", job_id, record.status.value)
    return JobStatusView.from_record(record)
