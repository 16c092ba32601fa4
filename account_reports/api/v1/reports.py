"""Report job API: start a report, poll it, cancel it, download it."""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Response
from pydantic import BaseModel

from account_reports.api.v1.errors import ErrorResponse
from account_reports.errors import InvalidIdentifier, JobNotReady, ServiceUnavailable
from account_reports.jobs.models import JobStatus
from account_reports.jobs.store import JobStore
from account_reports.reports.formatters import media_type_for
from account_reports.services.cancellation import cancel_job as request_cancel
from account_reports.services.initiator import JobInitiator
from account_reports.services.status import JobStatusView, StatusService
from account_reports.storage.artifacts import ArtifactStore

router = APIRouter()

# These will be set by main.py during lifespan
_initiator: Optional[JobInitiator] = None
_status_service: Optional[StatusService] = None
_job_store: Optional[JobStore] = None
_artifact_store: Optional[ArtifactStore] = None


def set_services(initiator, status_service, job_store, artifact_store):
    global _initiator, _status_service, _job_store, _artifact_store
    _initiator = initiator
    _status_service = status_service
    _job_store = job_store
    _artifact_store = artifact_store


def _require(service):
    if service is None:
        raise ServiceUnavailable("Report job services are not initialized.")
    return service


class ReportJobAccepted(BaseModel):
    job_id: str
    status: JobStatus
    estimated_completion_time: datetime
    status_url: str


_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post(
    "/accounts/{account_id}/reports",
    response_model=ReportJobAccepted,
    status_code=202,
    responses=_ERRORS,
)
async def start_report(account_id: str, options: Optional[Dict[str, Any]] = Body(default=None)):
    """Start generating a report for an account.

    Returns immediately with a job id; poll the status URL for progress.
    Options: ``include_extended_history`` (bool, default false) and
    ``output_format`` (json | csv | xml, default json).
    """
    initiator = _require(_initiator)
    try:
        uuid.UUID(account_id)
    except ValueError:
        raise InvalidIdentifier("Invalid account ID format. Must be a valid GUID.")

    result = await initiator.start_job(account_id, options or {})
    view = _require(_status_service).get_status(result.job_id)
    return ReportJobAccepted(
        job_id=result.job_id,
        status=view.status,
        estimated_completion_time=result.estimated_completion_time,
        status_url=f"/api/v1/reports/jobs/{result.job_id}",
    )


@router.get("/reports/jobs/{job_id}", response_model=JobStatusView, responses=_ERRORS)
async def get_report_status(job_id: str):
    """Get the current status of a report job."""
    return _require(_status_service).get_status(job_id)


@router.post("/reports/jobs/{job_id}/cancel", response_model=JobStatusView, responses=_ERRORS)
async def cancel_report(job_id: str):
    """Ask a queued or processing job to stop."""
    return request_cancel(_require(_job_store), job_id)


@router.get("/reports/jobs/{job_id}/artifact", responses=_ERRORS)
async def download_report(job_id: str):
    """Download the finished report of a completed job."""
    view = _require(_status_service).get_status(job_id)
    if view.status != JobStatus.COMPLETED or not view.result_location:
        raise JobNotReady(f"Job '{job_id}' is {view.status.value}; no report is available.")

    data = _require(_artifact_store).get(view.result_location)
    filename = view.result_location.rsplit("/", 1)[-1]
    return Response(
        content=data,
        media_type=media_type_for(view.result_location),
        headers={"Content-Disposition": f'attachment; filename="{job_id}-{filename}"'},
    )
