"""Standard error body and the mapping from engine errors to HTTP."""

from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from account_reports.errors import (
    ArtifactNotFound,
    InvalidTransition,
    JobError,
    JobNotCancellable,
    JobNotFound,
    JobNotReady,
    ResourceNotFound,
    ServiceUnavailable,
    ValidationError,
)


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, List[str]]] = None


# Checked in order; subclasses before their bases.
_STATUS_CODES = (
    (ValidationError, 400),
    (ResourceNotFound, 404),
    (JobNotFound, 404),
    (ArtifactNotFound, 404),
    (JobNotCancellable, 409),
    (JobNotReady, 409),
    (InvalidTransition, 409),
    (ServiceUnavailable, 503),
)


def status_code_for(error: JobError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_response(error: JobError) -> JSONResponse:
    body = ErrorResponse(code=error.code, message=error.message, details=error.details)
    return JSONResponse(
        status_code=status_code_for(error),
        content=body.model_dump(exclude_none=True),
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(JobError)
    async def handle_job_error(request: Request, exc: JobError):
        return error_response(exc)
