"""Exception types raised by the report job engine.

Initiation and polling errors are raised synchronously to the caller.
Worker-side failures never surface as exceptions; they are recorded on the
job record instead.
"""

from typing import Dict, List, Optional


class JobError(Exception):
    """Base class for all job engine errors."""

    code = "JOB_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(JobError):
    """Job request is malformed (bad options, blank target)."""

    code = "VALIDATION_ERROR"


class ResourceNotFound(JobError):
    """Target resource does not resolve in the resource store."""

    code = "NOT_FOUND"


class JobNotFound(JobError):
    code = "JOB_NOT_FOUND"


class JobNotCancellable(JobError):
    code = "CONFLICT"


class InvalidTransition(JobError):
    """A job record was asked to make a move its state machine forbids."""

    code = "INVALID_TRANSITION"


class ArtifactNotFound(JobError):
    code = "ARTIFACT_NOT_FOUND"


class InvalidIdentifier(ValidationError):
    """An identifier is not in the expected (UUID) format."""

    code = "INVALID_ID"


class JobNotReady(JobError):
    """The job has no artifact to hand out yet."""

    code = "CONFLICT"


class ServiceUnavailable(JobError):
    code = "SERVICE_UNAVAILABLE"
