"""Job record data model and its state machine."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
import uuid

from account_reports.errors import InvalidTransition


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


class OutputFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    XML = "xml"


class JobOptions(BaseModel):
    """Closed set of parameters controlling a report's scope."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    include_extended_history: bool = False
    output_format: OutputFormat = OutputFormat.JSON


class JobRecord(BaseModel):
    """Tracks the lifecycle of one report generation job.

    Transitions go through the ``mark_*`` / ``advance`` methods, which refuse
    any edge outside queued -> processing -> (completed | failed).
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    target_ref: str
    options: JobOptions = Field(default_factory=JobOptions)
    status: JobStatus = JobStatus.QUEUED
    progress_percent: int = Field(default=0, ge=0, le=100)
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    estimated_completion_time: Optional[datetime] = None
    cancel_requested: bool = False
    error_message: str = ""
    result_location: Optional[str] = None

    @model_validator(mode="after")
    def _check_state(self) -> "JobRecord":
        if self.status == JobStatus.COMPLETED:
            if not self.result_location:
                raise ValueError("a completed job needs a result location")
            if self.error_message:
                raise ValueError("a completed job cannot carry an error message")
            if self.progress_percent != 100:
                raise ValueError("a completed job must be at 100% progress")
        elif self.status == JobStatus.FAILED:
            if not self.error_message:
                raise ValueError("a failed job needs an error message")
            if self.result_location is not None:
                raise ValueError("a failed job cannot have a result location")
        else:
            if self.completed_at is not None or self.result_location is not None or self.error_message:
                raise ValueError(
                    f"a {self.status.value} job cannot have a result, error or completion time"
                )
            if self.status == JobStatus.QUEUED and self.progress_percent != 0:
                raise ValueError("a queued job must be at 0% progress")
        return self

    @property
    def is_complete(self) -> bool:
        return self.status.is_terminal

    def mark_processing(self, timeout: Optional[timedelta] = None) -> None:
        if self.status != JobStatus.QUEUED:
            raise InvalidTransition(
                f"Job {self.id} cannot start processing from {self.status.value}"
            )
        self.status = JobStatus.PROCESSING
        self.started_at = utcnow()
        if timeout is not None:
            self.deadline = self.started_at + timeout

    def advance(self, percent: int) -> None:
        """Move progress forward to a checkpoint."""
        if self.status != JobStatus.PROCESSING:
            raise InvalidTransition(
                f"Job {self.id} cannot report progress while {self.status.value}"
            )
        if not 0 <= percent <= 100:
            raise InvalidTransition(f"Progress {percent} is outside 0..100")
        if percent < self.progress_percent:
            raise InvalidTransition(
                f"Progress cannot move backwards ({self.progress_percent} -> {percent})"
            )
        self.progress_percent = percent

    def mark_completed(self, result_location: str) -> None:
        if self.status != JobStatus.PROCESSING:
            raise InvalidTransition(
                f"Job {self.id} cannot complete from {self.status.value}"
            )
        if not result_location:
            raise InvalidTransition("A completed job needs a result location")
        self.progress_percent = 100
        self.result_location = result_location
        self.error_message = ""
        self.status = JobStatus.COMPLETED
        self.completed_at = utcnow()

    def mark_failed(self, error_message: str) -> None:
        # Progress stays wherever the pipeline left it.
        if self.status != JobStatus.PROCESSING:
            raise InvalidTransition(
                f"Job {self.id} cannot fail from {self.status.value}"
            )
        self.error_message = error_message or "Job failed"
        self.result_location = None
        self.status = JobStatus.FAILED
        self.completed_at = utcnow()

    def is_past_deadline(self, now: Optional[datetime] = None) -> bool:
        if self.status != JobStatus.PROCESSING or self.deadline is None:
            return False
        return (now or utcnow()) > self.deadline
