"""Job initiator: validate a report request, estimate it, queue it."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from account_reports.config import Settings
from account_reports.errors import ResourceNotFound, ValidationError
from account_reports.jobs.dispatcher import JobDispatcher
from account_reports.jobs.models import JobOptions, JobRecord, utcnow
from account_reports.jobs.store import JobStore
from account_reports.resources.store import RelatedCategory, ResourceStore

logger = logging.getLogger(__name__)

# Smallest lead time an estimate may report, so it is always in the future.
MIN_ESTIMATE_SECONDS = 1.0


class StartJobResult(BaseModel):
    job_id: str
    estimated_completion_time: datetime
    created: bool = True


def estimate_completion(
    related_count: int,
    include_extended_history: bool,
    settings: Settings,
    now: Optional[datetime] = None,
) -> datetime:
    """Advisory completion time; never used for scheduling or timeouts."""
    seconds = settings.estimate_baseline_seconds
    seconds += settings.estimate_seconds_per_item * max(related_count, 0)
    if include_extended_history:
        seconds += settings.estimate_extended_history_seconds
    return (now or utcnow()) + timedelta(seconds=max(seconds, MIN_ESTIMATE_SECONDS))


def parse_options(options: Union[JobOptions, Mapping[str, Any], None]) -> JobOptions:
    if options is None:
        return JobOptions()
    if isinstance(options, JobOptions):
        return options
    try:
        return JobOptions.model_validate(dict(options))
    except PydanticValidationError as e:
        details: Dict[str, list] = {}
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"]) or "options"
            details.setdefault(field, []).append(err["msg"])
        raise ValidationError("Invalid report options.", details=details) from e
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid report options: {e}") from e


class JobInitiator:
    def __init__(
        self,
        job_store: JobStore,
        resource_store: ResourceStore,
        dispatcher: JobDispatcher,
        settings: Settings,
    ):
        self._jobs = job_store
        self._resources = resource_store
        self._dispatcher = dispatcher
        self._settings = settings

    async def start_job(
        self,
        target_ref: str,
        options: Union[JobOptions, Mapping[str, Any], None] = None,
    ) -> StartJobResult:
        """Create a queued report job and hand it to the dispatcher.

        Raises:
            ValidationError: blank target or malformed options.
            ResourceNotFound: target does not resolve.

        Both are raised before any job record exists.
        """
        if not target_ref or not str(target_ref).strip():
            raise ValidationError("A target reference is required.")
        target_ref = str(target_ref).strip()
        job_options = parse_options(options)

        # Resource store calls may block on I/O; keep them off the event loop.
        related_count = await asyncio.to_thread(
            self._resolve_and_count, target_ref, job_options.include_extended_history
        )

        estimate = estimate_completion(
            related_count, job_options.include_extended_history, self._settings
        )
        record, created = self._jobs.add_unless_active(
            JobRecord(
                target_ref=target_ref,
                options=job_options,
                estimated_completion_time=estimate,
            )
        )
        if not created:
            logger.info(
                "Merged report request for %s into active job %s", target_ref, record.id
            )
            return StartJobResult(
                job_id=record.id,
                estimated_completion_time=record.estimated_completion_time or estimate,
                created=False,
            )

        await self._dispatcher.submit(record.id)
        logger.info(
            "Queued report job %s for %s (%d related items, format=%s, history=%s)",
            record.id,
            target_ref,
            related_count,
            job_options.output_format.value,
            job_options.include_extended_history,
        )
        return StartJobResult(job_id=record.id, estimated_completion_time=estimate)

    def _resolve_and_count(self, target_ref: str, include_history: bool) -> int:
        if not self._resources.exists(target_ref):
            raise ResourceNotFound(f"Account with ID '{target_ref}' was not found.")
        return sum(
            self._resources.count_related(target_ref, category, include_history)
            for category in RelatedCategory
        )
