"""Background worker: runs the report pipeline for one job.

Pipeline (fixed order):
1. claim the job (queued -> processing)
2. re-validate the target account still resolves
3. gather contacts, opportunities, cases (checkpoints 25 / 50 / 75)
4. aggregate into a structured report with summary metrics
5. format into the requested output format
6. persist the artifact and mark the job completed (100)

Any exception is caught once in ``run`` and recorded on the job record;
nothing is raised back to the dispatcher.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List

from account_reports.config import Settings
from account_reports.errors import InvalidTransition, JobError, JobNotFound, ResourceNotFound
from account_reports.jobs.models import JobRecord
from account_reports.jobs.store import JobStore
from account_reports.reports.aggregation import build_report
from account_reports.reports.formatters import format_report
from account_reports.resources.store import RelatedCategory, ResourceStore
from account_reports.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)

# Fixed checkpoints, not derived from data volume.
GATHER_CHECKPOINTS = (
    (RelatedCategory.CONTACTS, 25),
    (RelatedCategory.OPPORTUNITIES, 50),
    (RelatedCategory.CASES, 75),
)

CANCELLED_MESSAGE = "Job cancelled by request."


class JobCancelled(Exception):
    pass


class JobAborted(Exception):
    """The record went terminal underneath the worker (e.g. timed out)."""


class ReportWorker:
    def __init__(
        self,
        job_store: JobStore,
        resource_store: ResourceStore,
        artifact_store: ArtifactStore,
        settings: Settings,
    ):
        self._jobs = job_store
        self._resources = resource_store
        self._artifacts = artifact_store
        self._settings = settings

    def __call__(self, job_id: str) -> None:
        self.run(job_id)

    def run(self, job_id: str) -> None:
        """Run one job to a terminal state. Never raises."""
        try:
            record = self._jobs.update(
                job_id,
                lambda r: r.mark_processing(
                    timedelta(seconds=self._settings.job_timeout_seconds)
                ),
            )
        except (JobNotFound, InvalidTransition) as e:
            logger.warning("Skipping job %s: %s", job_id, e)
            return

        stage = "starting"
        try:
            for stage in self._pipeline(record):
                logger.debug("Job %s entering stage: %s", job_id, stage)
            logger.info("Job %s completed", job_id)
        except JobAborted as e:
            logger.warning("Job %s stopped during %s: %s", job_id, stage, e)
        except JobCancelled:
            logger.info("Job %s cancelled during %s", job_id, stage)
            self._fail(job_id, CANCELLED_MESSAGE)
        except JobError as e:
            logger.warning("Job %s failed during %s: %s", job_id, stage, e.message)
            self._fail(job_id, e.message)
        except Exception:
            logger.exception("Job %s failed during %s", job_id, stage)
            self._fail(job_id, f"Report generation failed while {stage}.")

    def _pipeline(self, record: JobRecord):
        """Run the stages, yielding each stage name before it starts.

        The caller keeps the last yielded name so failures can say where
        they happened.
        """
        job_id = record.id
        target_ref = record.target_ref
        include_history = record.options.include_extended_history

        yield "validating target"
        self._check(job_id)
        if not self._resources.exists(target_ref):
            raise ResourceNotFound(
                f"Account with ID '{target_ref}' no longer exists or is not accessible."
            )

        gathered: Dict[RelatedCategory, List[Dict[str, Any]]] = {}
        for category, percent in GATHER_CHECKPOINTS:
            yield f"gathering {category.value}"
            gathered[category] = self._resources.fetch_related(
                target_ref, category, include_history
            )
            self._checkpoint(job_id, percent)
            logger.info(
                "Job %s gathered %d %s (%d%%)",
                job_id, len(gathered[category]), category.value, percent,
            )

        yield "aggregating"
        report = build_report(target_ref, gathered, include_extended_history=include_history)

        yield "formatting"
        formatted = format_report(report, record.options.output_format)

        yield "storing artifact"
        self._check(job_id)
        locator = self._artifacts.put(job_id, formatted.data, formatted.extension)
        try:
            self._jobs.update(job_id, lambda r: self._complete(r, locator))
        except (JobAborted, JobCancelled):
            self._artifacts.delete(locator)
            raise

    def _complete(self, record: JobRecord, locator: str) -> None:
        self._guard(record)
        record.mark_completed(locator)

    def _check(self, job_id: str) -> None:
        """Stop if the job was cancelled or finished by someone else."""
        record = self._jobs.get(job_id)
        if record is None:
            raise JobAborted("job record was removed")
        self._guard(record)

    def _checkpoint(self, job_id: str, percent: int) -> None:
        def mutate(record: JobRecord) -> None:
            self._guard(record)
            record.advance(percent)

        self._jobs.update(job_id, mutate)

    @staticmethod
    def _guard(record: JobRecord) -> None:
        if record.status.is_terminal:
            raise JobAborted(f"job is already {record.status.value}")
        if record.cancel_requested:
            raise JobCancelled()

    def _fail(self, job_id: str, message: str) -> None:
        try:
            self._jobs.update(job_id, lambda r: r.mark_failed(message))
        except (JobNotFound, InvalidTransition) as e:
            logger.warning("Could not record failure for job %s: %s", job_id, e)
