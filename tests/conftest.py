"""
Shared fixtures for the report job tests.

Provides: settings pointed at a temp dir, a seeded in-memory resource store,
job/artifact stores, and a dispatcher that only records submissions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from account_reports.config import Settings
from account_reports.jobs.dispatcher import JobDispatcher
from account_reports.jobs.store import JobStore
from account_reports.resources.store import InMemoryResourceStore, RelatedCategory
from account_reports.services.initiator import JobInitiator
from account_reports.services.status import StatusService
from account_reports.services.worker import ReportWorker
from account_reports.storage.artifacts import LocalArtifactStore

ACCOUNT_ID = "3f2b9c1e-8d4a-4b6e-9f0c-2a7d5e1b8c34"
MISSING_ACCOUNT_ID = "00000000-0000-4000-8000-000000000000"


class RecordingDispatcher(JobDispatcher):
    """Collects submitted job ids without running anything."""

    def __init__(self):
        self.submitted = []

    async def submit(self, job_id: str) -> None:
        self.submitted.append(job_id)

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    @property
    def pending(self) -> int:
        return len(self.submitted)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        artifact_dir=str(tmp_path / "artifacts"),
        seed_demo_data=False,
        worker_concurrency=1,
        job_timeout_seconds=60,
        estimate_baseline_seconds=10.0,
        estimate_seconds_per_item=1.0,
        estimate_extended_history_seconds=100.0,
    )


@pytest.fixture
def resource_store():
    store = InMemoryResourceStore()
    store.add_account({"id": ACCOUNT_ID, "name": "Contoso Ltd."})
    created = (datetime.now(timezone.utc) - timedelta(days=4)).isoformat()

    store.add_related(ACCOUNT_ID, RelatedCategory.CONTACTS,
                      {"id": "c1", "full_name": "Ada Contact", "is_historical": False})
    store.add_related(ACCOUNT_ID, RelatedCategory.CONTACTS,
                      {"id": "c2", "full_name": "Old Contact", "is_historical": True})
    store.add_related(ACCOUNT_ID, RelatedCategory.OPPORTUNITIES,
                      {"id": "o1", "estimated_value": 1000.0, "probability": 50,
                       "stage": "open", "is_historical": False})
    store.add_related(ACCOUNT_ID, RelatedCategory.OPPORTUNITIES,
                      {"id": "o2", "estimated_value": 3000.0, "probability": 100,
                       "stage": "won", "is_historical": False})
    store.add_related(ACCOUNT_ID, RelatedCategory.CASES,
                      {"id": "k1", "priority": "high", "state": "active",
                       "created_on": created, "is_historical": False})
    return store


@pytest.fixture
def job_store():
    return JobStore()


@pytest.fixture
def artifact_store(settings):
    return LocalArtifactStore(base_dir=settings.artifact_dir)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def initiator(job_store, resource_store, dispatcher, settings):
    return JobInitiator(job_store, resource_store, dispatcher, settings)


@pytest.fixture
def status_service(job_store):
    return StatusService(job_store)


@pytest.fixture
def worker(job_store, resource_store, artifact_store, settings):
    return ReportWorker(job_store, resource_store, artifact_store, settings)
