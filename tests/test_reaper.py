from datetime import timedelta

from account_reports.errors import ArtifactNotFound
from account_reports.jobs.models import JobRecord, JobStatus, utcnow
from account_reports.jobs.reaper import JobReaper

from conftest import ACCOUNT_ID


def _reaper(job_store, artifact_store):
    return JobReaper(job_store, artifact_store, interval_seconds=0.01, retention=timedelta(hours=1))


def test_overdue_processing_job_is_failed(job_store, artifact_store):
    record = job_store.add(JobRecord(target_ref=ACCOUNT_ID))
    job_store.update(record.id, lambda r: r.mark_processing(timedelta(seconds=30)))
    job_store.update(record.id, lambda r: r.advance(25))

    result = _reaper(job_store, artifact_store).run_once(now=utcnow() + timedelta(minutes=5))

    assert result["timed_out"] == 1
    failed = job_store.get(record.id)
    assert failed.status == JobStatus.FAILED
    assert "deadline" in failed.error_message
    assert failed.progress_percent == 25


def test_jobs_within_deadline_and_queued_jobs_untouched(job_store, artifact_store):
    queued = job_store.add(JobRecord(target_ref=ACCOUNT_ID))
    running = job_store.add(JobRecord(target_ref="other"))
    job_store.update(running.id, lambda r: r.mark_processing(timedelta(hours=1)))

    result = _reaper(job_store, artifact_store).run_once()

    assert result == {"timed_out": 0, "purged": 0}
    assert job_store.get(queued.id).status == JobStatus.QUEUED
    assert job_store.get(running.id).status == JobStatus.PROCESSING


def test_expired_terminal_jobs_purged_with_artifacts(job_store, artifact_store, worker):
    record = job_store.add(JobRecord(target_ref=ACCOUNT_ID))
    worker.run(record.id)
    location = job_store.get(record.id).result_location
    assert artifact_store.get(location)

    reaper = _reaper(job_store, artifact_store)
    assert reaper.run_once()["purged"] == 0

    result = reaper.run_once(now=utcnow() + timedelta(hours=2))
    assert result["purged"] == 1
    assert job_store.get(record.id) is None
    assert not artifact_store_has(artifact_store, location)


def artifact_store_has(artifact_store, location):
    try:
        artifact_store.get(location)
    except ArtifactNotFound:
        return False
    return True
