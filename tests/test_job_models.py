from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from account_reports.errors import InvalidTransition
from account_reports.jobs.models import JobOptions, JobRecord, JobStatus, OutputFormat, utcnow


def _processing(**kwargs) -> JobRecord:
    record = JobRecord(target_ref="acct-1", **kwargs)
    record.mark_processing()
    return record


def test_new_record_is_queued_with_defaults():
    record = JobRecord(target_ref="acct-1")
    assert record.status == JobStatus.QUEUED
    assert record.progress_percent == 0
    assert record.completed_at is None
    assert record.error_message == ""
    assert record.result_location is None
    assert record.options == JobOptions(
        include_extended_history=False, output_format=OutputFormat.JSON
    )
    assert record.is_complete is False


def test_ids_are_unique():
    ids = {JobRecord(target_ref="acct-1").id for _ in range(200)}
    assert len(ids) == 200


def test_happy_path_transitions():
    record = _processing()
    assert record.status == JobStatus.PROCESSING
    assert record.started_at is not None
    for percent in (25, 50, 75):
        record.advance(percent)
    record.mark_completed("job/report.json")

    assert record.status == JobStatus.COMPLETED
    assert record.progress_percent == 100
    assert record.result_location == "job/report.json"
    assert record.error_message == ""
    assert record.completed_at is not None
    assert record.is_complete is True


def test_failure_keeps_progress():
    record = _processing()
    record.advance(50)
    record.mark_failed("boom")

    assert record.status == JobStatus.FAILED
    assert record.progress_percent == 50
    assert record.error_message == "boom"
    assert record.result_location is None
    assert record.completed_at is not None


def test_queued_can_only_move_to_processing():
    record = JobRecord(target_ref="acct-1")
    with pytest.raises(InvalidTransition):
        record.mark_completed("x")
    with pytest.raises(InvalidTransition):
        record.mark_failed("x")
    with pytest.raises(InvalidTransition):
        record.advance(25)
    assert record.status == JobStatus.QUEUED


@pytest.mark.parametrize("finish", ["complete", "fail"])
def test_terminal_states_are_final(finish):
    record = _processing()
    if finish == "complete":
        record.mark_completed("loc")
    else:
        record.mark_failed("err")

    with pytest.raises(InvalidTransition):
        record.mark_processing()
    with pytest.raises(InvalidTransition):
        record.advance(100)
    with pytest.raises(InvalidTransition):
        record.mark_completed("other")
    with pytest.raises(InvalidTransition):
        record.mark_failed("other")


def test_progress_never_moves_backwards():
    record = _processing()
    record.advance(50)
    with pytest.raises(InvalidTransition):
        record.advance(25)
    record.advance(50)
    assert record.progress_percent == 50


def test_progress_outside_range_rejected():
    record = _processing()
    with pytest.raises(InvalidTransition):
        record.advance(101)


def test_completion_requires_location():
    record = _processing()
    with pytest.raises(InvalidTransition):
        record.mark_completed("")


def test_deadline_only_applies_while_processing():
    record = JobRecord(target_ref="acct-1")
    record.mark_processing(timeout=timedelta(seconds=10))
    assert record.deadline == record.started_at + timedelta(seconds=10)
    later = record.started_at + timedelta(seconds=11)
    assert record.is_past_deadline(later)

    record.mark_failed("x")
    assert not record.is_past_deadline(later)


def test_options_reject_unknown_fields():
    with pytest.raises(PydanticValidationError):
        JobOptions(colour="blue")


@pytest.mark.parametrize(
    "fields",
    [
        {"status": JobStatus.COMPLETED, "progress_percent": 100},
        {"status": JobStatus.COMPLETED, "progress_percent": 100, "result_location": "r.json", "error_message": "boom"},
        {"status": JobStatus.COMPLETED, "progress_percent": 75, "result_location": "r.json"},
        {"status": JobStatus.FAILED, "progress_percent": 50},
        {"status": JobStatus.FAILED, "error_message": "boom", "result_location": "r.json"},
        {"status": JobStatus.QUEUED, "progress_percent": 25},
        {"status": JobStatus.QUEUED, "completed_at": utcnow()},
        {"status": JobStatus.PROCESSING, "result_location": "r.json"},
        {"status": JobStatus.PROCESSING, "error_message": "boom"},
    ],
)
def test_impossible_states_rejected_on_construction(fields):
    with pytest.raises(PydanticValidationError):
        JobRecord(target_ref="acct-1", **fields)


def test_consistent_terminal_records_construct():
    done = JobRecord(
        target_ref="acct-1",
        status=JobStatus.COMPLETED,
        progress_percent=100,
        result_location="r.json",
        completed_at=utcnow(),
    )
    assert done.is_complete
    failed = JobRecord(
        target_ref="acct-1", status=JobStatus.FAILED, progress_percent=50, error_message="boom"
    )
    assert failed.result_location is None
