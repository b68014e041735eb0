from __future__ import annotations

from datetime import date

import pytest

from scheduling.commit import build_exam_records, commit_schedule
from scheduling.domain import DEFAULT_SLOTS, ExamParameters, FormState, ScheduleEntry, WizardMode
from scheduling.errors import CommitFailedError, EmptyScheduleError


D1 = date(2025, 3, 10)
D2 = date(2025, 3, 11)


def _form(**overrides) -> FormState:
    values = dict(
        parameters=ExamParameters(name="Mid-Term Exam", term="2025-26", start_date=D1, end_date=D2, max_marks=80),
        selected_classes=("c10a", "c10b"),
        slots=DEFAULT_SLOTS,
        class_subjects={"c10a": ("math", "sci"), "c10b": ("math",)},
        schedule=(
            ScheduleEntry(date=D1, slot_id="1", class_id="c10a", subject_id="math"),
            ScheduleEntry(date=D1, slot_id="1", class_id="c10b", subject_id="math"),
            ScheduleEntry(date=D2, slot_id="2", class_id="c10a", subject_id="sci"),
        ),
        mode=WizardMode.MANUAL,
    )
    values.update(overrides)
    return FormState(**values)


def test_one_record_per_entry():
    form = _form()

    records = build_exam_records(form.schedule, form.parameters, form.slots)

    assert len(records) == 3
    assert {r.name for r in records} == {"Mid-Term Exam (2025-26)"}
    assert {r.max_marks for r in records} == {80}
    assert [(r.exam_date, r.exam_time, r.class_id, r.subject_id) for r in records] == [
        (D1, "09:30 - 11:30", "c10a", "math"),
        (D1, "09:30 - 11:30", "c10b", "math"),
        (D2, "13:00 - 15:00", "c10a", "sci"),
    ]


def test_entry_in_removed_slot_commits_without_time():
    form = _form(slots=DEFAULT_SLOTS[:1])

    records = build_exam_records(form.schedule, form.parameters, form.slots)

    assert records[2].exam_time is None


@pytest.mark.parametrize("raw", [0, "", "abc", None])
def test_unusable_max_marks_fall_back_to_default(raw):
    form = _form()
    params = ExamParameters(name="Unit Test 1", term="2025-26", max_marks=raw)

    records = build_exam_records(form.schedule, params, form.slots)

    assert {r.max_marks for r in records} == {100}


def test_empty_schedule_never_reaches_the_gateway(gateway):
    with pytest.raises(EmptyScheduleError, match="Nothing to schedule"):
        commit_schedule(_form(schedule=()), gateway)

    assert gateway.inserted == []


def test_commit_writes_one_batch(gateway):
    records = commit_schedule(_form(), gateway)

    assert gateway.inserted == [records]


def test_gateway_failure_is_reported_and_form_untouched(gateway):
    gateway.fail_with = "duplicate key value violates unique constraint"
    form = _form()

    with pytest.raises(CommitFailedError, match="duplicate key"):
        commit_schedule(form, gateway)

    assert form == _form()
    assert gateway.inserted == []


def test_gateway_failure_without_message_gets_a_default(gateway):
    gateway.fail_with = ""

    with pytest.raises(CommitFailedError, match="Failed to create exams"):
        commit_schedule(_form(), gateway)
