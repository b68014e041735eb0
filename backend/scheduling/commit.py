from __future__ import annotations

import logging
from typing import Sequence

from scheduling.domain import DEFAULT_MAX_MARKS, ExamParameters, ExamRecord, FormState, ScheduleEntry, TimeSlot
from scheduling.errors import CommitFailedError, EmptyScheduleError, GatewayError


logger = logging.getLogger(__name__)


def _max_marks(value) -> int:
    # Mirrors the form's lenient parse: anything unusable (or zero) becomes the default.
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_MAX_MARKS
    return parsed or DEFAULT_MAX_MARKS


def build_exam_records(
    schedule: Sequence[ScheduleEntry],
    parameters: ExamParameters,
    slots: Sequence[TimeSlot],
) -> list[ExamRecord]:
    if not schedule:
        raise EmptyScheduleError()

    slot_by_id = {s.id: s for s in slots}
    name = parameters.session_name
    max_marks = _max_marks(parameters.max_marks)

    records: list[ExamRecord] = []
    for entry in schedule:
        slot = slot_by_id.get(entry.slot_id)
        records.append(
            ExamRecord(
                name=name,
                exam_date=entry.date,
                exam_time=slot.time_range if slot is not None else None,
                max_marks=max_marks,
                class_id=entry.class_id,
                subject_id=entry.subject_id,
            )
        )
    return records


def commit_schedule(form: FormState, gateway) -> list[ExamRecord]:
    """Write the finished schedule as one batch.

    Raises ``EmptyScheduleError`` before touching the gateway when there is
    nothing to write, and ``CommitFailedError`` (with the gateway's message) when
    the insert fails.
    """

    records = build_exam_records(form.schedule, form.parameters, form.slots)
    hidden = form.off_grid_entries()
    if hidden:
        logger.warning("Committing %d entries that are outside the current grid", len(hidden))
    try:
        gateway.insert_exams(records)
    except GatewayError as exc:
        logger.warning("Exam batch insert failed (%d records): %s", len(records), exc)
        raise CommitFailedError(str(exc) or "Failed to create exams") from exc

    logger.info("Created %d exam entries for %r", len(records), form.parameters.session_name)
    return records
