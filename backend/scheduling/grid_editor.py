from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Sequence

from scheduling.domain import (
    Catalogue,
    ClassItem,
    FormState,
    ScheduleEntry,
    SubjectItem,
    TimeSlot,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridCell:
    class_item: ClassItem
    entry: ScheduleEntry | None
    available_subjects: tuple[SubjectItem, ...]


@dataclass(frozen=True)
class GridSlot:
    slot: TimeSlot
    cells: tuple[GridCell, ...]


@dataclass(frozen=True)
class GridDay:
    date: date
    slots: tuple[GridSlot, ...]


def entry_at(
    schedule: Sequence[ScheduleEntry],
    exam_date: date,
    slot_id: str,
    class_id: str,
) -> ScheduleEntry | None:
    for e in schedule:
        if e.date == exam_date and e.slot_id == slot_id and e.class_id == class_id:
            return e
    return None


def available_subjects(
    class_id: str,
    class_subjects: Mapping[str, Sequence[str]],
    catalogue: Catalogue,
) -> tuple[SubjectItem, ...]:
    out: list[SubjectItem] = []
    for subject_id in class_subjects.get(class_id, ()):
        subject = catalogue.subject_by_id(subject_id)
        if subject is not None:
            out.append(subject)
    return tuple(out)


def can_assign(
    class_id: str,
    subject_id: str,
    class_subjects: Mapping[str, Sequence[str]],
    catalogue: Catalogue,
) -> bool:
    if catalogue.class_by_id(class_id) is None or catalogue.subject_by_id(subject_id) is None:
        return False
    return subject_id in class_subjects.get(class_id, ())


def assign(
    schedule: Sequence[ScheduleEntry],
    *,
    exam_date: date,
    slot_id: str,
    class_id: str,
    subject_id: str,
    class_subjects: Mapping[str, Sequence[str]],
    catalogue: Catalogue,
) -> tuple[ScheduleEntry, ...]:
    """Upsert one cell.

    Any entry already in ``(exam_date, slot_id, class_id)`` is replaced, so a cell
    never holds two subjects. A subject outside the class's selected list is
    ignored and the schedule comes back unchanged.
    """

    if not can_assign(class_id, subject_id, class_subjects, catalogue):
        logger.debug(
            "Rejected assignment date=%s slot=%s class=%s subject=%s",
            exam_date,
            slot_id,
            class_id,
            subject_id,
        )
        return tuple(schedule)

    cls = catalogue.class_by_id(class_id)
    subject = catalogue.subject_by_id(subject_id)
    kept = [e for e in schedule if e.cell != (exam_date, slot_id, class_id)]
    kept.append(
        ScheduleEntry(
            date=exam_date,
            slot_id=slot_id,
            class_id=class_id,
            subject_id=subject_id,
            class_name=cls.label,
            subject_name=subject.name,
        )
    )
    return tuple(kept)


def clear(
    schedule: Sequence[ScheduleEntry],
    exam_date: date,
    slot_id: str,
    class_id: str,
) -> tuple[ScheduleEntry, ...]:
    return tuple(e for e in schedule if e.cell != (exam_date, slot_id, class_id))


def build_grid(form: FormState, catalogue: Catalogue) -> tuple[GridDay, ...]:
    """Dates x slots x selected classes, every cell addressable whether or not it holds an entry."""

    classes = [c for c in (catalogue.class_by_id(cid) for cid in form.selected_classes) if c is not None]
    by_cell = {e.cell: e for e in form.schedule}
    subjects_by_class = {c.id: available_subjects(c.id, form.class_subjects, catalogue) for c in classes}

    days: list[GridDay] = []
    for exam_date in form.parameters.exam_dates():
        grid_slots: list[GridSlot] = []
        for slot in form.slots:
            cells = tuple(
                GridCell(
                    class_item=c,
                    entry=by_cell.get((exam_date, slot.id, c.id)),
                    available_subjects=subjects_by_class[c.id],
                )
                for c in classes
            )
            grid_slots.append(GridSlot(slot=slot, cells=cells))
        days.append(GridDay(date=exam_date, slots=tuple(grid_slots)))
    return tuple(days)
