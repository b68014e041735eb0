from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Sequence

from scheduling.domain import Catalogue, ScheduleEntry, TimeSlot


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoScheduleResult:
    entries: tuple[ScheduleEntry, ...]
    # Subjects that found no free date, in the order they would have been placed.
    unscheduled_subject_ids: tuple[str, ...] = ()

    @property
    def is_partial(self) -> bool:
        return bool(self.unscheduled_subject_ids)


def distinct_subject_ids(
    class_subjects: Mapping[str, Sequence[str]],
    selected_classes: Sequence[str],
) -> list[str]:
    """Subjects of the selected classes, first-seen order over the class -> subjects map."""

    selected = set(selected_classes)
    seen: dict[str, None] = {}
    for class_id, subject_ids in class_subjects.items():
        if class_id not in selected:
            continue
        for subject_id in subject_ids:
            seen.setdefault(subject_id, None)
    return list(seen)


def auto_schedule(
    class_subjects: Mapping[str, Sequence[str]],
    selected_classes: Sequence[str],
    slots: Sequence[TimeSlot],
    available_dates: Sequence[date],
    *,
    catalogue: Catalogue,
) -> AutoScheduleResult:
    """Greedy round-robin by subject.

    Each distinct subject takes the next date from ``available_dates`` and is
    written for every selected class that studies it, so a shared subject sits in
    one (date, slot) cell across all classes. No two subjects share a date. A
    subject with no date left is reported in ``unscheduled_subject_ids``.
    """

    subject_ids = distinct_subject_ids(class_subjects, selected_classes)
    selected = set(selected_classes)

    if not slots or not available_dates:
        if subject_ids:
            logger.info(
                "Auto-schedule placed nothing: slots=%d dates=%d subjects=%d",
                len(slots),
                len(available_dates),
                len(subject_ids),
            )
        return AutoScheduleResult(entries=(), unscheduled_subject_ids=tuple(subject_ids))

    entries: list[ScheduleEntry] = []
    unscheduled: list[str] = []
    date_queue = list(available_dates)
    placed = 0

    for subject_id in subject_ids:
        subject = catalogue.subject_by_id(subject_id)
        if subject is None:
            logger.debug("Skipping unknown subject id %s", subject_id)
            continue
        if placed >= len(date_queue):
            unscheduled.append(subject_id)
            continue

        exam_date = date_queue[placed]
        # Slots rotate once per full pass over the date queue.
        slot = slots[(placed // len(date_queue)) % len(slots)]

        for class_id, class_subject_ids in class_subjects.items():
            if class_id not in selected or subject_id not in class_subject_ids:
                continue
            cls = catalogue.class_by_id(class_id)
            if cls is None:
                continue
            entries.append(
                ScheduleEntry(
                    date=exam_date,
                    slot_id=slot.id,
                    class_id=class_id,
                    subject_id=subject_id,
                    class_name=cls.label,
                    subject_name=subject.name,
                )
            )
        placed += 1

    if unscheduled:
        logger.warning(
            "Auto-schedule is partial: %d subject(s) could not be placed in %d date(s)",
            len(unscheduled),
            len(date_queue),
        )
    else:
        logger.info("Auto-schedule placed %d subject(s) as %d entries", placed, len(entries))

    return AutoScheduleResult(entries=tuple(entries), unscheduled_subject_ids=tuple(unscheduled))
