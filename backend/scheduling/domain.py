from __future__ import annotations

"""Exam scheduling data model.

Everything here is an immutable value. The wizard replaces values instead of
mutating them, so any snapshot of a ``FormState`` stays valid after the operator
moves on.
"""

import enum
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Mapping

from scheduling.errors import InvalidSlotError


CUSTOM_EXAM_TYPE = "Custom"

EXAM_TYPES: tuple[str, ...] = (
    "Unit Test 1",
    "Unit Test 2",
    "Quarterly Exam",
    "Mid-Term Exam",
    "Half Yearly Exam",
    "Pre-Final Exam",
    "Annual Exam",
    CUSTOM_EXAM_TYPE,
)

DEFAULT_MAX_MARKS = 100


class WizardMode(enum.Enum):
    UNSET = "unset"
    AUTO = "auto"
    MANUAL = "manual"


class WizardStep(enum.IntEnum):
    BASIC_DETAILS = 1
    SELECT_CLASSES = 2
    SCHEDULE_MODE = 3
    TIME_SLOTS = 4
    SUBJECTS = 5
    BUILD_SCHEDULE = 6

    @property
    def title(self) -> str:
        return _STEP_TITLES[self]


_STEP_TITLES = {
    WizardStep.BASIC_DETAILS: "Basic Details",
    WizardStep.SELECT_CLASSES: "Select Classes",
    WizardStep.SCHEDULE_MODE: "Schedule Mode",
    WizardStep.TIME_SLOTS: "Time Slots",
    WizardStep.SUBJECTS: "Subjects",
    WizardStep.BUILD_SCHEDULE: "Build Schedule",
}

TOTAL_STEPS = len(WizardStep)


def parse_clock(value: str | time) -> time:
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%H:%M").time()
    except ValueError as exc:
        raise InvalidSlotError(f"Invalid time of day: {value!r} (expected HH:MM)") from exc


def format_clock(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class ClassItem:
    id: str
    name: str
    section: str

    @property
    def label(self) -> str:
        return f"{self.name}-{self.section}"


@dataclass(frozen=True)
class SubjectItem:
    id: str
    name: str


@dataclass(frozen=True)
class Catalogue:
    """Classes and subjects as loaded from the store when the wizard opened."""

    classes: tuple[ClassItem, ...] = ()
    subjects: tuple[SubjectItem, ...] = ()

    def class_by_id(self, class_id: str) -> ClassItem | None:
        for c in self.classes:
            if c.id == class_id:
                return c
        return None

    def subject_by_id(self, subject_id: str) -> SubjectItem | None:
        for s in self.subjects:
            if s.id == subject_id:
                return s
        return None

    @property
    def subject_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.subjects)

    def classes_by_name(self) -> dict[str, list[ClassItem]]:
        grouped: dict[str, list[ClassItem]] = {}
        for c in self.classes:
            grouped.setdefault(c.name, []).append(c)
        return grouped


@dataclass(frozen=True)
class TimeSlot:
    id: str
    label: str
    start_time: time
    end_time: time

    def __post_init__(self) -> None:
        if not self.start_time < self.end_time:
            raise InvalidSlotError(
                f"Slot {self.label!r} must start before it ends "
                f"({format_clock(self.start_time)} >= {format_clock(self.end_time)})"
            )

    @classmethod
    def from_clock(cls, *, id: str, label: str, start_time: str | time, end_time: str | time) -> "TimeSlot":
        return cls(id=id, label=label, start_time=parse_clock(start_time), end_time=parse_clock(end_time))

    @property
    def time_range(self) -> str:
        return f"{format_clock(self.start_time)} - {format_clock(self.end_time)}"


DEFAULT_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot.from_clock(id="1", label="Morning Session", start_time="09:30", end_time="11:30"),
    TimeSlot.from_clock(id="2", label="Afternoon Session", start_time="13:00", end_time="15:00"),
)

FULL_DAY_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot.from_clock(id="1", label="Full Day", start_time="09:30", end_time="12:30"),
)

SLOT_PRESETS: dict[str, tuple[TimeSlot, ...]] = {
    "single": FULL_DAY_SLOTS,
    "double": DEFAULT_SLOTS,
}


@dataclass(frozen=True)
class ExamParameters:
    name: str = ""
    term: str = ""
    start_date: date | None = None
    end_date: date | None = None
    max_marks: int = DEFAULT_MAX_MARKS
    duration_hours: float = 2.0

    @property
    def has_name(self) -> bool:
        # The bare "Custom" pick is a placeholder until a label is typed in.
        name = self.name.strip()
        return bool(name) and name != CUSTOM_EXAM_TYPE

    def is_complete(self) -> bool:
        if not self.has_name or not self.term.strip():
            return False
        if self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= self.end_date

    @property
    def session_name(self) -> str:
        return f"{self.name} ({self.term})"

    def exam_dates(self) -> list[date]:
        return exam_dates(self.start_date, self.end_date)


def exam_dates(start: date | None, end: date | None) -> list[date]:
    """Every calendar day from ``start`` to ``end`` inclusive; empty when the range is unset or inverted."""

    if start is None or end is None or start > end:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


@dataclass(frozen=True)
class ScheduleEntry:
    date: date
    slot_id: str
    class_id: str
    subject_id: str
    class_name: str = ""
    subject_name: str = ""

    @property
    def cell(self) -> tuple[date, str, str]:
        return (self.date, self.slot_id, self.class_id)


@dataclass(frozen=True)
class FormState:
    parameters: ExamParameters = field(default_factory=ExamParameters)
    selected_classes: tuple[str, ...] = ()
    slots: tuple[TimeSlot, ...] = ()
    class_subjects: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    schedule: tuple[ScheduleEntry, ...] = ()
    mode: WizardMode = WizardMode.UNSET

    def slot_by_id(self, slot_id: str) -> TimeSlot | None:
        for s in self.slots:
            if s.id == slot_id:
                return s
        return None

    def subjects_for(self, class_id: str) -> tuple[str, ...]:
        return tuple(self.class_subjects.get(class_id, ()))

    def selected_class_subjects(self) -> dict[str, tuple[str, ...]]:
        """The class -> subjects map restricted to currently selected classes, in map order."""

        selected = set(self.selected_classes)
        return {cid: tuple(sids) for cid, sids in self.class_subjects.items() if cid in selected}

    def total_pairs(self) -> int:
        return sum(len(sids) for sids in self.selected_class_subjects().values())

    def off_grid_entries(self) -> tuple[ScheduleEntry, ...]:
        """Entries the grid no longer shows after a class, slot or date range change.

        They still commit, so the wizard view reports them.
        """

        dates = set(self.parameters.exam_dates())
        selected = set(self.selected_classes)
        slot_ids = {s.id for s in self.slots}
        return tuple(
            e
            for e in self.schedule
            if e.class_id not in selected or e.slot_id not in slot_ids or e.date not in dates
        )


def initial_form_state(*, term: str, max_marks: int = DEFAULT_MAX_MARKS, duration_hours: float = 2.0) -> FormState:
    return FormState(parameters=ExamParameters(term=term, max_marks=max_marks, duration_hours=duration_hours))


@dataclass(frozen=True)
class ExamRecord:
    """One row for the ``exams`` table, ready for batch insert."""

    name: str
    exam_date: date
    exam_time: str | None
    max_marks: int
    class_id: str
    subject_id: str

    def as_row(self) -> dict:
        return {
            "name": self.name,
            "exam_date": self.exam_date,
            "exam_time": self.exam_time,
            "max_marks": self.max_marks,
            "class_id": self.class_id,
            "subject_id": self.subject_id,
        }


def duplicate_cells(schedule: Iterable[ScheduleEntry]) -> list[tuple[date, str, str]]:
    """Cells holding more than one entry (a class sitting two exams in one slot)."""

    counts = Counter(e.cell for e in schedule)
    return [cell for cell, n in counts.items() if n > 1]


def is_conflict_free(schedule: Iterable[ScheduleEntry]) -> bool:
    return not duplicate_cells(schedule)
