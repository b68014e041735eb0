from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from services.persistence_gateway import CommittedExam


@dataclass(frozen=True)
class CalendarRow:
    exam_id: str
    class_label: str
    subject_name: str
    exam_time: str | None
    max_marks: int | None


@dataclass(frozen=True)
class CalendarDay:
    date: date | None
    rows: list[CalendarRow]


@dataclass(frozen=True)
class CalendarSession:
    name: str
    days: list[CalendarDay]

    @property
    def class_count(self) -> int:
        return len({r.class_label for d in self.days for r in d.rows})

    @property
    def entry_count(self) -> int:
        return sum(len(d.rows) for d in self.days)


@dataclass(frozen=True)
class ExamCalendar:
    exam_names: list[str]
    sessions: list[CalendarSession]


def _class_label(exam: CommittedExam) -> str:
    if exam.class_name is None:
        return "All"
    return f"{exam.class_name}-{(exam.class_section or '').upper()}"


def build_exam_calendar(exams: Sequence[CommittedExam], *, exam_name: str | None = None) -> ExamCalendar:
    """Group committed exams by session name, then by date (undated rows last)."""

    names: list[str] = []
    for e in exams:
        if e.name not in names:
            names.append(e.name)

    chosen = [e for e in exams if exam_name is None or e.name == exam_name]

    by_name: dict[str, dict[date | None, list[CalendarRow]]] = {}
    for e in chosen:
        day_map = by_name.setdefault(e.name, {})
        day_map.setdefault(e.exam_date, []).append(
            CalendarRow(
                exam_id=e.id,
                class_label=_class_label(e),
                subject_name=e.subject_name or "All",
                exam_time=e.exam_time,
                max_marks=e.max_marks,
            )
        )

    sessions: list[CalendarSession] = []
    for name, day_map in by_name.items():
        ordered = sorted(day_map.items(), key=lambda kv: (kv[0] is None, kv[0] or date.min))
        days = [
            CalendarDay(date=d, rows=sorted(rows, key=lambda r: (r.exam_time or "", r.class_label)))
            for d, rows in ordered
        ]
        sessions.append(CalendarSession(name=name, days=days))

    return ExamCalendar(exam_names=names, sessions=sessions)
