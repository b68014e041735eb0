from __future__ import annotations

import datetime as dt

from pydantic import BaseModel


class ClassOut(BaseModel):
    id: str
    name: str
    section: str


class SubjectOut(BaseModel):
    id: str
    name: str


class ExamRecordOut(BaseModel):
    name: str
    exam_date: dt.date
    exam_time: str | None = None
    max_marks: int
    class_id: str
    subject_id: str


class CalendarRowOut(BaseModel):
    exam_id: str
    class_label: str
    subject_name: str
    exam_time: str | None = None
    max_marks: int | None = None


class CalendarDayOut(BaseModel):
    date: dt.date | None = None
    rows: list[CalendarRowOut]


class CalendarSessionOut(BaseModel):
    name: str
    entry_count: int
    class_count: int
    days: list[CalendarDayOut]


class ExamScheduleOut(BaseModel):
    exam_names: list[str]
    sessions: list[CalendarSessionOut]
