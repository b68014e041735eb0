from __future__ import annotations

import datetime as dt
import uuid
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from schemas.exam import ClassOut, ExamRecordOut, SubjectOut


_CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ParametersUpdate(BaseModel):
    name: str | None = None
    term: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    max_marks: int | None = Field(default=None, gt=0)
    duration_hours: float | None = Field(default=None, gt=0)

    @field_validator("name", "term")
    @classmethod
    def _strip(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class ClassToggleIn(BaseModel):
    class_id: str = Field(min_length=1)


class GradeToggleIn(BaseModel):
    class_name: str = Field(min_length=1)


class ModeIn(BaseModel):
    mode: Literal["auto", "manual"]


class SlotIn(BaseModel):
    label: str = ""
    start_time: str = Field(pattern=_CLOCK_PATTERN)
    end_time: str = Field(pattern=_CLOCK_PATTERN)

    @model_validator(mode="after")
    def _check_order(self) -> "SlotIn":
        # HH:MM compares correctly as text.
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class SlotPresetIn(BaseModel):
    preset: Literal["single", "double"]


class SubjectToggleIn(BaseModel):
    class_id: str = Field(min_length=1)
    subject_id: str = Field(min_length=1)


class SubjectToggleAllIn(BaseModel):
    class_id: str = Field(min_length=1)


class SubjectCopyIn(BaseModel):
    from_class_id: str = Field(min_length=1)
    to_class_id: str = Field(min_length=1)


class CellRef(BaseModel):
    date: dt.date
    slot_id: str = Field(min_length=1)
    class_id: str = Field(min_length=1)


class CellIn(CellRef):
    subject_id: str = Field(min_length=1)


class SlotOut(BaseModel):
    id: str
    label: str
    start_time: str
    end_time: str


class ScheduleEntryOut(BaseModel):
    date: dt.date
    slot_id: str
    class_id: str
    subject_id: str
    class_name: str
    subject_name: str


class ParametersOut(BaseModel):
    name: str
    term: str
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    max_marks: int
    duration_hours: float


class FormStateOut(BaseModel):
    parameters: ParametersOut
    selected_classes: list[str]
    slots: list[SlotOut]
    class_subjects: dict[str, list[str]]
    schedule: list[ScheduleEntryOut]
    mode: Literal["auto", "manual"] | None = None


class WizardOut(BaseModel):
    id: uuid.UUID
    step: int
    step_title: str
    total_steps: int
    can_proceed: bool
    form: FormStateOut

    exam_dates: list[dt.date] = Field(default_factory=list)
    total_pairs: int = 0
    off_grid_entries: int = 0
    unscheduled_subject_ids: list[str] = Field(default_factory=list)
    last_assignment_accepted: bool | None = None

    exam_types: list[str] = Field(default_factory=list)
    terms: list[str] = Field(default_factory=list)
    classes: list[ClassOut] = Field(default_factory=list)
    subjects: list[SubjectOut] = Field(default_factory=list)


class GridCellOut(BaseModel):
    class_id: str
    class_label: str
    entry: ScheduleEntryOut | None = None
    available_subjects: list[SubjectOut]


class GridSlotOut(BaseModel):
    slot: SlotOut
    cells: list[GridCellOut]


class GridDayOut(BaseModel):
    date: dt.date
    slots: list[GridSlotOut]


class GridOut(BaseModel):
    wizard_id: uuid.UUID
    mode: Literal["auto", "manual"] | None = None
    days: list[GridDayOut]
    entries: int


class CommitOut(BaseModel):
    created: int
    exams: list[ExamRecordOut]
