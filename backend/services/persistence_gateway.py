from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol, Sequence

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.exam import Exam
from models.school_class import SchoolClass
from models.subject import Subject
from scheduling.domain import ClassItem, ExamRecord, SubjectItem
from scheduling.errors import GatewayError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommittedExam:
    id: str
    name: str
    exam_date: date | None
    exam_time: str | None
    max_marks: int | None
    class_id: str | None
    subject_id: str | None
    class_name: str | None = None
    class_section: str | None = None
    subject_name: str | None = None


class PersistenceGateway(Protocol):
    def list_classes(self) -> list[ClassItem]: ...

    def list_subjects(self) -> list[SubjectItem]: ...

    def insert_exams(self, records: Sequence[ExamRecord]) -> None: ...

    def list_exams(self, *, class_ids: Iterable[str] | None = None) -> list[CommittedExam]: ...


def _as_uuid(value: str | None) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise GatewayError(f"Invalid id: {value!r}") from exc


class SqlAlchemyGateway:
    """Gateway over the ``classes``, ``subjects`` and ``exams`` tables."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_classes(self) -> list[ClassItem]:
        q = select(SchoolClass).order_by(SchoolClass.name.asc(), SchoolClass.section.asc())
        try:
            rows = self.db.execute(q).scalars().all()
        except SQLAlchemyError as exc:
            raise GatewayError(str(exc)) from exc
        return [ClassItem(id=str(r.id), name=str(r.name), section=str(r.section)) for r in rows]

    def list_subjects(self) -> list[SubjectItem]:
        q = select(Subject).order_by(Subject.name.asc())
        try:
            rows = self.db.execute(q).scalars().all()
        except SQLAlchemyError as exc:
            raise GatewayError(str(exc)) from exc
        return [SubjectItem(id=str(r.id), name=str(r.name)) for r in rows]

    def insert_exams(self, records: Sequence[ExamRecord]) -> None:
        if not records:
            return

        rows = []
        for rec in records:
            row = rec.as_row()
            row["class_id"] = _as_uuid(rec.class_id)
            row["subject_id"] = _as_uuid(rec.subject_id)
            rows.append(row)

        try:
            self.db.execute(insert(Exam), rows)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise GatewayError(str(getattr(exc, "orig", None) or exc)) from exc
        logger.debug("Inserted %d exam rows", len(rows))

    def list_exams(self, *, class_ids: Iterable[str] | None = None) -> list[CommittedExam]:
        q = (
            select(
                Exam.id,
                Exam.name,
                Exam.exam_date,
                Exam.exam_time,
                Exam.max_marks,
                Exam.class_id,
                Exam.subject_id,
                SchoolClass.name.label("class_name"),
                SchoolClass.section.label("class_section"),
                Subject.name.label("subject_name"),
            )
            .select_from(Exam)
            .outerjoin(SchoolClass, SchoolClass.id == Exam.class_id)
            .outerjoin(Subject, Subject.id == Exam.subject_id)
            .order_by(Exam.exam_date.asc())
        )
        if class_ids is not None:
            wanted = [_as_uuid(cid) for cid in class_ids]
            q = q.where(Exam.class_id.in_(wanted))

        try:
            rows = self.db.execute(q).all()
        except SQLAlchemyError as exc:
            raise GatewayError(str(exc)) from exc

        return [
            CommittedExam(
                id=str(r.id),
                name=str(r.name),
                exam_date=r.exam_date,
                exam_time=r.exam_time,
                max_marks=r.max_marks,
                class_id=str(r.class_id) if r.class_id else None,
                subject_id=str(r.subject_id) if r.subject_id else None,
                class_name=r.class_name,
                class_section=r.class_section,
                subject_name=r.subject_name,
            )
            for r in rows
        ]
