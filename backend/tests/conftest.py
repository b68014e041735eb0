from __future__ import annotations

import os

# Settings are read at import time; keep tests off any real database.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date
from typing import Iterable, Sequence

import pytest

from scheduling.domain import Catalogue, ClassItem, ExamRecord, SubjectItem
from scheduling.errors import GatewayError
from services.persistence_gateway import CommittedExam


class FakeGateway:
    """In-memory stand-in for the hosted store."""

    def __init__(self, classes: Sequence[ClassItem], subjects: Sequence[SubjectItem]) -> None:
        self.classes = list(classes)
        self.subjects = list(subjects)
        self.inserted: list[list[ExamRecord]] = []
        self.exams: list[CommittedExam] = []
        self.fail_with: str | None = None

    def list_classes(self) -> list[ClassItem]:
        return list(self.classes)

    def list_subjects(self) -> list[SubjectItem]:
        return list(self.subjects)

    def insert_exams(self, records: Sequence[ExamRecord]) -> None:
        if self.fail_with is not None:
            raise GatewayError(self.fail_with)
        self.inserted.append(list(records))
        by_class = {c.id: c for c in self.classes}
        by_subject = {s.id: s for s in self.subjects}
        for i, r in enumerate(records):
            cls = by_class.get(r.class_id)
            self.exams.append(
                CommittedExam(
                    id=f"exam-{len(self.exams) + i}",
                    name=r.name,
                    exam_date=r.exam_date,
                    exam_time=r.exam_time,
                    max_marks=r.max_marks,
                    class_id=r.class_id,
                    subject_id=r.subject_id,
                    class_name=cls.name if cls else None,
                    class_section=cls.section if cls else None,
                    subject_name=by_subject[r.subject_id].name if r.subject_id in by_subject else None,
                )
            )

    def list_exams(self, *, class_ids: Iterable[str] | None = None) -> list[CommittedExam]:
        rows = sorted(self.exams, key=lambda e: e.exam_date or date.min)
        if class_ids is None:
            return rows
        wanted = set(class_ids)
        return [e for e in rows if e.class_id in wanted]


@pytest.fixture
def classes() -> list[ClassItem]:
    return [
        ClassItem(id="c10a", name="10", section="a"),
        ClassItem(id="c10b", name="10", section="b"),
        ClassItem(id="c9a", name="9", section="a"),
    ]


@pytest.fixture
def subjects() -> list[SubjectItem]:
    return [
        SubjectItem(id="math", name="Mathematics"),
        SubjectItem(id="sci", name="Science"),
        SubjectItem(id="eng", name="English"),
    ]


@pytest.fixture
def catalogue(classes, subjects) -> Catalogue:
    return Catalogue(classes=tuple(classes), subjects=tuple(subjects))


@pytest.fixture
def gateway(classes, subjects) -> FakeGateway:
    return FakeGateway(classes, subjects)
