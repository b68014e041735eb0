from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import get_gateway
from scheduling.errors import GatewayError
from schemas.exam import (
    CalendarDayOut,
    CalendarRowOut,
    CalendarSessionOut,
    ClassOut,
    ExamScheduleOut,
    SubjectOut,
)
from services.exam_calendar import build_exam_calendar
from services.persistence_gateway import PersistenceGateway


router = APIRouter()


@router.get("/classes", response_model=list[ClassOut])
def list_classes(gateway: PersistenceGateway = Depends(get_gateway)) -> list[ClassOut]:
    try:
        classes = gateway.list_classes()
    except GatewayError as exc:
        raise HTTPException(status_code=502, detail={"code": "CATALOGUE_UNAVAILABLE", "message": str(exc)})
    return [ClassOut(id=c.id, name=c.name, section=c.section) for c in classes]


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(gateway: PersistenceGateway = Depends(get_gateway)) -> list[SubjectOut]:
    try:
        subjects = gateway.list_subjects()
    except GatewayError as exc:
        raise HTTPException(status_code=502, detail={"code": "CATALOGUE_UNAVAILABLE", "message": str(exc)})
    return [SubjectOut(id=s.id, name=s.name) for s in subjects]


@router.get("/schedule", response_model=ExamScheduleOut)
def get_exam_schedule(
    class_id: list[str] | None = Query(default=None),
    exam_name: str | None = Query(default=None),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> ExamScheduleOut:
    try:
        exams = gateway.list_exams(class_ids=class_id or None)
    except GatewayError as exc:
        raise HTTPException(status_code=502, detail={"code": "EXAMS_UNAVAILABLE", "message": str(exc)})

    calendar = build_exam_calendar(exams, exam_name=exam_name)
    return ExamScheduleOut(
        exam_names=calendar.exam_names,
        sessions=[
            CalendarSessionOut(
                name=s.name,
                entry_count=s.entry_count,
                class_count=s.class_count,
                days=[
                    CalendarDayOut(
                        date=d.date,
                        rows=[
                            CalendarRowOut(
                                exam_id=r.exam_id,
                                class_label=r.class_label,
                                subject_name=r.subject_name,
                                exam_time=r.exam_time,
                                max_marks=r.max_marks,
                            )
                            for r in d.rows
                        ],
                    )
                    for d in s.days
                ],
            )
            for s in calendar.sessions
        ],
    )
