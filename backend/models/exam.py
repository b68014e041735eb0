from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from models.base import Base


class Exam(Base):
    """One sitting: a class writes one subject on one date.

    Rows are written in batches by the exam wizard commit. Names follow the
    ``"<exam type> (<term>)"`` convention so a whole session can be grouped.
    """

    __tablename__ = "exams"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    exam_date = Column(Date, nullable=True)
    exam_time = Column(Text, nullable=True)
    max_marks = Column(Integer, nullable=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=True)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True, server_default=func.now())

    __table_args__ = (
        CheckConstraint("max_marks is null or max_marks > 0", name="ck_exams_max_marks"),
    )
