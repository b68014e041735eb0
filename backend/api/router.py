from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import require_admin, require_user
from api.routes import exam_wizard, exams


api_router = APIRouter()

# Sign-in itself lives in the portal's auth service.
_protected = [Depends(require_admin)]
api_router.include_router(exam_wizard.router, prefix="/exam-wizards", tags=["exam-wizards"], dependencies=_protected)
# Committed schedules are readable by every signed-in role (teachers, parents).
api_router.include_router(exams.router, prefix="/exams", tags=["exams"], dependencies=[Depends(require_user)])
