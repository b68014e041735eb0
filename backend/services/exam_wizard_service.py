from __future__ import annotations

import logging
import uuid

from core.config import settings
from scheduling.commit import commit_schedule
from scheduling.domain import Catalogue, ExamRecord
from scheduling.wizard import WizardState, new_wizard
from services.persistence_gateway import PersistenceGateway
from services.wizard_store import WizardSession, WizardStore


logger = logging.getLogger(__name__)


def open_wizard(store: WizardStore, gateway: PersistenceGateway) -> WizardSession:
    """Start a fresh draft with the class and subject catalogues loaded up front."""

    catalogue = Catalogue(
        classes=tuple(gateway.list_classes()),
        subjects=tuple(gateway.list_subjects()),
    )
    state: WizardState = new_wizard(
        catalogue,
        term=settings.exam_default_term,
        max_marks=settings.exam_default_max_marks,
        duration_hours=settings.exam_default_duration_hours,
    )
    session = store.open(state)
    logger.info(
        "Exam wizard %s opened (%d classes, %d subjects)",
        session.id,
        len(catalogue.classes),
        len(catalogue.subjects),
    )
    return session


def submit_wizard(store: WizardStore, wizard_id: uuid.UUID, gateway: PersistenceGateway) -> list[ExamRecord]:
    """Commit the draft's schedule, then discard the draft.

    On any failure the draft is left exactly as it was so the operator can retry.
    """

    session = store.begin_commit(wizard_id)
    try:
        records = commit_schedule(session.state.form, gateway)
    finally:
        store.end_commit(wizard_id)

    store.close(wizard_id)
    return records
