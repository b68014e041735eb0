from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_gateway, get_wizard_store
from core.config import settings
from scheduling import grid_editor
from scheduling import wizard as wz
from scheduling.domain import (
    EXAM_TYPES,
    TOTAL_STEPS,
    FormState,
    ScheduleEntry,
    TimeSlot,
    WizardMode,
    format_clock,
)
from scheduling.errors import (
    CommitFailedError,
    CommitInProgressError,
    EmptyScheduleError,
    GatewayError,
    InvalidSlotError,
    WizardNotFoundError,
)
from schemas.exam import ClassOut, ExamRecordOut, SubjectOut
from schemas.exam_wizard import (
    CellIn,
    CellRef,
    ClassToggleIn,
    CommitOut,
    FormStateOut,
    GradeToggleIn,
    GridCellOut,
    GridDayOut,
    GridOut,
    GridSlotOut,
    ModeIn,
    ParametersOut,
    ParametersUpdate,
    ScheduleEntryOut,
    SlotIn,
    SlotOut,
    SlotPresetIn,
    SubjectCopyIn,
    SubjectToggleAllIn,
    SubjectToggleIn,
    WizardOut,
)
from services.exam_wizard_service import open_wizard, submit_wizard
from services.persistence_gateway import PersistenceGateway
from services.wizard_store import WizardSession, WizardStore


logger = logging.getLogger(__name__)

router = APIRouter()


_MODE_OUT = {
    WizardMode.UNSET: None,
    WizardMode.AUTO: "auto",
    WizardMode.MANUAL: "manual",
}


def _slot_out(slot: TimeSlot) -> SlotOut:
    return SlotOut(
        id=slot.id,
        label=slot.label,
        start_time=format_clock(slot.start_time),
        end_time=format_clock(slot.end_time),
    )


def _entry_out(entry: ScheduleEntry) -> ScheduleEntryOut:
    return ScheduleEntryOut(
        date=entry.date,
        slot_id=entry.slot_id,
        class_id=entry.class_id,
        subject_id=entry.subject_id,
        class_name=entry.class_name,
        subject_name=entry.subject_name,
    )


def _form_out(form: FormState) -> FormStateOut:
    p = form.parameters
    return FormStateOut(
        parameters=ParametersOut(
            name=p.name,
            term=p.term,
            start_date=p.start_date,
            end_date=p.end_date,
            max_marks=p.max_marks,
            duration_hours=p.duration_hours,
        ),
        selected_classes=list(form.selected_classes),
        slots=[_slot_out(s) for s in form.slots],
        class_subjects={cid: list(sids) for cid, sids in form.class_subjects.items()},
        schedule=[_entry_out(e) for e in form.schedule],
        mode=_MODE_OUT[form.mode],
    )


def _wizard_out(session: WizardSession) -> WizardOut:
    state = session.state
    terms = list(settings.exam_terms)
    if state.form.parameters.term and state.form.parameters.term not in terms:
        terms.append(state.form.parameters.term)
    return WizardOut(
        id=session.id,
        step=int(state.step),
        step_title=state.step.title,
        total_steps=TOTAL_STEPS,
        can_proceed=wz.can_proceed(state),
        form=_form_out(state.form),
        exam_dates=state.form.parameters.exam_dates(),
        total_pairs=state.form.total_pairs(),
        off_grid_entries=len(state.form.off_grid_entries()),
        unscheduled_subject_ids=list(state.unscheduled_subject_ids),
        last_assignment_accepted=state.last_assignment_accepted,
        exam_types=list(EXAM_TYPES),
        terms=terms,
        classes=[ClassOut(id=c.id, name=c.name, section=c.section) for c in state.catalogue.classes],
        subjects=[SubjectOut(id=s.id, name=s.name) for s in state.catalogue.subjects],
    )


def _get_session(store: WizardStore, wizard_id: uuid.UUID) -> WizardSession:
    try:
        return store.get(wizard_id)
    except WizardNotFoundError:
        raise HTTPException(status_code=404, detail="WIZARD_NOT_FOUND")


def _dispatch(store: WizardStore, wizard_id: uuid.UUID, event: object | Callable[[wz.WizardState], object]) -> WizardOut:
    """Apply one event to the draft atomically.

    ``event`` may be a callable that builds the event from the current state, for
    edits (like a partial parameter update) that depend on what is already there.
    """

    def transition(state: wz.WizardState) -> wz.WizardState:
        e = event(state) if callable(event) else event
        return wz.apply(state, e)

    try:
        session = store.update(wizard_id, transition)
    except InvalidSlotError as exc:
        raise HTTPException(status_code=422, detail={"code": "INVALID_SLOT", "message": str(exc)})
    except WizardNotFoundError:
        raise HTTPException(status_code=404, detail="WIZARD_NOT_FOUND")
    except CommitInProgressError:
        raise HTTPException(status_code=409, detail="COMMIT_IN_PROGRESS")
    return _wizard_out(session)


@router.post("/", response_model=WizardOut, status_code=201)
def create_wizard(
    store: WizardStore = Depends(get_wizard_store),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> WizardOut:
    try:
        session = open_wizard(store, gateway)
    except GatewayError as exc:
        logger.warning("Could not load class/subject catalogues: %s", exc)
        raise HTTPException(status_code=502, detail={"code": "CATALOGUE_UNAVAILABLE", "message": str(exc)})
    return _wizard_out(session)


@router.get("/{wizard_id}", response_model=WizardOut)
def get_wizard(wizard_id: uuid.UUID, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _wizard_out(_get_session(store, wizard_id))


@router.delete("/{wizard_id}")
def close_wizard(wizard_id: uuid.UUID, store: WizardStore = Depends(get_wizard_store)) -> dict:
    store.close(wizard_id)
    logger.info("Exam wizard %s closed", wizard_id)
    return {"ok": True}


@router.patch("/{wizard_id}/parameters", response_model=WizardOut)
def update_parameters(
    wizard_id: uuid.UUID,
    payload: ParametersUpdate,
    store: WizardStore = Depends(get_wizard_store),
) -> WizardOut:
    updates = payload.model_dump(exclude_unset=True)
    # Explicit nulls only make sense for the dates.
    updates = {k: v for k, v in updates.items() if v is not None or k in {"start_date", "end_date"}}
    return _dispatch(
        store,
        wizard_id,
        lambda state: wz.SetParameters(parameters=replace(state.form.parameters, **updates)),
    )


@router.post("/{wizard_id}/classes/toggle", response_model=WizardOut)
def toggle_class(wizard_id: uuid.UUID, payload: ClassToggleIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.ToggleClass(class_id=payload.class_id))


@router.post("/{wizard_id}/classes/select-all", response_model=WizardOut)
def toggle_all_classes(wizard_id: uuid.UUID, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.ToggleAllClasses())


@router.post("/{wizard_id}/classes/toggle-grade", response_model=WizardOut)
def toggle_grade(wizard_id: uuid.UUID, payload: GradeToggleIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.ToggleGrade(class_name=payload.class_name))


@router.put("/{wizard_id}/mode", response_model=WizardOut)
def select_mode(wizard_id: uuid.UUID, payload: ModeIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.SelectMode(mode=WizardMode(payload.mode)))


@router.post("/{wizard_id}/slots", response_model=WizardOut)
def add_slot(wizard_id: uuid.UUID, payload: SlotIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(
        store,
        wizard_id,
        wz.AddSlot(label=payload.label, start_time=payload.start_time, end_time=payload.end_time),
    )


@router.delete("/{wizard_id}/slots/{slot_id}", response_model=WizardOut)
def remove_slot(wizard_id: uuid.UUID, slot_id: str, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.RemoveSlot(slot_id=slot_id))


@router.post("/{wizard_id}/slots/preset", response_model=WizardOut)
def apply_slot_preset(wizard_id: uuid.UUID, payload: SlotPresetIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.ApplySlotPreset(preset=payload.preset))


@router.post("/{wizard_id}/subjects/toggle", response_model=WizardOut)
def toggle_subject(wizard_id: uuid.UUID, payload: SubjectToggleIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.ToggleSubject(class_id=payload.class_id, subject_id=payload.subject_id))


@router.post("/{wizard_id}/subjects/toggle-all", response_model=WizardOut)
def toggle_all_subjects(
    wizard_id: uuid.UUID,
    payload: SubjectToggleAllIn,
    store: WizardStore = Depends(get_wizard_store),
) -> WizardOut:
    return _dispatch(store, wizard_id, wz.ToggleAllSubjects(class_id=payload.class_id))


@router.post("/{wizard_id}/subjects/copy", response_model=WizardOut)
def copy_subjects(wizard_id: uuid.UUID, payload: SubjectCopyIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(
        store,
        wizard_id,
        wz.CopySubjects(from_class_id=payload.from_class_id, to_class_id=payload.to_class_id),
    )


@router.post("/{wizard_id}/next", response_model=WizardOut)
def next_step(wizard_id: uuid.UUID, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.Next())


@router.post("/{wizard_id}/back", response_model=WizardOut)
def previous_step(wizard_id: uuid.UUID, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.Back())


@router.post("/{wizard_id}/auto-schedule", response_model=WizardOut)
def run_auto_schedule(wizard_id: uuid.UUID, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.RunAutoSchedule())


@router.put("/{wizard_id}/cells", response_model=WizardOut)
def assign_cell(wizard_id: uuid.UUID, payload: CellIn, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(
        store,
        wizard_id,
        wz.AssignCell(date=payload.date, slot_id=payload.slot_id, class_id=payload.class_id, subject_id=payload.subject_id),
    )


@router.delete("/{wizard_id}/cells", response_model=WizardOut)
def clear_cell(wizard_id: uuid.UUID, payload: CellRef, store: WizardStore = Depends(get_wizard_store)) -> WizardOut:
    return _dispatch(store, wizard_id, wz.ClearCell(date=payload.date, slot_id=payload.slot_id, class_id=payload.class_id))


@router.get("/{wizard_id}/grid", response_model=GridOut)
def get_grid(wizard_id: uuid.UUID, store: WizardStore = Depends(get_wizard_store)) -> GridOut:
    state = _get_session(store, wizard_id).state
    days = grid_editor.build_grid(state.form, state.catalogue)
    return GridOut(
        wizard_id=wizard_id,
        mode=_MODE_OUT[state.form.mode],
        entries=len(state.form.schedule),
        days=[
            GridDayOut(
                date=day.date,
                slots=[
                    GridSlotOut(
                        slot=_slot_out(gs.slot),
                        cells=[
                            GridCellOut(
                                class_id=cell.class_item.id,
                                class_label=cell.class_item.label,
                                entry=_entry_out(cell.entry) if cell.entry is not None else None,
                                available_subjects=[SubjectOut(id=s.id, name=s.name) for s in cell.available_subjects],
                            )
                            for cell in gs.cells
                        ],
                    )
                    for gs in day.slots
                ],
            )
            for day in days
        ],
    )


@router.post("/{wizard_id}/commit", response_model=CommitOut)
def commit_wizard(
    wizard_id: uuid.UUID,
    store: WizardStore = Depends(get_wizard_store),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> CommitOut:
    try:
        records = submit_wizard(store, wizard_id, gateway)
    except WizardNotFoundError:
        raise HTTPException(status_code=404, detail="WIZARD_NOT_FOUND")
    except CommitInProgressError:
        raise HTTPException(status_code=409, detail="COMMIT_IN_PROGRESS")
    except EmptyScheduleError as exc:
        raise HTTPException(status_code=400, detail={"code": "NOTHING_TO_SCHEDULE", "message": str(exc)})
    except CommitFailedError as exc:
        raise HTTPException(status_code=502, detail={"code": "COMMIT_FAILED", "message": str(exc)})

    return CommitOut(
        created=len(records),
        exams=[
            ExamRecordOut(
                name=r.name,
                exam_date=r.exam_date,
                exam_time=r.exam_time,
                max_marks=r.max_marks,
                class_id=r.class_id,
                subject_id=r.subject_id,
            )
            for r in records
        ],
    )
