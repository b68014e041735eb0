from __future__ import annotations

"""Six-step exam creation wizard.

``apply(state, event)`` is the only way a ``WizardState`` changes; it always
returns a new value. Forward moves are gated per step, backward moves are
always allowed and keep everything already entered.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable

from scheduling import grid_editor
from scheduling.auto_scheduler import auto_schedule
from scheduling.domain import (
    DEFAULT_SLOTS,
    SLOT_PRESETS,
    Catalogue,
    ExamParameters,
    FormState,
    TimeSlot,
    WizardMode,
    WizardStep,
    initial_form_state,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WizardState:
    form: FormState
    catalogue: Catalogue = field(default_factory=Catalogue)
    step: WizardStep = WizardStep.BASIC_DETAILS
    # Outcome of the latest auto-schedule run; empty until one runs.
    unscheduled_subject_ids: tuple[str, ...] = ()
    # Outcome of the latest manual assignment; None until one is attempted.
    last_assignment_accepted: bool | None = None
    # What closing the wizard resets the form to.
    initial_form: FormState | None = None


def new_wizard(catalogue: Catalogue, *, term: str, max_marks: int = 100, duration_hours: float = 2.0) -> WizardState:
    form = initial_form_state(term=term, max_marks=max_marks, duration_hours=duration_hours)
    return WizardState(form=form, catalogue=catalogue, initial_form=form)


# --- events -----------------------------------------------------------------


@dataclass(frozen=True)
class SetParameters:
    parameters: ExamParameters


@dataclass(frozen=True)
class ToggleClass:
    class_id: str


@dataclass(frozen=True)
class ToggleAllClasses:
    pass


@dataclass(frozen=True)
class ToggleGrade:
    class_name: str


@dataclass(frozen=True)
class SelectMode:
    mode: WizardMode


@dataclass(frozen=True)
class AddSlot:
    start_time: str
    end_time: str
    label: str = ""
    slot_id: str | None = None


@dataclass(frozen=True)
class RemoveSlot:
    slot_id: str


@dataclass(frozen=True)
class ApplySlotPreset:
    preset: str


@dataclass(frozen=True)
class ToggleSubject:
    class_id: str
    subject_id: str


@dataclass(frozen=True)
class ToggleAllSubjects:
    class_id: str


@dataclass(frozen=True)
class CopySubjects:
    from_class_id: str
    to_class_id: str


@dataclass(frozen=True)
class Next:
    pass


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class RunAutoSchedule:
    pass


@dataclass(frozen=True)
class AssignCell:
    date: date
    slot_id: str
    class_id: str
    subject_id: str


@dataclass(frozen=True)
class ClearCell:
    date: date
    slot_id: str
    class_id: str


@dataclass(frozen=True)
class Close:
    pass


# --- step guards --------------------------------------------------------------


def _has_subjects_for_selected(form: FormState) -> bool:
    return any(len(sids) > 0 for sids in form.selected_class_subjects().values())


_GUARDS: dict[WizardStep, Callable[[FormState], bool]] = {
    WizardStep.BASIC_DETAILS: lambda f: f.parameters.is_complete(),
    WizardStep.SELECT_CLASSES: lambda f: len(f.selected_classes) >= 1,
    WizardStep.SCHEDULE_MODE: lambda f: f.mode is not WizardMode.UNSET,
    WizardStep.TIME_SLOTS: lambda f: len(f.slots) >= 1,
    WizardStep.SUBJECTS: _has_subjects_for_selected,
    WizardStep.BUILD_SCHEDULE: lambda f: len(f.schedule) >= 1,
}


def can_proceed(state: WizardState) -> bool:
    """Whether the current step's forward gate is open (on the last step: whether commit is allowed)."""

    return _GUARDS[state.step](state.form)


# --- helpers --------------------------------------------------------------------


def _with_form(state: WizardState, **changes) -> WizardState:
    return replace(state, form=replace(state.form, **changes))


def _sync_class_subjects(state: WizardState) -> WizardState:
    """Give every selected class a subject list, defaulting to the whole catalogue."""

    form = state.form
    missing = [cid for cid in form.selected_classes if cid not in form.class_subjects]
    if not missing:
        return state
    class_subjects = dict(form.class_subjects)
    for cid in missing:
        class_subjects[cid] = state.catalogue.subject_ids
    return _with_form(state, class_subjects=class_subjects)


def _set_selected_classes(state: WizardState, selected: list[str]) -> WizardState:
    # Lists of deselected classes are kept so re-selecting restores them.
    return _sync_class_subjects(_with_form(state, selected_classes=tuple(selected)))


def _on_build_step(state: WizardState, what: str) -> bool:
    if state.step is not WizardStep.BUILD_SCHEDULE:
        logger.debug("Ignoring %s outside the build step (step=%d)", what, int(state.step))
        return False
    return True


# --- handlers ---------------------------------------------------------------------


def _set_parameters(state: WizardState, event: SetParameters) -> WizardState:
    return _with_form(state, parameters=event.parameters)


def _toggle_class(state: WizardState, event: ToggleClass) -> WizardState:
    if state.catalogue.class_by_id(event.class_id) is None:
        return state
    selected = list(state.form.selected_classes)
    if event.class_id in selected:
        selected.remove(event.class_id)
    else:
        selected.append(event.class_id)
    return _set_selected_classes(state, selected)


def _toggle_all_classes(state: WizardState, event: ToggleAllClasses) -> WizardState:
    all_ids = [c.id for c in state.catalogue.classes]
    if len(state.form.selected_classes) == len(all_ids):
        return _set_selected_classes(state, [])
    return _set_selected_classes(state, all_ids)


def _toggle_grade(state: WizardState, event: ToggleGrade) -> WizardState:
    section_ids = [c.id for c in state.catalogue.classes_by_name().get(event.class_name, [])]
    if not section_ids:
        return state
    selected = list(state.form.selected_classes)
    if all(sid in selected for sid in section_ids):
        selected = [cid for cid in selected if cid not in section_ids]
    else:
        selected.extend(sid for sid in section_ids if sid not in selected)
    return _set_selected_classes(state, selected)


def _select_mode(state: WizardState, event: SelectMode) -> WizardState:
    if state.step is not WizardStep.SCHEDULE_MODE:
        logger.debug("Ignoring mode choice outside the mode step (step=%d)", int(state.step))
        return state
    if event.mode is WizardMode.UNSET:
        return state
    state = _with_form(state, mode=event.mode)
    if not state.form.slots:
        state = _with_form(state, slots=DEFAULT_SLOTS)
    return state


def _add_slot(state: WizardState, event: AddSlot) -> WizardState:
    slots = list(state.form.slots or DEFAULT_SLOTS)
    slot = TimeSlot.from_clock(
        id=event.slot_id or uuid.uuid4().hex,
        label=(event.label or "").strip() or f"Slot {len(slots) + 1}",
        start_time=event.start_time,
        end_time=event.end_time,
    )
    if any(s.id == slot.id for s in slots):
        return state
    slots.append(slot)
    return _with_form(state, slots=tuple(slots))


def _remove_slot(state: WizardState, event: RemoveSlot) -> WizardState:
    # Entries already placed in the slot stay; they commit without a time.
    return _with_form(state, slots=tuple(s for s in state.form.slots if s.id != event.slot_id))


def _apply_slot_preset(state: WizardState, event: ApplySlotPreset) -> WizardState:
    preset = SLOT_PRESETS.get(event.preset)
    if preset is None:
        raise ValueError(f"Unknown slot preset {event.preset!r}")
    return _with_form(state, slots=preset)


def _toggle_subject(state: WizardState, event: ToggleSubject) -> WizardState:
    if state.catalogue.subject_by_id(event.subject_id) is None:
        return state
    current = list(state.form.subjects_for(event.class_id))
    if event.subject_id in current:
        current.remove(event.subject_id)
    else:
        current.append(event.subject_id)
    class_subjects = dict(state.form.class_subjects)
    class_subjects[event.class_id] = tuple(current)
    return _with_form(state, class_subjects=class_subjects)


def _toggle_all_subjects(state: WizardState, event: ToggleAllSubjects) -> WizardState:
    all_ids = state.catalogue.subject_ids
    current = state.form.subjects_for(event.class_id)
    class_subjects = dict(state.form.class_subjects)
    class_subjects[event.class_id] = () if len(current) == len(all_ids) else all_ids
    return _with_form(state, class_subjects=class_subjects)


def _copy_subjects(state: WizardState, event: CopySubjects) -> WizardState:
    class_subjects = dict(state.form.class_subjects)
    class_subjects[event.to_class_id] = state.form.subjects_for(event.from_class_id)
    return _with_form(state, class_subjects=class_subjects)


def _next(state: WizardState, event: Next) -> WizardState:
    if state.step is WizardStep.BUILD_SCHEDULE or not can_proceed(state):
        return state
    state = replace(state, step=WizardStep(state.step + 1))
    if state.step is WizardStep.TIME_SLOTS and not state.form.slots:
        state = _with_form(state, slots=DEFAULT_SLOTS)
    elif state.step is WizardStep.SUBJECTS:
        state = _sync_class_subjects(state)
    return state


def _back(state: WizardState, event: Back) -> WizardState:
    if state.step is WizardStep.BASIC_DETAILS:
        return state
    return replace(state, step=WizardStep(state.step - 1))


def _run_auto_schedule(state: WizardState, event: RunAutoSchedule) -> WizardState:
    if not _on_build_step(state, "auto-schedule"):
        return state

    mode = state.form.mode
    if mode is WizardMode.MANUAL or mode is WizardMode.UNSET:
        logger.debug("Auto-schedule requested in %s mode; ignored", mode.value)
        return state
    if mode is not WizardMode.AUTO:
        raise ValueError(f"Unhandled wizard mode {mode!r}")

    form = state.form
    result = auto_schedule(
        form.class_subjects,
        form.selected_classes,
        form.slots,
        form.parameters.exam_dates(),
        catalogue=state.catalogue,
    )
    state = _with_form(state, schedule=result.entries)
    return replace(state, unscheduled_subject_ids=result.unscheduled_subject_ids)


def _assign_cell(state: WizardState, event: AssignCell) -> WizardState:
    if not _on_build_step(state, "cell assignment"):
        return replace(state, last_assignment_accepted=False)

    form = state.form
    valid_cell = (
        event.class_id in form.selected_classes
        and form.slot_by_id(event.slot_id) is not None
        and event.date in form.parameters.exam_dates()
    )
    if not valid_cell:
        logger.debug("Rejected assignment to unknown cell %s/%s/%s", event.date, event.slot_id, event.class_id)
        return replace(state, last_assignment_accepted=False)

    accepted = grid_editor.can_assign(event.class_id, event.subject_id, form.class_subjects, state.catalogue)
    schedule = grid_editor.assign(
        form.schedule,
        exam_date=event.date,
        slot_id=event.slot_id,
        class_id=event.class_id,
        subject_id=event.subject_id,
        class_subjects=form.class_subjects,
        catalogue=state.catalogue,
    )
    state = _with_form(state, schedule=schedule)
    return replace(state, last_assignment_accepted=accepted)


def _clear_cell(state: WizardState, event: ClearCell) -> WizardState:
    if not _on_build_step(state, "cell clear"):
        return state
    return _with_form(state, schedule=grid_editor.clear(state.form.schedule, event.date, event.slot_id, event.class_id))


def _close(state: WizardState, event: Close) -> WizardState:
    form = state.initial_form if state.initial_form is not None else FormState()
    return WizardState(form=form, catalogue=state.catalogue, initial_form=state.initial_form)


_HANDLERS: dict[type, Callable[[WizardState, object], WizardState]] = {
    SetParameters: _set_parameters,
    ToggleClass: _toggle_class,
    ToggleAllClasses: _toggle_all_classes,
    ToggleGrade: _toggle_grade,
    SelectMode: _select_mode,
    AddSlot: _add_slot,
    RemoveSlot: _remove_slot,
    ApplySlotPreset: _apply_slot_preset,
    ToggleSubject: _toggle_subject,
    ToggleAllSubjects: _toggle_all_subjects,
    CopySubjects: _copy_subjects,
    Next: _next,
    Back: _back,
    RunAutoSchedule: _run_auto_schedule,
    AssignCell: _assign_cell,
    ClearCell: _clear_cell,
    Close: _close,
}


def apply(state: WizardState, event: object) -> WizardState:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported wizard event: {type(event).__name__}")
    return handler(state, event)
