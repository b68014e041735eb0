from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable

from scheduling.errors import CommitInProgressError, WizardNotFoundError
from scheduling.wizard import WizardState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WizardSession:
    id: uuid.UUID
    state: WizardState
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    committing: bool = False


class WizardStore:
    """Open wizard instances, held in process memory only.

    Each instance owns an independent draft. Closing (or committing) drops it;
    nothing here is ever persisted.
    """

    def __init__(self, *, max_open: int = 200) -> None:
        self._max_open = max_open
        self._sessions: OrderedDict[uuid.UUID, WizardSession] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def open(self, state: WizardState) -> WizardSession:
        session = WizardSession(id=uuid.uuid4(), state=state)
        with self._lock:
            self._sessions[session.id] = session
            # Least recently used drafts go first.
            while len(self._sessions) > self._max_open:
                evicted_id, _ = self._sessions.popitem(last=False)
                logger.info("Evicted least recently used exam wizard %s", evicted_id)
        logger.debug("Opened exam wizard %s", session.id)
        return session

    def get(self, wizard_id: uuid.UUID) -> WizardSession:
        with self._lock:
            session = self._sessions.get(wizard_id)
            if session is not None:
                self._sessions.move_to_end(wizard_id)
        if session is None:
            raise WizardNotFoundError(str(wizard_id))
        return session

    def replace(self, wizard_id: uuid.UUID, state: WizardState) -> WizardSession:
        with self._lock:
            session = self._sessions.get(wizard_id)
            if session is None:
                raise WizardNotFoundError(str(wizard_id))
            if session.committing:
                raise CommitInProgressError(str(wizard_id))
            session = replace(session, state=state)
            self._sessions[wizard_id] = session
            self._sessions.move_to_end(wizard_id)
        return session

    def update(self, wizard_id: uuid.UUID, fn: Callable[[WizardState], WizardState]) -> WizardSession:
        """Read, transform and write back one draft as a single step.

        ``fn`` runs under the store lock and must not call back into the store.
        """

        with self._lock:
            session = self._sessions.get(wizard_id)
            if session is None:
                raise WizardNotFoundError(str(wizard_id))
            if session.committing:
                raise CommitInProgressError(str(wizard_id))
            session = replace(session, state=fn(session.state))
            self._sessions[wizard_id] = session
            self._sessions.move_to_end(wizard_id)
        return session

    def close(self, wizard_id: uuid.UUID) -> None:
        with self._lock:
            removed = self._sessions.pop(wizard_id, None)
        if removed is not None:
            logger.debug("Closed exam wizard %s", wizard_id)

    def begin_commit(self, wizard_id: uuid.UUID) -> WizardSession:
        with self._lock:
            session = self._sessions.get(wizard_id)
            if session is None:
                raise WizardNotFoundError(str(wizard_id))
            if session.committing:
                raise CommitInProgressError(str(wizard_id))
            session = replace(session, committing=True)
            self._sessions[wizard_id] = session
        return session

    def end_commit(self, wizard_id: uuid.UUID) -> None:
        with self._lock:
            session = self._sessions.get(wizard_id)
            if session is not None:
                self._sessions[wizard_id] = replace(session, committing=False)
