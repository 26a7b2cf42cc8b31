"""Drag-and-drop reassignment of personnel to roles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from orgboard.domain.errors import (
    AssignmentScopeError,
    EditPermissionError,
    InvalidTransitionError,
    PathNotFoundError,
    PersistenceFailure,
)
from orgboard.domain.field_path import PersonnelField, PersonnelPath, encode, personnel_path
from orgboard.domain.graph import SHARED_SCOPE
from orgboard.services.edit_session import SAVE_FAILED_MESSAGE
from orgboard.services.graph_state import GraphState
from orgboard.services.persistence import PersistenceAdapter

logger = logging.getLogger(__name__)


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class AssignmentStatus(str, Enum):
    UNCHANGED = "unchanged"
    SAVED = "saved"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class AssignmentOutcome:
    person_id: str
    status: AssignmentStatus
    assigned_role: str | None
    assigned_factory_id: str | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (AssignmentStatus.UNCHANGED, AssignmentStatus.SAVED)


class AssignmentEngine:
    """Per-gesture state machine ``idle -> dragging -> idle``.

    Role membership lives only in ``Person.assigned_role``; a drop writes that
    field (and ``assigned_factory_id``) through the same optimistic
    commit and rollback rules as text edits.
    """

    def __init__(self, graph_state: GraphState, persistence: PersistenceAdapter, *, can_edit: bool) -> None:
        self._graph_state = graph_state
        self._persistence = persistence
        self.can_edit = can_edit
        self._dragging: str | None = None
        self.last_error: str | None = None

    @property
    def state(self) -> DragState:
        return DragState.IDLE if self._dragging is None else DragState.DRAGGING

    @property
    def dragging(self) -> str | None:
        return self._dragging

    def start_drag(self, person_id: str) -> None:
        if not self.can_edit:
            raise EditPermissionError("Reassigning personnel requires edit access.")
        if self._dragging is not None:
            raise InvalidTransitionError(f"Already dragging {self._dragging!r}.")
        if self._graph_state.graph.find_person(person_id) is None:
            raise PathNotFoundError(person_id, f"person {person_id!r} does not exist")
        self._dragging = person_id
        logger.debug("Dragging %s", person_id)

    def end_drag(self) -> None:
        """Drag ended outside any drop target."""

        if self._dragging is not None:
            logger.debug("Drag of %s ended without a drop", self._dragging)
        self._dragging = None

    def _take_drag(self) -> str:
        if self._dragging is None:
            raise InvalidTransitionError("No person is being dragged.")
        person_id, self._dragging = self._dragging, None
        return person_id

    def _current(self, person_id: str) -> tuple[str | None, str | None]:
        found = self._graph_state.graph.find_person(person_id)
        if found is None:
            return None, None
        _, person = found
        return person.assigned_role, person.assigned_factory_id

    def _reject(self, person_id: str, message: str) -> AssignmentOutcome:
        role, factory_id = self._current(person_id)
        self.last_error = message
        logger.warning("Rejected drop of %s: %s", person_id, message)
        return AssignmentOutcome(person_id, AssignmentStatus.REJECTED, role, factory_id, message)

    def _validate_scope(self, scope: str) -> None:
        factory_id = self._graph_state.factory_id
        if scope not in (factory_id, SHARED_SCOPE):
            raise AssignmentScopeError(
                f"Roles of factory {scope!r} cannot be assigned from factory {factory_id!r}; "
                f"only {factory_id!r} and shared roles are allowed."
            )

    async def drop_on_role(self, role_id: str, scope: str | None = None) -> AssignmentOutcome:
        person_id = self._take_drag()
        scope = scope or self._graph_state.factory_id
        try:
            self._validate_scope(scope)
        except AssignmentScopeError as exc:
            return self._reject(person_id, str(exc))
        if self._graph_state.graph.find_role(role_id, scope) is None:
            return self._reject(person_id, f"Role {role_id!r} does not exist in scope {scope!r}.")

        return await self._assign(
            person_id,
            {PersonnelField.ASSIGNED_ROLE: role_id, PersonnelField.ASSIGNED_FACTORY_ID: scope},
        )

    async def drop_on_available(self) -> AssignmentOutcome:
        person_id = self._take_drag()
        return await self._assign(
            person_id,
            {PersonnelField.ASSIGNED_ROLE: None, PersonnelField.ASSIGNED_FACTORY_ID: None},
        )

    async def _assign(self, person_id: str, target: dict[PersonnelField, str | None]) -> AssignmentOutcome:
        try:
            originals = {
                field: self._graph_state.read(personnel_path(person_id, field)) for field in target
            }
        except PathNotFoundError as exc:
            return self._reject(person_id, str(exc))

        changes = {field: value for field, value in target.items() if originals[field] != value}
        if not changes:
            role, factory_id = self._current(person_id)
            return AssignmentOutcome(person_id, AssignmentStatus.UNCHANGED, role, factory_id)

        self.last_error = None
        written: dict[PersonnelPath, object] = {}
        for field, value in changes.items():
            path = personnel_path(person_id, field)
            self._graph_state.apply(path, value)
            written[path] = self._graph_state.read(path)
        snapshot = self._graph_state.graph

        try:
            await self._persistence.save(snapshot, *written)
        except (PersistenceFailure, PathNotFoundError) as exc:
            logger.warning("Persisting assignment of %s failed, rolling back: %s", person_id, exc)
            for path in reversed(list(written)):
                self._revert(path, originals[path.field], written[path])
            self.last_error = SAVE_FAILED_MESSAGE
            role, factory_id = self._current(person_id)
            return AssignmentOutcome(person_id, AssignmentStatus.ROLLED_BACK, role, factory_id, SAVE_FAILED_MESSAGE)

        role, factory_id = self._current(person_id)
        logger.info("Assigned %s to role=%s factory=%s", person_id, role, factory_id)
        return AssignmentOutcome(person_id, AssignmentStatus.SAVED, role, factory_id)

    def _revert(self, path: PersonnelPath, original: object, written: object) -> None:
        try:
            if self._graph_state.read(path) != written:
                logger.info("Skipping revert of %s: value changed since drop", encode(path))
                return
        except PathNotFoundError:
            logger.info("Skipping revert of %s: person no longer exists", encode(path))
            return
        self._graph_state.apply(path, original)
