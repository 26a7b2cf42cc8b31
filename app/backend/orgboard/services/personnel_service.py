"""Adding and deleting people."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from orgboard.domain.errors import EditPermissionError, PersistenceFailure
from orgboard.domain.graph import GLOBAL_SCOPE, Person, person_to_document
from orgboard.domain.resolver import STORE_PERSONNEL
from orgboard.services.edit_session import SAVE_FAILED_MESSAGE
from orgboard.services.graph_state import GraphState
from orgboard.services.persistence import PersistenceAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PersonnelChange:
    person_id: str
    saved: bool
    error: str | None = None


class PersonnelService:
    def __init__(self, graph_state: GraphState, persistence: PersistenceAdapter, *, can_edit: bool) -> None:
        self._graph_state = graph_state
        self._persistence = persistence
        self.can_edit = can_edit

    def _require_edit(self, action: str) -> None:
        if not self.can_edit:
            raise EditPermissionError(f"{action} requires edit access.")

    async def add_person(self, name: str) -> Person:
        """Store a new unassigned person, then add them to the graph.

        The graph only changes once the store has issued the new id.
        """

        self._require_edit("Adding personnel")
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValueError("Person name must not be empty.")

        draft = Person(id="", name=cleaned)
        payload = person_to_document(draft)
        person_id = await self._persistence.append(STORE_PERSONNEL, GLOBAL_SCOPE, payload)
        person = Person(id=person_id, name=cleaned)
        self._graph_state.insert_person(person)
        logger.info("Added person %s", person_id)
        return person

    async def delete_person(self, person_id: str) -> PersonnelChange:
        """Remove a person optimistically; restore them in place if the store refuses."""

        self._require_edit("Deleting personnel")
        index, person = self._graph_state.remove_person(person_id)
        try:
            await self._persistence.remove(STORE_PERSONNEL, GLOBAL_SCOPE, person_id)
        except PersistenceFailure as exc:
            logger.warning("Deleting %s failed, restoring: %s", person_id, exc)
            self._graph_state.insert_person(person, index)
            return PersonnelChange(person_id=person_id, saved=False, error=SAVE_FAILED_MESSAGE)
        logger.info("Deleted person %s", person_id)
        return PersonnelChange(person_id=person_id, saved=True)
