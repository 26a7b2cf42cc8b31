"""Live entity graph holder and graph loading."""

from __future__ import annotations

import logging

from orgboard.domain import resolver
from orgboard.domain.errors import DocumentNotFoundError
from orgboard.domain.field_path import FieldPath
from orgboard.domain.graph import (
    GLOBAL_SCOPE,
    SHARED_SCOPE,
    EntityGraph,
    Person,
    budget_unit_from_document,
    person_from_document,
    phase_from_document,
    role_from_document,
)
from orgboard.services.persistence import Payload, PersistenceAdapter

logger = logging.getLogger(__name__)


class GraphState:
    """Holds the current graph; every write goes through the mutation resolver.

    Reads are unrestricted. Each write swaps in a new immutable graph, so a
    snapshot taken earlier is never affected by later edits.
    """

    def __init__(self, graph: EntityGraph) -> None:
        self._graph = graph

    @property
    def graph(self) -> EntityGraph:
        return self._graph

    @property
    def factory_id(self) -> str:
        return self._graph.factory_id

    def read(self, path: FieldPath) -> object:
        return resolver.read(self._graph, path)

    def apply(self, path: FieldPath, value: object) -> EntityGraph:
        self._graph = resolver.apply(self._graph, path, value)
        return self._graph

    def insert_person(self, person: Person, index: int | None = None) -> EntityGraph:
        self._graph = resolver.insert_person(self._graph, person, index)
        return self._graph

    def remove_person(self, person_id: str) -> tuple[int, Person]:
        self._graph, index, person = resolver.remove_person(self._graph, person_id)
        return index, person


async def _read_optional(persistence: PersistenceAdapter, domain: str, scope_id: str) -> dict[str, Payload]:
    try:
        return await persistence.read(domain, scope_id)
    except DocumentNotFoundError:
        logger.debug("No %s documents for scope %s", domain, scope_id)
        return {}


async def load_graph(persistence: PersistenceAdapter, factory_id: str) -> EntityGraph:
    """Load personnel, visible roles, timeline and budget for one factory selection."""

    personnel = await _read_optional(persistence, resolver.STORE_PERSONNEL, GLOBAL_SCOPE)
    roles = {}
    for scope in dict.fromkeys((factory_id, SHARED_SCOPE)):
        documents = await _read_optional(persistence, resolver.STORE_ROLES, scope)
        roles[scope] = {role_id: role_from_document(role_id, payload) for role_id, payload in documents.items()}
    timeline = await _read_optional(persistence, resolver.STORE_TIMELINE, factory_id)
    budget = await _read_optional(persistence, resolver.STORE_BUDGET, GLOBAL_SCOPE)

    graph = EntityGraph(
        factory_id=factory_id,
        personnel=tuple(person_from_document(person_id, payload) for person_id, payload in personnel.items()),
        roles=roles,
        timeline=tuple(phase_from_document(phase_id, payload) for phase_id, payload in timeline.items()),
        budget={unit_id: budget_unit_from_document(payload) for unit_id, payload in budget.items()},
    )
    logger.info(
        "Loaded graph for %s: %d people, %d roles, %d phases, %d budget units",
        factory_id,
        len(graph.personnel),
        sum(len(scoped) for scoped in roles.values()),
        len(graph.timeline),
        len(graph.budget),
    )
    return graph
