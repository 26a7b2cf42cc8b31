"""Per-user editing workspace: one graph, one edit session, one drag engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from orgboard.services.assignment_engine import AssignmentEngine
from orgboard.services.edit_session import EditSession
from orgboard.services.graph_state import GraphState, load_graph
from orgboard.services.persistence import PersistenceAdapter
from orgboard.services.personnel_service import PersonnelService

logger = logging.getLogger(__name__)


@dataclass
class DashboardWorkspace:
    graph_state: GraphState
    edit_session: EditSession
    assignments: AssignmentEngine
    personnel: PersonnelService

    def set_can_edit(self, can_edit: bool) -> None:
        self.assignments.can_edit = can_edit
        self.personnel.can_edit = can_edit


async def open_workspace(persistence: PersistenceAdapter, factory_id: str, *, can_edit: bool) -> DashboardWorkspace:
    """Load the graph for ``factory_id`` and wire the editing components around it."""

    graph_state = GraphState(await load_graph(persistence, factory_id))
    return DashboardWorkspace(
        graph_state=graph_state,
        edit_session=EditSession(graph_state, persistence),
        assignments=AssignmentEngine(graph_state, persistence, can_edit=can_edit),
        personnel=PersonnelService(graph_state, persistence, can_edit=can_edit),
    )


class WorkspaceRegistry:
    """Keeps one workspace per (principal, factory) for the life of the process."""

    def __init__(self) -> None:
        self._workspaces: dict[tuple[str, str], DashboardWorkspace] = {}

    def __len__(self) -> int:
        return len(self._workspaces)

    async def get_or_open(
        self,
        principal: str,
        factory_id: str,
        persistence: PersistenceAdapter,
        *,
        can_edit: bool,
    ) -> DashboardWorkspace:
        key = (principal, factory_id)
        workspace = self._workspaces.get(key)
        if workspace is None:
            opened = await open_workspace(persistence, factory_id, can_edit=can_edit)
            workspace = self._workspaces.setdefault(key, opened)
            logger.info("Opened workspace for %s on %s", principal, factory_id)
        workspace.set_can_edit(can_edit)
        return workspace

    def discard(self, principal: str, factory_id: str) -> None:
        self._workspaces.pop((principal, factory_id), None)
