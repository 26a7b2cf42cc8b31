"""Read endpoints over the loaded entity graph."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from orgboard.api.dependencies import get_persistence, get_registry, get_workspace
from orgboard.core.auth import RequestUserContext, get_current_user_context
from orgboard.domain.aggregators import headcount_gaps, summarize_all_budgets
from orgboard.domain.graph import (
    Person,
    available_personnel,
    dangling_next_roles,
    graph_to_document,
    roster_for,
)
from orgboard.services.persistence import PersistenceAdapter
from orgboard.services.workspace import DashboardWorkspace, WorkspaceRegistry

router = APIRouter(tags=["graph"])


class HeadcountGapPayload(BaseModel):
    work_orders: dict[str, int] = Field(default_factory=dict)
    productivity_metrics: dict[str, int] = Field(default_factory=dict)
    role_task_mapping: dict[str, list[str]] = Field(default_factory=dict)


def _person_summary(person: Person) -> dict[str, object]:
    return {
        "id": person.id,
        "name": person.name,
        "assigned_role": person.assigned_role,
        "assigned_factory_id": person.assigned_factory_id,
    }


def _graph_payload(workspace: DashboardWorkspace) -> dict[str, object]:
    graph = workspace.graph_state.graph
    return {
        "factory_id": graph.factory_id,
        "document": graph_to_document(graph),
        "available_personnel": [person.id for person in available_personnel(graph)],
        "dangling_next_roles": {role_id: list(targets) for role_id, targets in dangling_next_roles(graph).items()},
    }


@router.get("/factories/{factory_id}/graph")
def get_graph(workspace: DashboardWorkspace = Depends(get_workspace)) -> dict[str, object]:
    return _graph_payload(workspace)


@router.post("/factories/{factory_id}/reload")
async def reload_graph(
    factory_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    registry: WorkspaceRegistry = Depends(get_registry),
    persistence: PersistenceAdapter = Depends(get_persistence),
) -> dict[str, object]:
    """Drop the cached workspace (and its open edit) and load the graph again."""

    registry.discard(context.email, factory_id)
    workspace = await registry.get_or_open(context.email, factory_id, persistence, can_edit=context.can_edit)
    return _graph_payload(workspace)


@router.get("/factories/{factory_id}/roles/{role_id}/roster")
def get_role_roster(
    role_id: str,
    scope: str | None = None,
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    graph = workspace.graph_state.graph
    role = graph.find_role(role_id, scope)
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found.")

    roster = roster_for(graph, role_id, scope or graph.factory_id)
    return {
        "role_id": role_id,
        "title": role.title,
        "headcount": len(roster),
        "personnel": [_person_summary(person) for person in roster],
    }


@router.get("/factories/{factory_id}/budget-summary")
def get_budget_summary(workspace: DashboardWorkspace = Depends(get_workspace)) -> dict[str, object]:
    summaries = summarize_all_budgets(workspace.graph_state.graph)
    return {
        "items": [
            {
                "factory_id": summary.factory_id,
                "name": summary.name,
                "total_personnel_cost": str(summary.total_personnel_cost),
                "total_operational_expenses": str(summary.total_operational_expenses),
                "total_budget": str(summary.total_budget),
                "cost_per_unit": str(summary.cost_per_unit),
                "production_volume": summary.production_volume,
            }
            for summary in summaries
        ]
    }


@router.post("/factories/{factory_id}/headcount-gaps")
def post_headcount_gaps(
    payload: HeadcountGapPayload,
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    gaps = headcount_gaps(
        workspace.graph_state.graph,
        payload.work_orders,
        payload.productivity_metrics,
        payload.role_task_mapping,
    )
    return {
        "items": [
            {
                "role_id": gap.role_id,
                "title": gap.title,
                "required": gap.required,
                "available": gap.available,
                "difference": gap.difference,
            }
            for gap in gaps
        ]
    }
