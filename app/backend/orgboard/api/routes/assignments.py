"""Drag-and-drop reassignment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from orgboard.api.dependencies import get_workspace
from orgboard.core.auth import RequestUserContext, require_editor
from orgboard.services.assignment_engine import AssignmentEngine, AssignmentOutcome
from orgboard.services.workspace import DashboardWorkspace

router = APIRouter(tags=["assignments"])


class DragPayload(BaseModel):
    person_id: str


class DropOnRolePayload(BaseModel):
    role_id: str
    scope: str | None = None


def _drag_payload(engine: AssignmentEngine) -> dict[str, object]:
    return {"state": engine.state.value, "person_id": engine.dragging, "last_error": engine.last_error}


def _outcome_payload(outcome: AssignmentOutcome) -> dict[str, object]:
    return {
        "person_id": outcome.person_id,
        "status": outcome.status.value,
        "ok": outcome.ok,
        "assigned_role": outcome.assigned_role,
        "assigned_factory_id": outcome.assigned_factory_id,
        "error": outcome.error,
    }


@router.get("/factories/{factory_id}/drag")
def get_drag(workspace: DashboardWorkspace = Depends(get_workspace)) -> dict[str, object]:
    return _drag_payload(workspace.assignments)


@router.post("/factories/{factory_id}/drag")
def start_drag(
    payload: DragPayload,
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    workspace.assignments.start_drag(payload.person_id)
    return _drag_payload(workspace.assignments)


@router.post("/factories/{factory_id}/drag/end")
def end_drag(workspace: DashboardWorkspace = Depends(get_workspace)) -> dict[str, object]:
    workspace.assignments.end_drag()
    return _drag_payload(workspace.assignments)


@router.post("/factories/{factory_id}/drop/role")
async def drop_on_role(
    payload: DropOnRolePayload,
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    outcome = await workspace.assignments.drop_on_role(payload.role_id, payload.scope)
    return _outcome_payload(outcome)


@router.post("/factories/{factory_id}/drop/available")
async def drop_on_available(
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    outcome = await workspace.assignments.drop_on_available()
    return _outcome_payload(outcome)
