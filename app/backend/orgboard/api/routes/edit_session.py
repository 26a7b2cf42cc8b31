"""In-place text editing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from orgboard.api.dependencies import get_workspace, parse_edit_id
from orgboard.core.auth import RequestUserContext, require_editor
from orgboard.domain.field_path import FieldPath, decode, encode
from orgboard.services.edit_session import EditOutcome, EditSession
from orgboard.services.workspace import DashboardWorkspace

router = APIRouter(tags=["edit-session"])


class BeginEditPayload(BaseModel):
    edit_id: str
    current_value: str | None = None


class DraftPayload(BaseModel):
    text: str


def _session_payload(session: EditSession) -> dict[str, object]:
    return {
        "state": session.state.value,
        "edit_id": encode(session.path) if session.path is not None else None,
        "draft": session.draft,
        "last_error": session.last_error,
    }


def _outcome_payload(session: EditSession, outcome: EditOutcome | None) -> dict[str, object] | None:
    if outcome is None:
        return None
    return {
        "edit_id": encode(outcome.path),
        "status": outcome.status.value,
        "ok": outcome.ok,
        "value": outcome.value,
        "visible_text": session.visible_text(outcome.path),
        "error": outcome.error,
    }


@router.get("/factories/{factory_id}/edit-session")
def get_edit_session(workspace: DashboardWorkspace = Depends(get_workspace)) -> dict[str, object]:
    return _session_payload(workspace.edit_session)


@router.post("/factories/{factory_id}/edit-session/begin")
async def begin_edit(
    payload: BeginEditPayload,
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    """Open a field; any field already open is committed first."""

    path = decode(payload.edit_id)
    session = workspace.edit_session
    previous = await session.begin(path, payload.current_value)
    return {**_session_payload(session), "previous": _outcome_payload(session, previous)}


@router.put("/factories/{factory_id}/edit-session/draft")
def put_draft(
    payload: DraftPayload,
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    workspace.edit_session.update_draft(payload.text)
    return _session_payload(workspace.edit_session)


@router.post("/factories/{factory_id}/edit-session/commit")
async def commit_edit(
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    session = workspace.edit_session
    outcome = await session.commit()
    return {**_session_payload(session), "outcome": _outcome_payload(session, outcome)}


@router.post("/factories/{factory_id}/edit-session/cancel")
def cancel_edit(
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    workspace.edit_session.cancel()
    return _session_payload(workspace.edit_session)


@router.get("/factories/{factory_id}/fields/{edit_id}")
def get_field(
    path: FieldPath = Depends(parse_edit_id),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    session = workspace.edit_session
    return {
        "edit_id": encode(path),
        "visible_text": session.visible_text(path),
        "editing": session.is_editing(path),
        "in_flight": session.in_flight(path),
    }
