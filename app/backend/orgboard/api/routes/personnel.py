"""Personnel add/delete endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from orgboard.api.dependencies import get_workspace
from orgboard.core.auth import RequestUserContext, require_editor
from orgboard.services.workspace import DashboardWorkspace

router = APIRouter(tags=["personnel"])


class NewPersonPayload(BaseModel):
    name: str


@router.post("/factories/{factory_id}/personnel", status_code=status.HTTP_201_CREATED)
async def add_person(
    payload: NewPersonPayload,
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    try:
        person = await workspace.personnel.add_person(payload.name)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return {"id": person.id, "name": person.name, "assigned_role": person.assigned_role}


@router.delete("/factories/{factory_id}/personnel/{person_id}")
async def delete_person(
    person_id: str,
    _: RequestUserContext = Depends(require_editor),
    workspace: DashboardWorkspace = Depends(get_workspace),
) -> dict[str, object]:
    change = await workspace.personnel.delete_person(person_id)
    return {"person_id": change.person_id, "saved": change.saved, "error": change.error}
