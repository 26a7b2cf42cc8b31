"""Liveness endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    """Report liveness and how many editing workspaces are open."""

    return {"status": "ok", "open_workspaces": len(request.app.state.workspaces)}
