"""Shared FastAPI dependencies for dashboard endpoints."""

from __future__ import annotations

from fastapi import Depends, Request

from orgboard.core.auth import RequestUserContext, get_current_user_context
from orgboard.core.config import get_settings
from orgboard.db.dependencies import get_session_factory
from orgboard.domain.field_path import FieldPath, decode
from orgboard.services.persistence import DocumentStore, PersistenceAdapter, SqlDocumentStore
from orgboard.services.workspace import DashboardWorkspace, WorkspaceRegistry


def get_document_store() -> DocumentStore:
    """Store backing all workspaces; overridden in tests."""

    return SqlDocumentStore(get_session_factory())


def get_persistence(store: DocumentStore = Depends(get_document_store)) -> PersistenceAdapter:
    return PersistenceAdapter(store, timeout_seconds=get_settings().persistence_timeout_seconds)


def get_registry(request: Request) -> WorkspaceRegistry:
    return request.app.state.workspaces


async def get_workspace(
    factory_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    registry: WorkspaceRegistry = Depends(get_registry),
    persistence: PersistenceAdapter = Depends(get_persistence),
) -> DashboardWorkspace:
    """Workspace of the calling user for the selected factory."""

    return await registry.get_or_open(context.email, factory_id, persistence, can_edit=context.can_edit)


def parse_edit_id(edit_id: str) -> FieldPath:
    """Decode an edit id; MalformedPathError surfaces as 422."""

    return decode(edit_id)
