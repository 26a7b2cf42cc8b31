"""Translation of engine errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from orgboard.domain.errors import (
    AssignmentScopeError,
    DashboardError,
    EditPermissionError,
    InvalidTransitionError,
    MalformedPathError,
    MutationConflictError,
    PathNotFoundError,
    PersistenceFailure,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses must precede their bases.
ERROR_STATUS: tuple[tuple[type[DashboardError], int], ...] = (
    (MalformedPathError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AssignmentScopeError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PathNotFoundError, status.HTTP_404_NOT_FOUND),
    (EditPermissionError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (MutationConflictError, status.HTTP_409_CONFLICT),
    (PersistenceFailure, status.HTTP_502_BAD_GATEWAY),
)


def status_for(exc: DashboardError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log("%s %s -> %d %s: %s", request.method, request.url.path, status_code, type(exc).__name__, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DashboardError, dashboard_error_handler)
