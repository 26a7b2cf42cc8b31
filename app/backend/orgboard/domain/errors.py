"""Error taxonomy for the editing engine."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for all editing-engine errors."""


class MalformedPathError(DashboardError):
    """An edit id could not be decoded into a field path."""

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(f"Malformed field path {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class PathNotFoundError(DashboardError):
    """A field path does not resolve to an existing node of the entity graph."""

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"Field path {path} not found: {reason}")
        self.path = path
        self.reason = reason


class MutationConflictError(DashboardError):
    """A mutation would collide with an existing sibling node."""


class PersistenceFailure(DashboardError):
    """The document store rejected or failed to complete a write."""


class DocumentNotFoundError(PersistenceFailure):
    """The requested document scope does not exist in the store."""


class InvalidTransitionError(DashboardError):
    """An operation was called from a state that does not allow it."""


class EditPermissionError(DashboardError):
    """The caller lacks the edit privilege required for the operation."""


class AssignmentScopeError(DashboardError):
    """A drop target lies in a factory scope the person cannot be assigned to."""
