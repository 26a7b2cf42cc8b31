"""In-place text edit session with optimistic commit and rollback.

One session serves every editable field of a workspace: at most one field is
open at a time. Opening another field commits the open one first. A commit
applies the trimmed draft to the graph before the store is called; if the
store fails, the graph leaf is restored to the exact pre-edit value.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from orgboard.domain.errors import (
    InvalidTransitionError,
    MutationConflictError,
    PathNotFoundError,
    PersistenceFailure,
)
from orgboard.domain.field_path import FieldPath, encode
from orgboard.domain.graph import EntityGraph
from orgboard.domain.resolver import display_text, relocated
from orgboard.services.graph_state import GraphState
from orgboard.services.persistence import PersistenceAdapter

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save changes."

ViewListener = Callable[[FieldPath, str], None]


class EditState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    COMMITTING = "committing"


class OutcomeStatus(str, Enum):
    UNCHANGED = "unchanged"
    SAVED = "saved"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True, slots=True)
class EditOutcome:
    """Result of finalizing one edit.

    ``path`` addresses the leaf as it stands afterwards: a saved category
    rename reports the heading under its new name.
    """

    path: FieldPath
    status: OutcomeStatus
    value: object
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.ROLLED_BACK


@dataclass(frozen=True, slots=True)
class _PendingCommit:
    path: FieldPath
    target: FieldPath
    original: object
    written: object
    snapshot: EntityGraph


class EditSession:
    """State machine ``idle -> editing -> (committing -> idle) | idle``."""

    def __init__(self, graph_state: GraphState, persistence: PersistenceAdapter) -> None:
        self._graph_state = graph_state
        self._persistence = persistence
        self._path: FieldPath | None = None
        self._draft = ""
        self._current: object = None
        self._in_flight: Counter[FieldPath] = Counter()
        self._listeners: list[ViewListener] = []
        self.last_error: str | None = None

    # ---------- Introspection ----------
    @property
    def state(self) -> EditState:
        if self._path is not None:
            return EditState.EDITING
        if self._in_flight:
            return EditState.COMMITTING
        return EditState.IDLE

    @property
    def path(self) -> FieldPath | None:
        return self._path

    @property
    def draft(self) -> str:
        return self._draft

    def is_editing(self, path: FieldPath) -> bool:
        return self._path == path

    def in_flight(self, path: FieldPath) -> int:
        return self._in_flight[path]

    def visible_text(self, path: FieldPath) -> str:
        """What the field shows right now: the draft while open, else the graph value."""

        if self._path == path:
            return self._draft
        try:
            return display_text(self._graph_state.read(path))
        except PathNotFoundError:
            return ""

    def add_view_listener(self, listener: ViewListener) -> None:
        """Subscribe to visible-text resets (cancel, confirm, revert)."""

        if listener not in self._listeners:
            self._listeners.append(listener)

    def _show(self, path: FieldPath, text: str) -> None:
        for listener in self._listeners:
            listener(path, text)

    def _require_editing(self, operation: str) -> FieldPath:
        if self._path is None:
            raise InvalidTransitionError(f"{operation} requires an open edit (state={self.state.value}).")
        return self._path

    # ---------- Transitions ----------
    async def begin(self, path: FieldPath, current_value: object | None = None) -> EditOutcome | None:
        """Open ``path`` for editing.

        When another field is open it is committed first and that commit's
        outcome is returned. Re-opening the field already being edited keeps
        its draft.
        """

        if self._path == path:
            return None

        pending = self._start_commit() if self._path is not None else None

        if current_value is None:
            try:
                current_value = self._graph_state.read(path)
            except PathNotFoundError:
                current_value = None
        self._path = path
        self._current = current_value
        self._draft = display_text(current_value)
        logger.debug("Editing %s", encode(path))

        if pending is None:
            return None
        return await self._finish(pending)

    def update_draft(self, text: str | None) -> None:
        self._require_editing("update_draft")
        self._draft = "" if text is None else str(text)

    def cancel(self) -> None:
        path = self._require_editing("cancel")
        current = self._current
        self._path = None
        self._draft = ""
        self._current = None
        self._show(path, display_text(current))
        logger.debug("Cancelled edit of %s", encode(path))

    async def commit(self) -> EditOutcome:
        return await self._finish(self._start_commit())

    # ---------- Commit internals ----------
    def _failed(self, path: FieldPath, value: object, exc: Exception) -> EditOutcome:
        message = str(exc) if isinstance(exc, (PathNotFoundError, MutationConflictError)) else SAVE_FAILED_MESSAGE
        self.last_error = message
        return EditOutcome(path=path, status=OutcomeStatus.ROLLED_BACK, value=value, error=message)

    def _start_commit(self) -> EditOutcome | _PendingCommit:
        """Synchronous half of a commit: compare, apply optimistically, release the field."""

        path = self._require_editing("commit")
        draft = self._draft
        self._path = None
        self._draft = ""
        self._current = None

        try:
            original = self._graph_state.read(path)
        except PathNotFoundError as exc:
            logger.warning("Cannot commit %s: %s", encode(path), exc)
            return self._failed(path, None, exc)

        trimmed = draft.strip()
        if trimmed == display_text(original).strip():
            self._show(path, display_text(original))
            return EditOutcome(path=path, status=OutcomeStatus.UNCHANGED, value=original)

        self.last_error = None
        try:
            snapshot = self._graph_state.apply(path, trimmed)
        except (PathNotFoundError, MutationConflictError) as exc:
            logger.warning("Rejected edit of %s: %s", encode(path), exc)
            self._show(path, display_text(original))
            return self._failed(path, original, exc)

        target = relocated(path, trimmed)
        self._in_flight[path] += 1
        return _PendingCommit(
            path=path,
            target=target,
            original=original,
            written=self._graph_state.read(target),
            snapshot=snapshot,
        )

    async def _finish(self, pending: EditOutcome | _PendingCommit) -> EditOutcome:
        """Asynchronous half of a commit: persist, then confirm or roll back."""

        if isinstance(pending, EditOutcome):
            return pending

        path, target = pending.path, pending.target
        try:
            await self._persistence.save(pending.snapshot, target)
        except (PersistenceFailure, PathNotFoundError) as exc:
            logger.warning("Persisting %s failed, rolling back: %s", encode(path), exc)
            self._rollback(pending)
            return self._failed(path, self._safe_read(path), exc)
        else:
            logger.info("Saved %s", encode(target))
            if not self._reopened(pending):
                self._show(path, self.visible_text(target))
            return EditOutcome(path=target, status=OutcomeStatus.SAVED, value=pending.written)
        finally:
            self._in_flight[path] -= 1
            if self._in_flight[path] <= 0:
                del self._in_flight[path]

    def _safe_read(self, path: FieldPath) -> object:
        try:
            return self._graph_state.read(path)
        except PathNotFoundError:
            return None

    def _reopened(self, pending: _PendingCommit) -> bool:
        return self.is_editing(pending.path) or self.is_editing(pending.target)

    def _rollback(self, pending: _PendingCommit) -> None:
        path, target = pending.path, pending.target
        try:
            still_ours = self._graph_state.read(target) == pending.written
        except PathNotFoundError:
            still_ours = False
        if not still_ours:
            logger.info("Skipping graph revert of %s: leaf changed since commit", encode(target))
        else:
            try:
                self._graph_state.apply(target, pending.original)
            except (PathNotFoundError, MutationConflictError) as exc:
                logger.warning("Could not revert %s: %s", encode(target), exc)

        if not self._reopened(pending):
            self._show(path, self.visible_text(path))
