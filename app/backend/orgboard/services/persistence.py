"""Document store contract, its implementations and the persistence adapter.

The store is addressed by ``(domain, scope_id)`` collections holding documents
keyed by entity id. Writes merge top-level fields into existing documents.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections.abc import Awaitable, Mapping
from datetime import datetime
from typing import Any, Protocol, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from orgboard.domain.errors import DocumentNotFoundError, PersistenceFailure
from orgboard.domain.field_path import FieldPath
from orgboard.domain.graph import EntityGraph
from orgboard.domain.resolver import persisted_update
from orgboard.models.entities import StoredDocument
from orgboard.repositories.document_repository import DocumentRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

Payload = dict[str, Any]


class DocumentStore(Protocol):
    """Read/write contract of the remote document store."""

    async def read(self, domain: str, scope_id: str) -> dict[str, Payload]: ...

    async def write(self, domain: str, scope_id: str, partial_update: Mapping[str, Mapping[str, Any]]) -> None: ...

    async def append(
        self,
        domain: str,
        scope_id: str,
        payload: Mapping[str, Any],
        *,
        entity_id: str | None = None,
    ) -> str: ...

    async def remove(self, domain: str, scope_id: str, entity_id: str) -> None: ...


class InMemoryDocumentStore:
    """Process-local store used by tests and local runs.

    ``fail_next`` scripts failures for upcoming writes and removals; every
    attempted write is recorded in ``write_calls`` whether it succeeds or not.
    """

    def __init__(self) -> None:
        self._scopes: dict[tuple[str, str], dict[str, Payload]] = {}
        self._failures: list[Exception] = []
        self.write_calls: list[tuple[str, str, dict[str, Payload]]] = []
        self.remove_calls: list[tuple[str, str, str]] = []

    def fail_next(self, error: Exception | None = None, *, times: int = 1) -> None:
        for _ in range(times):
            self._failures.append(error or PersistenceFailure("Simulated store failure."))

    def seed(self, domain: str, scope_id: str, entity_id: str, payload: Mapping[str, Any]) -> None:
        self._scopes.setdefault((domain, scope_id), {})[entity_id] = copy.deepcopy(dict(payload))

    def snapshot(self, domain: str, scope_id: str) -> dict[str, Payload]:
        return copy.deepcopy(self._scopes.get((domain, scope_id), {}))

    def _raise_scripted_failure(self) -> None:
        if self._failures:
            raise self._failures.pop(0)

    async def read(self, domain: str, scope_id: str) -> dict[str, Payload]:
        documents = self._scopes.get((domain, scope_id))
        if not documents:
            raise DocumentNotFoundError(f"No documents in {domain}/{scope_id}.")
        return copy.deepcopy(documents)

    async def write(self, domain: str, scope_id: str, partial_update: Mapping[str, Mapping[str, Any]]) -> None:
        self.write_calls.append((domain, scope_id, copy.deepcopy({key: dict(value) for key, value in partial_update.items()})))
        self._raise_scripted_failure()
        documents = self._scopes.get((domain, scope_id), {})
        missing = sorted(set(partial_update) - set(documents))
        if missing:
            raise PersistenceFailure(f"Documents {missing} not found in {domain}/{scope_id}.")
        for entity_id, fields in partial_update.items():
            documents[entity_id].update(copy.deepcopy(dict(fields)))

    async def append(
        self,
        domain: str,
        scope_id: str,
        payload: Mapping[str, Any],
        *,
        entity_id: str | None = None,
    ) -> str:
        self._raise_scripted_failure()
        new_id = entity_id or uuid.uuid4().hex
        documents = self._scopes.setdefault((domain, scope_id), {})
        if new_id in documents:
            raise PersistenceFailure(f"Document {new_id!r} already exists in {domain}/{scope_id}.")
        documents[new_id] = copy.deepcopy(dict(payload))
        return new_id

    async def remove(self, domain: str, scope_id: str, entity_id: str) -> None:
        self.remove_calls.append((domain, scope_id, entity_id))
        self._raise_scripted_failure()
        documents = self._scopes.get((domain, scope_id), {})
        if entity_id not in documents:
            raise PersistenceFailure(f"Document {entity_id!r} not found in {domain}/{scope_id}.")
        del documents[entity_id]


class SqlDocumentStore:
    """Document store persisted through SQLAlchemy.

    Blocking session work runs in Starlette's thread pool so the event loop
    keeps serving while a write is in flight.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _read(self, domain: str, scope_id: str) -> dict[str, Payload]:
        with self._session_factory() as db:
            rows = DocumentRepository(db).list_scope(domain, scope_id)
            if not rows:
                raise DocumentNotFoundError(f"No documents in {domain}/{scope_id}.")
            return {row.entity_id: copy.deepcopy(dict(row.payload)) for row in rows}

    def _write(self, domain: str, scope_id: str, partial_update: Mapping[str, Mapping[str, Any]]) -> None:
        with self._session_factory() as db:
            repo = DocumentRepository(db)
            rows = {row.entity_id: row for row in repo.get_documents(domain, scope_id, set(partial_update))}
            missing = sorted(set(partial_update) - set(rows))
            if missing:
                raise PersistenceFailure(f"Documents {missing} not found in {domain}/{scope_id}.")

            now = datetime.utcnow()
            for entity_id, fields in partial_update.items():
                row = rows[entity_id]
                # Reassign so the JSON column registers the change.
                row.payload = {**row.payload, **copy.deepcopy(dict(fields))}
                row.updated_at = now
            try:
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceFailure(f"Write to {domain}/{scope_id} failed.") from exc

    def _append(self, domain: str, scope_id: str, payload: Mapping[str, Any], entity_id: str | None) -> str:
        with self._session_factory() as db:
            repo = DocumentRepository(db)
            new_id = entity_id or uuid.uuid4().hex
            now = datetime.utcnow()
            document = StoredDocument(
                domain=domain,
                scope_id=scope_id,
                entity_id=new_id,
                position=repo.next_position(domain, scope_id),
                payload=copy.deepcopy(dict(payload)),
                created_at=now,
                updated_at=now,
            )
            try:
                repo.add_document(document)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceFailure(f"Append to {domain}/{scope_id} failed.") from exc
            return new_id

    def _remove(self, domain: str, scope_id: str, entity_id: str) -> None:
        with self._session_factory() as db:
            repo = DocumentRepository(db)
            document = repo.get_document(domain, scope_id, entity_id)
            if document is None:
                raise PersistenceFailure(f"Document {entity_id!r} not found in {domain}/{scope_id}.")
            try:
                repo.delete_document(document)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceFailure(f"Remove from {domain}/{scope_id} failed.") from exc

    async def read(self, domain: str, scope_id: str) -> dict[str, Payload]:
        return await run_in_threadpool(self._read, domain, scope_id)

    async def write(self, domain: str, scope_id: str, partial_update: Mapping[str, Mapping[str, Any]]) -> None:
        await run_in_threadpool(self._write, domain, scope_id, partial_update)

    async def append(
        self,
        domain: str,
        scope_id: str,
        payload: Mapping[str, Any],
        *,
        entity_id: str | None = None,
    ) -> str:
        return await run_in_threadpool(self._append, domain, scope_id, payload, entity_id)

    async def remove(self, domain: str, scope_id: str, entity_id: str) -> None:
        await run_in_threadpool(self._remove, domain, scope_id, entity_id)


class PersistenceAdapter:
    """Engine-facing persistence boundary.

    Every store error, unexpected exception or timeout is reported as
    PersistenceFailure so callers have a single rollback trigger.
    """

    def __init__(self, store: DocumentStore, *, timeout_seconds: float | None = None) -> None:
        self.store = store
        self.timeout_seconds = timeout_seconds

    async def _guard(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, self.timeout_seconds)
        except PersistenceFailure:
            raise
        except asyncio.TimeoutError as exc:
            raise PersistenceFailure(f"{operation} timed out after {self.timeout_seconds}s.") from exc
        except Exception as exc:
            raise PersistenceFailure(f"{operation} failed: {exc}") from exc

    async def save(self, graph: EntityGraph, *paths: FieldPath) -> None:
        """Persist the current graph values of ``paths``, one write per document scope."""

        grouped: dict[tuple[str, str], dict[str, dict[str, Any]]] = {}
        for path in paths:
            update = persisted_update(graph, path)
            entity_fields = grouped.setdefault((update.domain, update.scope_id), {}).setdefault(update.entity_id, {})
            entity_fields.update(update.fields)

        for (domain, scope_id), partial_update in grouped.items():
            await self._guard(f"write {domain}/{scope_id}", self.store.write(domain, scope_id, partial_update))
            logger.debug("Persisted %s/%s entities=%s", domain, scope_id, sorted(partial_update))

    async def read(self, domain: str, scope_id: str) -> dict[str, Payload]:
        return await self._guard(f"read {domain}/{scope_id}", self.store.read(domain, scope_id))

    async def append(self, domain: str, scope_id: str, payload: Mapping[str, Any]) -> str:
        return await self._guard(f"append {domain}/{scope_id}", self.store.append(domain, scope_id, payload))

    async def remove(self, domain: str, scope_id: str, entity_id: str) -> None:
        await self._guard(f"remove {domain}/{scope_id}", self.store.remove(domain, scope_id, entity_id))
