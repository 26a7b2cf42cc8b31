"""Repository helpers for the dashboard document store."""

from __future__ import annotations

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from orgboard.models.entities import StoredDocument


class DocumentRepository:
    """Persistence operations over stored documents."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_scope(self, domain: str, scope_id: str) -> list[StoredDocument]:
        return self.db.scalars(
            select(StoredDocument)
            .where(and_(StoredDocument.domain == domain, StoredDocument.scope_id == scope_id))
            .order_by(StoredDocument.position.asc(), StoredDocument.entity_id.asc())
        ).all()

    def get_document(self, domain: str, scope_id: str, entity_id: str) -> StoredDocument | None:
        return self.db.scalar(
            select(StoredDocument).where(
                and_(
                    StoredDocument.domain == domain,
                    StoredDocument.scope_id == scope_id,
                    StoredDocument.entity_id == entity_id,
                )
            )
        )

    def get_documents(self, domain: str, scope_id: str, entity_ids: set[str]) -> list[StoredDocument]:
        if not entity_ids:
            return []
        return self.db.scalars(
            select(StoredDocument).where(
                and_(
                    StoredDocument.domain == domain,
                    StoredDocument.scope_id == scope_id,
                    StoredDocument.entity_id.in_(entity_ids),
                )
            )
        ).all()

    def next_position(self, domain: str, scope_id: str) -> int:
        current = self.db.scalar(
            select(func.max(StoredDocument.position)).where(
                and_(StoredDocument.domain == domain, StoredDocument.scope_id == scope_id)
            )
        )
        return 0 if current is None else current + 1

    def add_document(self, document: StoredDocument) -> StoredDocument:
        self.db.add(document)
        self.db.flush()
        return document

    def delete_document(self, document: StoredDocument) -> None:
        self.db.delete(document)
        self.db.flush()
