"""document store

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("domain", sa.String(length=32), nullable=False),
        sa.Column("scope_id", sa.String(length=128), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payload", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("domain", "scope_id", "entity_id", name="uq_documents_domain_scope_entity"),
    )
    op.create_index("ix_documents_domain_scope", "documents", ["domain", "scope_id"])
    op.create_check_constraint("ck_documents_position_non_negative", "documents", "position >= 0")


def downgrade() -> None:
    op.drop_constraint("ck_documents_position_non_negative", "documents", type_="check")
    op.drop_index("ix_documents_domain_scope", table_name="documents")
    op.drop_table("documents")
