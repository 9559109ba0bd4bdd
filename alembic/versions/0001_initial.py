"""Users, documents, signer entries and share grants."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

DOCUMENT_STATUS = sa.Enum("PENDING", "SIGNED", "REVIEWED", "ARCHIVED", name="documentstatus")
SHARE_PERMISSION = sa.Enum("VIEW", "VIEW_AND_SIGN", name="sharepermission")
SIGNATURE_KIND = sa.Enum("DRAW", "UPLOAD", "TEXT", name="signaturekind")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("email", sqlmodel.AutoString(), nullable=False),
        sa.Column("full_name", sqlmodel.AutoString(), nullable=False),
        sa.Column("password_hash", sqlmodel.AutoString(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("file_path", sqlmodel.AutoString(), nullable=False),
        sa.Column("file_name", sqlmodel.AutoString(), nullable=False),
        sa.Column("original_name", sqlmodel.AutoString(), nullable=False),
        sa.Column("mime_type", sqlmodel.AutoString(length=128), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("status", DOCUMENT_STATUS, nullable=False),
        sa.Column("last_signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_documents_id", "documents", ["id"])
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])

    op.create_table(
        "document_signatures",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("signer_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("signature_kind", SIGNATURE_KIND, nullable=False),
        sa.Column("signature_data", sqlmodel.AutoString(), nullable=False),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.UniqueConstraint("document_id", "signer_id", name="uq_document_signer"),
    )
    op.create_index("ix_document_signatures_id", "document_signatures", ["id"])
    op.create_index("ix_document_signatures_document_id", "document_signatures", ["document_id"])
    op.create_index("ix_document_signatures_signer_id", "document_signatures", ["signer_id"])

    op.create_table(
        "document_shares",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("grantee_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("permission", SHARE_PERMISSION, nullable=False),
        sa.UniqueConstraint("document_id", "grantee_id", name="uq_document_grantee"),
    )
    op.create_index("ix_document_shares_id", "document_shares", ["id"])
    op.create_index("ix_document_shares_document_id", "document_shares", ["document_id"])
    op.create_index("ix_document_shares_grantee_id", "document_shares", ["grantee_id"])


def downgrade() -> None:
    op.drop_table("document_shares")
    op.drop_table("document_signatures")
    op.drop_table("documents")
    op.drop_table("users")
    bind = op.get_bind()
    for enum in (SIGNATURE_KIND, SHARE_PERMISSION, DOCUMENT_STATUS):
        enum.drop(bind, checkfirst=True)
