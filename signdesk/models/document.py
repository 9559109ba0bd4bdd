from datetime import datetime
from enum import Enum
from typing import List
from uuid import UUID

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, Relationship

from signdesk.models.base import TimestampedModel, UUIDModel, utcnow
from signdesk.models.user import User


class DocumentStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"
    REVIEWED = "reviewed"
    ARCHIVED = "archived"


class SharePermission(str, Enum):
    VIEW = "view"
    VIEW_AND_SIGN = "view_and_sign"


class SignatureKind(str, Enum):
    DRAW = "draw"
    UPLOAD = "upload"
    TEXT = "text"

    @property
    def is_image(self) -> bool:
        return self in (SignatureKind.DRAW, SignatureKind.UPLOAD)


class Document(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "documents"

    owner_id: UUID = Field(foreign_key="users.id", index=True)
    file_path: str
    file_name: str
    original_name: str
    mime_type: str = Field(default="application/pdf", max_length=128)
    size_bytes: int = Field(default=0)
    status: DocumentStatus = Field(default=DocumentStatus.PENDING)
    last_signed_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    revision: int = Field(default=0)

    owner: User = Relationship()
    signatures: List["DocumentSignature"] = Relationship(back_populates="document")
    shares: List["DocumentShare"] = Relationship(back_populates="document")


class DocumentSignature(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "document_signatures"
    __table_args__ = (UniqueConstraint("document_id", "signer_id", name="uq_document_signer"),)

    document_id: UUID = Field(foreign_key="documents.id", index=True)
    signer_id: UUID = Field(foreign_key="users.id", index=True)
    signed_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    signature_kind: SignatureKind = Field(default=SignatureKind.DRAW)
    signature_data: str
    page_number: int = Field(default=1, ge=1)

    document: Document = Relationship(back_populates="signatures")
    signer: User = Relationship()


class DocumentShare(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "document_shares"
    __table_args__ = (UniqueConstraint("document_id", "grantee_id", name="uq_document_grantee"),)

    document_id: UUID = Field(foreign_key="documents.id", index=True)
    grantee_id: UUID = Field(foreign_key="users.id", index=True)
    permission: SharePermission = Field(default=SharePermission.VIEW)

    document: Document = Relationship(back_populates="shares")
    grantee: User = Relationship()
