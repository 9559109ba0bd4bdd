from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr

from signdesk.models.document import DocumentStatus, SharePermission, SignatureKind
from signdesk.schemas.common import IDModel, Timestamped


# -------------------------------------------------------------------------
# Signatures and grants
# -------------------------------------------------------------------------

class SignatureEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    signer_id: UUID
    signer_name: str | None = None
    signer_email: str | None = None
    signed_at: datetime
    signature_kind: SignatureKind
    page_number: int
    signature_data: str | None = None


class ShareGrantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    grantee_id: UUID
    grantee_name: str | None = None
    grantee_email: str | None = None
    permission: SharePermission


class ShareRequest(BaseModel):
    email: EmailStr
    permission: SharePermission = SharePermission.VIEW


# -------------------------------------------------------------------------
# Documents
# -------------------------------------------------------------------------

class DocumentRead(IDModel, Timestamped):
    owner_id: UUID
    file_name: str
    file_path: str
    original_name: str
    mime_type: str
    size_bytes: int
    status: DocumentStatus
    last_signed_at: datetime | None = None
    access_role: str | None = None
    signatures: list[SignatureEntryRead] = []
    shares: list[ShareGrantRead] = []


class DocumentUpdate(BaseModel):
    status: DocumentStatus | None = None


class ShareResponse(BaseModel):
    message: str
    document: DocumentRead


class SignResponse(BaseModel):
    message: str
    document_id: UUID
    status: DocumentStatus
    file_location: str
    file_name: str
    signed_document_url: str
