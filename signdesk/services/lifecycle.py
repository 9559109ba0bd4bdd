from __future__ import annotations

from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, select

from signdesk.core.errors import Conflict, InvalidStatus
from signdesk.models.base import utcnow
from signdesk.models.document import Document, DocumentSignature, DocumentStatus
from signdesk.services.artifacts import PlacementRequest
from signdesk.services.versioning import StoredVersion

SIGNABLE_STATUSES = {DocumentStatus.PENDING, DocumentStatus.SIGNED}

# Manual metadata updates; signing is the only way into SIGNED.
ALLOWED_TRANSITIONS: dict[DocumentStatus, set[DocumentStatus]] = {
    DocumentStatus.PENDING: set(),
    DocumentStatus.SIGNED: {DocumentStatus.REVIEWED, DocumentStatus.ARCHIVED},
    DocumentStatus.REVIEWED: {DocumentStatus.ARCHIVED},
    DocumentStatus.ARCHIVED: set(),
}


def ensure_signable(document: Document) -> None:
    if document.status not in SIGNABLE_STATUSES:
        raise InvalidStatus(f"Documents in status '{document.status.value}' can no longer be signed.")


def ensure_transition(current: DocumentStatus, target: DocumentStatus) -> None:
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatus(f"Cannot change status from '{current.value}' to '{target.value}'.")


def record_signature(
    session: Session,
    document: Document,
    version: StoredVersion,
    signer_id: UUID,
    request: PlacementRequest,
    *,
    expected_revision: int,
) -> Document:
    """
    Point the document at its new version and upsert the signer's entry.

    Must only run once ``version`` has been written. The revision check makes
    the update a compare-and-swap against concurrent writers.
    """
    now = utcnow()
    result = session.exec(
        update(Document)
        .where(Document.id == document.id)
        .where(Document.revision == expected_revision)
        .values(
            status=DocumentStatus.SIGNED,
            file_path=version.file_path,
            file_name=version.file_name,
            size_bytes=version.size_bytes,
            last_signed_at=now,
            updated_at=now,
            revision=expected_revision + 1,
        )
    )
    if result.rowcount != 1:
        session.rollback()
        raise Conflict("Document was modified by another request. Please retry.")

    entry = session.exec(
        select(DocumentSignature)
        .where(DocumentSignature.document_id == document.id)
        .where(DocumentSignature.signer_id == signer_id)
    ).first()
    if entry:
        entry.signed_at = now
        entry.signature_data = request.signature_data
        entry.signature_kind = request.signature_type
        entry.page_number = request.page_number
        entry.touch(now)
    else:
        entry = DocumentSignature(
            document_id=document.id,
            signer_id=signer_id,
            signed_at=now,
            signature_kind=request.signature_type,
            signature_data=request.signature_data,
            page_number=request.page_number,
        )
    session.add(entry)
    session.commit()
    session.refresh(document)
    return document
