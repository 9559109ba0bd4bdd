from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence
from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError
from sqlmodel import Session, select

from signdesk.core.config import settings
from signdesk.core.errors import (
    Conflict,
    CorruptSource,
    Forbidden,
    InvalidPayload,
    NotFound,
    PersistenceFailure,
    UnsupportedFormat,
)
from signdesk.models.document import (
    Document,
    DocumentShare,
    DocumentSignature,
    DocumentStatus,
    SharePermission,
)
from signdesk.models.user import User
from signdesk.schemas.document import DocumentUpdate
from signdesk.services.access import AccessRole, DocumentOperation, ensure_allowed, resolve_role
from signdesk.services.compositor import load_pdf
from signdesk.services.lifecycle import ensure_transition
from signdesk.services.storage import StorageBackend, get_storage, normalize_storage_path
from signdesk.services.versioning import next_version_token, safe_stem

logger = logging.getLogger("signdesk.documents")

PDF_MIME_TYPES = {"application/pdf", "application/x-pdf"}
MISSING_OBJECT_CODES = {"NoSuchKey", "NotFound", "404"}


class DocumentService:
    def __init__(self, session: Session, storage: StorageBackend | None = None) -> None:
        self.session = session
        self.storage = storage or get_storage()

    # ------------------------------------------------------------------
    # Lookup and authorization
    # ------------------------------------------------------------------

    def get_document(self, document_id: str | UUID) -> Document:
        try:
            document_uuid = UUID(str(document_id))
        except ValueError as exc:
            raise NotFound("Document not found") from exc
        document = self.session.get(Document, document_uuid)
        if not document:
            raise NotFound("Document not found")
        return document

    def list_grants(self, document: Document) -> Sequence[DocumentShare]:
        return self.session.exec(
            select(DocumentShare).where(DocumentShare.document_id == document.id)
        ).all()

    def role_for(self, document: Document, actor_id: UUID) -> AccessRole:
        return resolve_role(document, actor_id, self.list_grants(document))

    def authorize(
        self,
        document_id: str | UUID,
        actor_id: UUID,
        operation: DocumentOperation,
    ) -> tuple[Document, AccessRole]:
        document = self.get_document(document_id)
        role = self.role_for(document, actor_id)
        try:
            ensure_allowed(role, operation)
        except Forbidden:
            logger.warning(
                "Denied %s on document %s for user %s (role=%s)",
                operation.value,
                document.id,
                actor_id,
                role.value,
            )
            raise
        return document, role

    # ------------------------------------------------------------------
    # Upload and listing
    # ------------------------------------------------------------------

    def create_document(
        self,
        owner_id: UUID,
        *,
        filename: str | None,
        content_type: str | None,
        data: bytes,
    ) -> Document:
        if not data:
            raise InvalidPayload("No document file uploaded.")
        if len(data) > settings.max_upload_bytes:
            raise InvalidPayload("Uploaded file exceeds the maximum allowed size.")

        original_name = Path(filename or "document.pdf").name
        mime_type = (content_type or "").split(";")[0].strip().lower()
        looks_like_pdf = mime_type in PDF_MIME_TYPES or (
            mime_type in {"", "application/octet-stream"} and original_name.lower().endswith(".pdf")
        )
        if not looks_like_pdf:
            raise UnsupportedFormat("Only PDF documents can be uploaded.")

        try:
            load_pdf(data)
        except CorruptSource as exc:
            raise InvalidPayload(f"Uploaded file is not a valid PDF: {exc.detail}") from exc

        file_name = f"{next_version_token()}-{safe_stem(original_name)}.pdf"
        stored_path = self.storage.save_bytes(root=settings.uploads_dir, name=file_name, data=data)

        document = Document(
            owner_id=owner_id,
            file_path=normalize_storage_path(stored_path),
            file_name=file_name,
            original_name=original_name,
            mime_type="application/pdf",
            size_bytes=len(data),
            status=DocumentStatus.PENDING,
        )
        self.session.add(document)
        self.session.commit()
        self.session.refresh(document)
        logger.info("Document %s uploaded by %s as %s", document.id, owner_id, file_name)
        return document

    def list_owned(self, owner_id: UUID) -> Iterable[Document]:
        statement = (
            select(Document)
            .where(Document.owner_id == owner_id)
            .order_by(Document.created_at.desc())
        )
        return self.session.exec(statement).all()

    def list_shared_with(self, user_id: UUID) -> Iterable[Document]:
        statement = (
            select(Document)
            .join(DocumentShare, DocumentShare.document_id == Document.id)
            .where(DocumentShare.grantee_id == user_id)
            .order_by(Document.created_at.desc())
        )
        return self.session.exec(statement).all()

    def list_signatures(self, document: Document) -> Sequence[DocumentSignature]:
        return self.session.exec(
            select(DocumentSignature)
            .where(DocumentSignature.document_id == document.id)
            .order_by(DocumentSignature.signed_at)
        ).all()

    def load_content(self, document: Document) -> bytes:
        try:
            return self.storage.load_bytes(document.file_path)
        except FileNotFoundError as exc:
            logger.error("File for document %s not found at %s", document.id, document.file_path)
            raise NotFound("Document file not found on server.") from exc
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in MISSING_OBJECT_CODES:
                logger.error("Object for document %s not found at %s", document.id, document.file_path)
                raise NotFound("Document file not found on server.") from exc
            logger.exception("Failed to read document %s from %s", document.id, document.file_path)
            raise PersistenceFailure("Document file could not be read from storage.") from exc
        except BotoCoreError as exc:
            logger.exception("Failed to read document %s from %s", document.id, document.file_path)
            raise PersistenceFailure("Document file could not be read from storage.") from exc

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def update_document(self, document: Document, payload: DocumentUpdate) -> Document:
        update_data = payload.model_dump(exclude_unset=True)
        target = update_data.get("status")
        if target is not None:
            target = DocumentStatus(target)
            ensure_transition(document.status, target)
            document.status = target
        document.touch()
        self.session.add(document)
        self.session.commit()
        self.session.refresh(document)
        return document

    def delete_document(self, document: Document) -> None:
        """Remove the record with its signer entries and grants, then its current file."""
        file_path = document.file_path
        for entry in self.list_signatures(document):
            self.session.delete(entry)
        for grant in self.list_grants(document):
            self.session.delete(grant)
        self.session.delete(document)
        self.session.commit()

        try:
            if not self.storage.delete(file_path):
                logger.warning("File %s not found for deletion, record removed anyway.", file_path)
        except OSError as exc:
            logger.error("Error deleting file %s: %s", file_path, exc)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    def share_document(
        self,
        document: Document,
        owner: User,
        email: str,
        permission: SharePermission,
    ) -> tuple[DocumentShare, bool]:
        """Grant or update access for the account behind ``email``.

        Returns the grant and whether it was newly created.
        """
        grantee = self.session.exec(select(User).where(User.email == email.strip().lower())).first()
        if not grantee:
            raise NotFound("User with that email not found")
        if grantee.id == owner.id:
            raise Conflict("Cannot share a document with yourself")

        grant = self.session.exec(
            select(DocumentShare)
            .where(DocumentShare.document_id == document.id)
            .where(DocumentShare.grantee_id == grantee.id)
        ).first()
        created = grant is None
        if grant:
            grant.permission = permission
            grant.touch()
        else:
            grant = DocumentShare(document_id=document.id, grantee_id=grantee.id, permission=permission)
        self.session.add(grant)
        self.session.commit()
        self.session.refresh(grant)
        logger.info(
            "Document %s %s with %s (%s)",
            document.id,
            "shared" if created else "share updated",
            grantee.id,
            permission.value,
        )
        return grant, created

    def revoke_share(self, document: Document, grantee_id: UUID) -> None:
        grant = self.session.exec(
            select(DocumentShare)
            .where(DocumentShare.document_id == document.id)
            .where(DocumentShare.grantee_id == grantee_id)
        ).first()
        if not grant:
            raise NotFound("Share not found")
        self.session.delete(grant)
        self.session.commit()
