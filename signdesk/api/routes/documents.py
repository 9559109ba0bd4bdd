from typing import Any, List
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, Response, UploadFile, status
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from signdesk.api.deps import get_current_active_user, get_db
from signdesk.api.errors import to_http
from signdesk.core.config import settings
from signdesk.core.errors import SignDeskError
from signdesk.models.document import Document
from signdesk.models.user import User
from signdesk.schemas.common import MessageResponse
from signdesk.schemas.document import (
    DocumentRead,
    DocumentUpdate,
    ShareGrantRead,
    ShareRequest,
    ShareResponse,
    SignatureEntryRead,
    SignResponse,
)
from signdesk.services.access import AccessRole, DocumentOperation
from signdesk.services.document import DocumentService
from signdesk.services.signing import SigningService

router = APIRouter(prefix="/documents", tags=["documents"])


def _document_to_read(
    service: DocumentService,
    document: Document,
    role: AccessRole,
    viewer_id: UUID,
) -> DocumentRead:
    """Grants are listed for the owner only; signature payloads go to the owner and the entry's signer."""
    is_owner = role is AccessRole.OWNER
    signatures = [
        SignatureEntryRead.model_validate(entry, from_attributes=True).model_copy(
            update={
                "signer_name": entry.signer.full_name if entry.signer else None,
                "signer_email": entry.signer.email if entry.signer else None,
                "signature_data": entry.signature_data if is_owner or entry.signer_id == viewer_id else None,
            }
        )
        for entry in service.list_signatures(document)
    ]
    shares = [
        ShareGrantRead.model_validate(grant, from_attributes=True).model_copy(
            update={
                "grantee_name": grant.grantee.full_name if grant.grantee else None,
                "grantee_email": grant.grantee.email if grant.grantee else None,
            }
        )
        for grant in (service.list_grants(document) if is_owner else [])
    ]
    base = DocumentRead.model_validate(document, from_attributes=True)
    return base.model_copy(
        update={
            "signatures": signatures,
            "shares": shares,
            "access_role": role.value,
        }
    )


def _authorize(
    service: DocumentService,
    document_id: UUID,
    user: User,
    operation: DocumentOperation,
) -> tuple[Document, AccessRole]:
    try:
        return service.authorize(document_id, user.id, operation)
    except SignDeskError as exc:
        raise to_http(exc) from exc


def _pdf_response(service: DocumentService, document: Document, disposition: str) -> Response:
    presigned = service.storage.presigned_url(path=document.file_path)
    if presigned:
        return RedirectResponse(url=presigned, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    try:
        content = service.load_content(document)
    except SignDeskError as exc:
        raise to_http(exc) from exc
    safe_name = quote(document.original_name)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"{disposition}; filename*=UTF-8''{safe_name}"},
    )


@router.post("/upload", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DocumentRead:
    contents = await file.read()
    service = DocumentService(session)
    try:
        document = service.create_document(
            current_user.id,
            filename=file.filename,
            content_type=file.content_type,
            data=contents,
        )
    except SignDeskError as exc:
        raise to_http(exc) from exc
    return _document_to_read(service, document, AccessRole.OWNER, current_user.id)


@router.get("", response_model=List[DocumentRead])
def list_my_documents(
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[DocumentRead]:
    service = DocumentService(session)
    return [
        _document_to_read(service, document, AccessRole.OWNER, current_user.id)
        for document in service.list_owned(current_user.id)
    ]


@router.get("/shared-with-me", response_model=List[DocumentRead])
def list_shared_with_me(
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[DocumentRead]:
    service = DocumentService(session)
    return [
        _document_to_read(service, document, service.role_for(document, current_user.id), current_user.id)
        for document in service.list_shared_with(current_user.id)
    ]


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: UUID,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DocumentRead:
    service = DocumentService(session)
    document, role = _authorize(service, document_id, current_user, DocumentOperation.VIEW)
    return _document_to_read(service, document, role, current_user.id)


@router.get("/{document_id}/content")
def view_document(
    document_id: UUID,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Response:
    service = DocumentService(session)
    document, _ = _authorize(service, document_id, current_user, DocumentOperation.VIEW)
    return _pdf_response(service, document, "inline")


@router.get("/{document_id}/download")
def download_document(
    document_id: UUID,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Response:
    service = DocumentService(session)
    document, _ = _authorize(service, document_id, current_user, DocumentOperation.VIEW)
    return _pdf_response(service, document, "attachment")


@router.put("/{document_id}", response_model=DocumentRead)
def update_document(
    document_id: UUID,
    payload: DocumentUpdate,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DocumentRead:
    service = DocumentService(session)
    document, role = _authorize(service, document_id, current_user, DocumentOperation.UPDATE)
    try:
        document = service.update_document(document, payload)
    except SignDeskError as exc:
        raise to_http(exc) from exc
    return _document_to_read(service, document, role, current_user.id)


@router.delete("/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: UUID,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    service = DocumentService(session)
    document, _ = _authorize(service, document_id, current_user, DocumentOperation.DELETE)
    service.delete_document(document)
    return MessageResponse(message="Document removed")


@router.put("/{document_id}/share", response_model=ShareResponse)
def share_document(
    document_id: UUID,
    payload: ShareRequest,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ShareResponse:
    service = DocumentService(session)
    document, role = _authorize(service, document_id, current_user, DocumentOperation.SHARE)
    try:
        _, created = service.share_document(document, current_user, payload.email, payload.permission)
    except SignDeskError as exc:
        raise to_http(exc) from exc
    message = (
        f"Document shared successfully with {payload.email}"
        if created
        else f"Document permission updated for {payload.email}"
    )
    return ShareResponse(message=message, document=_document_to_read(service, document, role, current_user.id))


@router.delete("/{document_id}/share/{user_id}", response_model=MessageResponse)
def revoke_share(
    document_id: UUID,
    user_id: UUID,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    service = DocumentService(session)
    document, _ = _authorize(service, document_id, current_user, DocumentOperation.SHARE)
    try:
        service.revoke_share(document, user_id)
    except SignDeskError as exc:
        raise to_http(exc) from exc
    return MessageResponse(message="Share removed")


@router.post("/{document_id}/sign", response_model=SignResponse)
def sign_document(
    document_id: UUID,
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SignResponse:
    service = SigningService(session)
    try:
        result = service.apply_signature(document_id, current_user.id, payload)
    except SignDeskError as exc:
        raise to_http(exc) from exc
    return SignResponse(
        message="Document signed successfully!",
        document_id=result.document_id,
        status=result.status,
        file_location=result.file_location,
        file_name=result.file_name,
        signed_document_url=f"{settings.api_v1_str}/documents/{result.document_id}/content",
    )
