from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import Session, select

from signdesk.core.errors import (
    Conflict,
    Forbidden,
    InvalidPayload,
    InvalidStatus,
    NotFound,
    UnsupportedFormat,
)
from signdesk.models.document import Document, DocumentShare, DocumentSignature, DocumentStatus, SharePermission
from signdesk.schemas.document import DocumentUpdate
from signdesk.services.access import AccessRole, DocumentOperation
from signdesk.services.document import DocumentService
from signdesk.services.signing import SigningService
from signdesk.services.storage import LocalStorage

from .conftest import create_document, create_user, make_pdf, placement_payload


@pytest.fixture()
def base_document(db_session: Session, storage: LocalStorage) -> dict:
    owner = create_user(db_session, "Owner")
    other = create_user(db_session, "Other")
    document = create_document(db_session, storage, owner)
    return {"owner": owner, "other": other, "document": document}


def test_create_document_validates_upload(db_session: Session, storage: LocalStorage) -> None:
    owner = create_user(db_session)
    service = DocumentService(db_session, storage)

    document = service.create_document(
        owner.id, filename="Lease.pdf", content_type="application/pdf", data=make_pdf(2)
    )

    assert document.status is DocumentStatus.PENDING
    assert document.original_name == "Lease.pdf"
    assert document.file_name.endswith("-Lease.pdf")
    assert storage.resolve(document.file_path) is not None

    with pytest.raises(InvalidPayload):
        service.create_document(owner.id, filename="empty.pdf", content_type="application/pdf", data=b"")
    with pytest.raises(UnsupportedFormat):
        service.create_document(owner.id, filename="notes.txt", content_type="text/plain", data=b"hello")
    with pytest.raises(InvalidPayload):
        service.create_document(owner.id, filename="fake.pdf", content_type="application/pdf", data=b"garbage")


def test_octet_stream_pdf_is_accepted(db_session: Session, storage: LocalStorage) -> None:
    owner = create_user(db_session)

    document = DocumentService(db_session, storage).create_document(
        owner.id, filename="scan.PDF", content_type="application/octet-stream", data=make_pdf()
    )

    assert document.mime_type == "application/pdf"


def test_authorize_distinguishes_missing_and_denied(db_session: Session, storage: LocalStorage, base_document: dict) -> None:
    service = DocumentService(db_session, storage)
    document = base_document["document"]

    found, role = service.authorize(document.id, base_document["owner"].id, DocumentOperation.DELETE)
    assert found.id == document.id
    assert role is AccessRole.OWNER

    with pytest.raises(Forbidden):
        service.authorize(document.id, base_document["other"].id, DocumentOperation.VIEW)
    with pytest.raises(NotFound):
        service.authorize(uuid4(), base_document["owner"].id, DocumentOperation.VIEW)


def test_share_upserts_single_grant(db_session: Session, storage: LocalStorage, base_document: dict) -> None:
    service = DocumentService(db_session, storage)
    document = base_document["document"]
    other = base_document["other"]

    _, created = service.share_document(document, base_document["owner"], other.email.upper(), SharePermission.VIEW)
    assert created is True
    grant, created = service.share_document(
        document, base_document["owner"], other.email, SharePermission.VIEW_AND_SIGN
    )
    assert created is False

    grants = db_session.exec(select(DocumentShare).where(DocumentShare.document_id == document.id)).all()
    assert len(grants) == 1
    assert grants[0].permission is SharePermission.VIEW_AND_SIGN
    assert service.role_for(document, other.id) is AccessRole.SHARED_SIGN
    assert [doc.id for doc in service.list_shared_with(other.id)] == [document.id]


def test_share_rejects_self_and_unknown_user(db_session: Session, storage: LocalStorage, base_document: dict) -> None:
    service = DocumentService(db_session, storage)
    owner = base_document["owner"]

    with pytest.raises(Conflict):
        service.share_document(base_document["document"], owner, owner.email, SharePermission.VIEW)
    with pytest.raises(NotFound):
        service.share_document(base_document["document"], owner, "nobody@example.com", SharePermission.VIEW)


def test_revoke_share(db_session: Session, storage: LocalStorage, base_document: dict) -> None:
    service = DocumentService(db_session, storage)
    document = base_document["document"]
    other = base_document["other"]
    service.share_document(document, base_document["owner"], other.email, SharePermission.VIEW)

    service.revoke_share(document, other.id)

    assert service.role_for(document, other.id) is AccessRole.DENIED
    with pytest.raises(NotFound):
        service.revoke_share(document, other.id)


def test_status_transitions(db_session: Session, storage: LocalStorage, base_document: dict) -> None:
    service = DocumentService(db_session, storage)
    document = base_document["document"]

    with pytest.raises(InvalidStatus):
        service.update_document(document, DocumentUpdate(status=DocumentStatus.SIGNED))
    assert service.update_document(document, DocumentUpdate(status=DocumentStatus.PENDING)).status is DocumentStatus.PENDING

    SigningService(db_session, storage).apply_signature(document.id, base_document["owner"].id, placement_payload())
    db_session.refresh(document)

    assert service.update_document(document, DocumentUpdate(status=DocumentStatus.REVIEWED)).status is DocumentStatus.REVIEWED
    assert service.update_document(document, DocumentUpdate(status=DocumentStatus.ARCHIVED)).status is DocumentStatus.ARCHIVED
    with pytest.raises(InvalidStatus):
        service.update_document(document, DocumentUpdate(status=DocumentStatus.PENDING))


def test_delete_removes_record_entries_grants_and_current_file(
    db_session: Session, storage: LocalStorage, base_document: dict
) -> None:
    service = DocumentService(db_session, storage)
    document = base_document["document"]
    document_id = document.id
    service.share_document(document, base_document["owner"], base_document["other"].email, SharePermission.VIEW)
    SigningService(db_session, storage).apply_signature(document_id, base_document["owner"].id, placement_payload())
    db_session.refresh(document)
    current_path = document.file_path

    service.delete_document(document)

    assert db_session.get(Document, document_id) is None
    assert db_session.exec(select(DocumentShare).where(DocumentShare.document_id == document_id)).all() == []
    assert db_session.exec(select(DocumentSignature).where(DocumentSignature.document_id == document_id)).all() == []
    assert storage.resolve(current_path) is None


def test_delete_tolerates_missing_file(db_session: Session, storage: LocalStorage, base_document: dict) -> None:
    service = DocumentService(db_session, storage)
    document = base_document["document"]
    document_id = document.id
    storage.delete(document.file_path)

    service.delete_document(document)

    assert db_session.get(Document, document_id) is None
    with pytest.raises(NotFound):
        service.get_document(document_id)


def test_timestamps_are_timezone_aware(db_session: Session, storage: LocalStorage, base_document: dict) -> None:
    fresh = Document(owner_id=uuid4(), file_path="x", file_name="x", original_name="x.pdf")
    assert fresh.created_at.utcoffset() == timedelta(0)

    document = base_document["document"]
    assert document.touch().utcoffset() == timedelta(0)

    grant, _ = DocumentService(db_session, storage).share_document(
        document, base_document["owner"], base_document["other"].email, SharePermission.VIEW
    )
    assert grant.created_at is not None
