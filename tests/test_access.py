from uuid import uuid4

import pytest

from signdesk.core.errors import Forbidden
from signdesk.models.document import Document, DocumentShare, SharePermission
from signdesk.services.access import (
    AccessRole,
    DocumentOperation,
    ensure_allowed,
    is_allowed,
    resolve_role,
)


def _document(owner_id):
    return Document(owner_id=owner_id, file_path="uploads/a.pdf", file_name="a.pdf", original_name="a.pdf")


def test_owner_can_do_everything() -> None:
    owner_id = uuid4()
    document = _document(owner_id)

    role = resolve_role(document, owner_id, [])

    assert role is AccessRole.OWNER
    assert all(is_allowed(role, operation) for operation in DocumentOperation)


def test_shared_roles_follow_permission() -> None:
    document = _document(uuid4())
    viewer, signer = uuid4(), uuid4()
    grants = [
        DocumentShare(document_id=document.id, grantee_id=viewer, permission=SharePermission.VIEW),
        DocumentShare(document_id=document.id, grantee_id=signer, permission=SharePermission.VIEW_AND_SIGN),
    ]

    assert resolve_role(document, viewer, grants) is AccessRole.SHARED_VIEW
    assert resolve_role(document, signer, grants) is AccessRole.SHARED_SIGN
    assert is_allowed(AccessRole.SHARED_VIEW, DocumentOperation.VIEW)
    assert not is_allowed(AccessRole.SHARED_VIEW, DocumentOperation.SIGN)
    assert is_allowed(AccessRole.SHARED_SIGN, DocumentOperation.SIGN)
    for operation in (DocumentOperation.UPDATE, DocumentOperation.DELETE, DocumentOperation.SHARE):
        assert not is_allowed(AccessRole.SHARED_SIGN, operation)


def test_grants_for_other_documents_are_ignored() -> None:
    document = _document(uuid4())
    actor = uuid4()
    grants = [DocumentShare(document_id=uuid4(), grantee_id=actor, permission=SharePermission.VIEW_AND_SIGN)]

    assert resolve_role(document, actor, grants) is AccessRole.DENIED


def test_resolution_is_stable() -> None:
    document = _document(uuid4())
    actor = uuid4()
    grants = [DocumentShare(document_id=document.id, grantee_id=actor, permission=SharePermission.VIEW)]

    assert resolve_role(document, actor, grants) is resolve_role(document, actor, grants)


def test_ensure_allowed_raises_forbidden() -> None:
    assert ensure_allowed(AccessRole.OWNER, DocumentOperation.DELETE) is AccessRole.OWNER
    with pytest.raises(Forbidden):
        ensure_allowed(AccessRole.DENIED, DocumentOperation.VIEW)
