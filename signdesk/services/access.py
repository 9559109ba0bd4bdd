from __future__ import annotations

from enum import Enum
from typing import Iterable
from uuid import UUID

from signdesk.core.errors import Forbidden
from signdesk.models.document import Document, DocumentShare, SharePermission


class AccessRole(str, Enum):
    OWNER = "owner"
    SHARED_VIEW = "shared_view"
    SHARED_SIGN = "shared_sign"
    DENIED = "denied"


class DocumentOperation(str, Enum):
    VIEW = "view"
    SIGN = "sign"
    UPDATE = "update"
    DELETE = "delete"
    SHARE = "share"


_ALLOWED_ROLES: dict[DocumentOperation, set[AccessRole]] = {
    DocumentOperation.VIEW: {AccessRole.OWNER, AccessRole.SHARED_VIEW, AccessRole.SHARED_SIGN},
    DocumentOperation.SIGN: {AccessRole.OWNER, AccessRole.SHARED_SIGN},
    DocumentOperation.UPDATE: {AccessRole.OWNER},
    DocumentOperation.DELETE: {AccessRole.OWNER},
    DocumentOperation.SHARE: {AccessRole.OWNER},
}


def resolve_role(document: Document, actor_id: UUID, grants: Iterable[DocumentShare]) -> AccessRole:
    if document.owner_id == actor_id:
        return AccessRole.OWNER
    for grant in grants:
        if grant.document_id != document.id or grant.grantee_id != actor_id:
            continue
        if grant.permission == SharePermission.VIEW_AND_SIGN:
            return AccessRole.SHARED_SIGN
        return AccessRole.SHARED_VIEW
    return AccessRole.DENIED


def is_allowed(role: AccessRole, operation: DocumentOperation) -> bool:
    return role in _ALLOWED_ROLES[operation]


def ensure_allowed(role: AccessRole, operation: DocumentOperation) -> AccessRole:
    if not is_allowed(role, operation):
        raise Forbidden(f"Not authorized to {operation.value} this document.")
    return role
