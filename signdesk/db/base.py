# noqa: F401 to ensure models are imported for metadata
from signdesk.models.document import Document, DocumentShare, DocumentSignature
from signdesk.models.user import User

__all__ = [
    "Document",
    "DocumentShare",
    "DocumentSignature",
    "User",
]
