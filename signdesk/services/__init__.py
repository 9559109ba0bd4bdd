from signdesk.services.auth import AuthService
from signdesk.services.document import DocumentService
from signdesk.services.signing import SigningService

__all__ = [
    "AuthService",
    "DocumentService",
    "SigningService",
]
