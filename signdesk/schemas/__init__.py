from signdesk.schemas import auth, common, document, user

__all__ = [
    "auth",
    "common",
    "document",
    "user",
]
