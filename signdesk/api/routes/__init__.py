from . import auth, documents, health, users

__all__ = [
    "auth",
    "documents",
    "health",
    "users",
]
