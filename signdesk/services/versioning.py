from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from signdesk.core.config import settings
from signdesk.core.errors import PersistenceFailure
from signdesk.models.document import Document
from signdesk.services.storage import StorageBackend, normalize_storage_path

logger = logging.getLogger("signdesk.versioning")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_token_lock = threading.Lock()
_last_token = 0


@dataclass(frozen=True)
class StoredVersion:
    file_path: str
    file_name: str
    size_bytes: int


def next_version_token() -> int:
    """Millisecond timestamp, strictly increasing within the process."""
    global _last_token
    with _token_lock:
        token = max(time.time_ns() // 1_000_000, _last_token + 1)
        _last_token = token
        return token


def safe_stem(filename: str | None) -> str:
    stem = Path(filename or "").stem
    cleaned = _UNSAFE_CHARS.sub("_", stem).strip("._")
    return cleaned or "document"


def build_version_name(original_name: str, token: int) -> str:
    return f"{safe_stem(original_name)}_signed_{token}.pdf"


class DocumentVersioner:
    """Writes signed PDFs as new files; earlier versions are never touched."""

    def __init__(self, storage: StorageBackend, root: str | None = None) -> None:
        self.storage = storage
        self.root = root or settings.signed_dir

    def persist(self, document: Document, pdf_bytes: bytes) -> StoredVersion:
        # Built from original_name, never from the current versioned name.
        file_name = build_version_name(document.original_name, next_version_token())
        try:
            stored_path = self.storage.save_bytes(root=self.root, name=file_name, data=pdf_bytes)
        except (OSError, BotoCoreError, ClientError) as exc:
            logger.error("Failed to write signed version %s for document %s: %s", file_name, document.id, exc)
            raise PersistenceFailure(f"Failed to store the signed document: {exc}") from exc

        return StoredVersion(
            file_path=normalize_storage_path(stored_path),
            file_name=file_name,
            size_bytes=len(pdf_bytes),
        )
