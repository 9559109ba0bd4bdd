from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping
from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError
from sqlmodel import Session

from signdesk.core.errors import CorruptSource
from signdesk.models.document import DocumentStatus
from signdesk.services.access import DocumentOperation
from signdesk.services.artifacts import TextArtifact, parse_placement_request, resolve_artifact
from signdesk.services.compositor import compose_signature, get_page, load_pdf, page_size, serialize
from signdesk.services.coordinates import map_placement
from signdesk.services.document import DocumentService
from signdesk.services.lifecycle import ensure_signable, record_signature
from signdesk.services.storage import StorageBackend, get_storage
from signdesk.services.versioning import DocumentVersioner

logger = logging.getLogger("signdesk.sign")


class DocumentLockRegistry:
    """In-process exclusive lease per document id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[UUID, list[Any]] = {}

    @contextmanager
    def hold(self, document_id: UUID) -> Iterator[None]:
        with self._guard:
            slot = self._locks.setdefault(document_id, [threading.Lock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    self._locks.pop(document_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


document_locks = DocumentLockRegistry()


@dataclass(frozen=True)
class SignResult:
    document_id: UUID
    status: DocumentStatus
    file_location: str
    file_name: str


class SigningService:
    def __init__(
        self,
        session: Session,
        storage: StorageBackend | None = None,
        locks: DocumentLockRegistry | None = None,
    ) -> None:
        self.session = session
        self.storage = storage or get_storage()
        self.documents = DocumentService(session, self.storage)
        self.versioner = DocumentVersioner(self.storage)
        self.locks = locks or document_locks

    def _load_source(self, file_path: str) -> bytes:
        try:
            return self.storage.load_bytes(file_path)
        except (OSError, ValueError, BotoCoreError, ClientError) as exc:
            raise CorruptSource(f"Stored PDF could not be read: {exc}") from exc

    def apply_signature(
        self,
        document_id: str | UUID,
        actor_id: UUID,
        payload: Mapping[str, Any],
    ) -> SignResult:
        """
        Embed a signature into the document's current PDF and publish the result
        as a new version.

        Validation (access, payload, artifact, page range) completes before any
        write. Metadata is only updated once the new file has been stored.
        """
        document, role = self.documents.authorize(document_id, actor_id, DocumentOperation.SIGN)
        request = parse_placement_request(payload)
        artifact = resolve_artifact(request)
        logger.info(
            "Sign request on document %s by %s (role=%s type=%s page=%s)",
            document.id,
            actor_id,
            role.value,
            request.signature_type.value,
            request.page_number,
        )

        with self.locks.hold(document.id):
            self.session.refresh(document)
            ensure_signable(document)
            expected_revision = document.revision

            pdf = load_pdf(self._load_source(document.file_path))
            page = get_page(pdf, request.page_number)
            rect = map_placement(
                request.position,
                request.page_dimensions,
                page_size(page),
                artifact.size,
                size_in_points=isinstance(artifact, TextArtifact),
            )
            logger.info(
                "Placing signature on document %s page %s at x=%.2f y=%.2f w=%.2f h=%.2f",
                document.id,
                request.page_number,
                rect.x,
                rect.y,
                rect.width,
                rect.height,
            )
            compose_signature(pdf, request.page_number, artifact, rect)

            version = self.versioner.persist(document, serialize(pdf))
            document = record_signature(
                self.session,
                document,
                version,
                actor_id,
                request,
                expected_revision=expected_revision,
            )

        logger.info("Document %s signed, new version %s", document.id, version.file_name)
        return SignResult(
            document_id=document.id,
            status=document.status,
            file_location=document.file_path,
            file_name=document.file_name,
        )
