from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.client import Config as BotoConfig

from signdesk.core.config import settings

STORAGE_ENV = "SIGNDESK_STORAGE"


def resolve_storage_root() -> Path:
    """
    Return the root directory for locally stored files.
    The SIGNDESK_STORAGE environment variable wins over the configured value.
    """
    raw = os.getenv(STORAGE_ENV) or settings.signdesk_storage or "storage"
    try:
        return Path(raw).expanduser().resolve()
    except OSError:
        return Path(raw)


def normalize_storage_path(value: str | Path) -> str:
    """
    Keep stored paths relative to the storage root when they live under it.
    """
    if str(value).startswith("s3://"):
        return str(value)
    path = Path(value)
    base = resolve_storage_root()
    try:
        return str(path.resolve().relative_to(base))
    except (OSError, ValueError):
        return str(path)


class StorageBackend(Protocol):
    def save_bytes(self, *, root: str, name: str, data: bytes) -> str:  # returns storage path/URL
        ...

    def presigned_url(self, *, path: str, expires_seconds: int = 3600) -> str | None:
        ...

    def load_bytes(self, path: str) -> bytes:
        ...

    def delete(self, path: str) -> bool:
        ...


@dataclass
class LocalStorage:
    base_dir: Path

    def __post_init__(self) -> None:
        try:
            self.base_dir = Path(self.base_dir).resolve()
        except OSError:
            self.base_dir = Path(self.base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def save_bytes(self, *, root: str, name: str, data: bytes) -> str:
        target_dir = self.base_dir / root
        target_dir.mkdir(parents=True, exist_ok=True)
        file_path = target_dir / name
        # "x" mode refuses to clobber an existing version
        with open(file_path, "xb") as handle:
            handle.write(data)
        return str(file_path)

    def presigned_url(self, *, path: str, expires_seconds: int = 3600) -> str | None:  # noqa: ARG002
        return None

    def resolve(self, path: str) -> Path | None:
        file_path = Path(path)
        candidate = file_path if file_path.is_absolute() else self.base_dir / path
        try:
            resolved = candidate.resolve()
        except OSError:
            resolved = candidate
        return resolved if resolved.exists() else None

    def load_bytes(self, path: str) -> bytes:
        resolved = self.resolve(path)
        if resolved is None:
            raise FileNotFoundError(f"File {path!r} was not found in the configured storage.")
        return resolved.read_bytes()

    def delete(self, path: str) -> bool:
        resolved = self.resolve(path)
        if resolved is None:
            return False
        resolved.unlink()
        return True


@dataclass
class S3Storage:
    bucket: str
    client: Any

    @staticmethod
    def _split(path: str) -> tuple[str, str]:
        if not path.startswith("s3://"):
            raise ValueError("Expected s3:// path for S3 storage")
        _, rest = path.split("s3://", 1)
        bucket, key = rest.split("/", 1)
        return bucket, key

    def save_bytes(self, *, root: str, name: str, data: bytes) -> str:
        key = f"{root.strip('/')}/{name}"
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType="application/pdf")
        return f"s3://{self.bucket}/{key}"

    def presigned_url(self, *, path: str, expires_seconds: int = 3600) -> str | None:
        if not path.startswith("s3://"):
            return None
        bucket, key = self._split(path)
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_seconds,
        )

    def load_bytes(self, path: str) -> bytes:
        bucket, key = self._split(path)
        response = self.client.get_object(Bucket=bucket, Key=key)
        body = response.get("Body")
        return body.read() if body else b""

    def delete(self, path: str) -> bool:
        bucket, key = self._split(path)
        self.client.delete_object(Bucket=bucket, Key=key)
        return True


def get_storage() -> StorageBackend:
    # During tests, prefer local storage unless S3 is explicitly allowed
    if os.getenv("PYTEST_CURRENT_TEST") and os.getenv("SIGNDESK_ALLOW_S3_IN_TESTS") != "1":
        return LocalStorage(base_dir=resolve_storage_root())

    if os.getenv(STORAGE_ENV):
        return LocalStorage(base_dir=resolve_storage_root())

    if settings.s3_endpoint_url and settings.s3_access_key and settings.s3_secret_key and settings.s3_bucket_documents:
        client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            config=BotoConfig(signature_version="s3v4"),
            region_name=os.getenv("AWS_REGION", "us-east-1"),
        )
        return S3Storage(bucket=settings.s3_bucket_documents, client=client)

    return LocalStorage(base_dir=resolve_storage_root())
