from __future__ import annotations

import base64
import io
import os
import uuid

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from PIL import Image
from reportlab.pdfgen import canvas
from sqlalchemy import text
from sqlmodel import Session, SQLModel, create_engine

from signdesk.api.deps import get_db
from signdesk.core.config import settings
from signdesk.db import session as db_session_module
from signdesk.db.session import get_session
from signdesk.main import app
from signdesk.models.document import Document, DocumentStatus
from signdesk.models.user import User
from signdesk.services.storage import STORAGE_ENV, LocalStorage, normalize_storage_path


@pytest.fixture()
def db_engine(tmp_path):
    test_database_url = os.getenv("TEST_DATABASE_URL")
    if not test_database_url:
        db_path = tmp_path / f"test_{uuid.uuid4().hex}.db"
        test_database_url = f"sqlite:///{db_path}"

    is_postgres = test_database_url.startswith("postgresql")

    admin_engine = None
    schema_name = None

    if is_postgres:
        schema_name = f"test_{uuid.uuid4().hex}"
        admin_engine = create_engine(test_database_url, future=True)
        with admin_engine.connect() as conn:
            conn.execution_options(isolation_level="AUTOCOMMIT").execute(
                text(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"')
            )
        client_encoding = os.getenv("POSTGRES_CLIENT_ENCODING", "UTF8")
        connect_args = {"options": f"-csearch_path={schema_name},public -cclient_encoding={client_encoding}"}
        engine = create_engine(test_database_url, connect_args=connect_args, future=True)
    else:
        engine = create_engine(test_database_url, connect_args={"check_same_thread": False})

    SQLModel.metadata.create_all(bind=engine)

    original_engine = db_session_module.engine
    original_get_session = db_session_module.get_session

    db_session_module.engine = engine

    def _get_session():
        with Session(engine) as session:
            yield session

    db_session_module.get_session = _get_session

    def override_dependency():
        yield from _get_session()

    app.dependency_overrides[get_session] = override_dependency
    app.dependency_overrides[get_db] = override_dependency

    yield engine

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_session, None)
    db_session_module.get_session = original_get_session
    db_session_module.engine = original_engine
    engine.dispose()
    if is_postgres and admin_engine and schema_name:
        with admin_engine.connect() as conn:
            conn.execution_options(isolation_level="AUTOCOMMIT").execute(
                text(f'DROP SCHEMA IF EXISTS "{schema_name}" CASCADE')
            )
        admin_engine.dispose()


@pytest.fixture()
def storage_env(monkeypatch, tmp_path) -> None:
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir(exist_ok=True)
    monkeypatch.setenv(STORAGE_ENV, str(storage_dir))
    yield


@pytest.fixture()
def storage(storage_env, tmp_path) -> LocalStorage:
    return LocalStorage(base_dir=tmp_path / "storage")


@pytest.fixture()
def client(db_engine, storage_env) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(db_engine) -> Session:
    with Session(db_engine) as session:
        yield session


# -------------------------------------------------------------------------
# Builders
# -------------------------------------------------------------------------

def make_pdf(pages: int = 1, size: tuple[float, float] = (612, 792)) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=size)
    for index in range(pages):
        pdf.drawString(72, 72, f"Page {index + 1}")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def image_bytes(fmt: str = "PNG", size: tuple[int, int] = (200, 100)) -> bytes:
    mode = "RGBA" if fmt == "PNG" else "RGB"
    image = Image.new(mode, size, (20, 40, 160, 255) if mode == "RGBA" else (20, 40, 160))
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def data_url(raw: bytes, subtype: str = "png") -> str:
    return f"data:image/{subtype};base64,{base64.b64encode(raw).decode('ascii')}"


def png_data_url(size: tuple[int, int] = (200, 100)) -> str:
    return data_url(image_bytes("PNG", size), "png")


def placement_payload(**overrides) -> dict:
    payload = {
        "signatureData": png_data_url(),
        "signaturePosition": {"x": 50, "y": 100},
        "pdfPageDimensions": {"width": 300, "height": 400},
        "pageNumber": 1,
        "signatureType": "draw",
        "signatureFileExtension": "png",
    }
    payload.update(overrides)
    return payload


def create_user(session: Session, name: str = "User Test") -> User:
    user = User(
        email=f"user_{uuid.uuid4().hex[:8]}@example.com",
        full_name=name,
        password_hash="hash",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def create_document(
    session: Session,
    storage: LocalStorage,
    owner: User,
    *,
    pages: int = 1,
    original_name: str = "contract.pdf",
    status: DocumentStatus = DocumentStatus.PENDING,
    data: bytes | None = None,
) -> Document:
    payload = data if data is not None else make_pdf(pages)
    file_name = f"{uuid.uuid4().hex}-contract.pdf"
    stored = storage.save_bytes(root=settings.uploads_dir, name=file_name, data=payload)
    document = Document(
        owner_id=owner.id,
        file_path=normalize_storage_path(stored),
        file_name=file_name,
        original_name=original_name,
        size_bytes=len(payload),
        status=status,
    )
    session.add(document)
    session.commit()
    session.refresh(document)
    return document


# -------------------------------------------------------------------------
# HTTP helpers
# -------------------------------------------------------------------------

def register_and_login(client: TestClient, email: str, password: str) -> tuple[dict[str, str], str]:
    unique_email = f"{uuid.uuid4().hex[:8]}_{email}"
    payload = {
        "full_name": "Usuario Teste",
        "email": unique_email,
        "password": password,
    }
    register_response = client.post(f"{settings.api_v1_str}/auth/register", json=payload)
    assert register_response.status_code == status.HTTP_201_CREATED, register_response.json()

    login_response = client.post(
        f"{settings.api_v1_str}/auth/login",
        json={"username": unique_email, "password": password},
    )
    assert login_response.status_code == status.HTTP_200_OK, login_response.json()
    token = login_response.json()
    return token, unique_email


def auth_headers(token: dict[str, str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {token['access_token']}"}
