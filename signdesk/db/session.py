import os
from typing import Any, Generator

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

import signdesk.db.base  # noqa: F401
from signdesk.core.config import settings
from signdesk.core.logging_setup import logger

connect_args: dict[str, Any] = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False
elif settings.database_url.startswith("postgresql"):
    client_encoding = os.getenv("POSTGRES_CLIENT_ENCODING", "UTF8")
    connect_args["options"] = f"-c client_encoding={client_encoding}"

engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    connect_args=connect_args,
)


def init_db() -> None:
    SQLModel.metadata.create_all(bind=engine)
    _ensure_schema_compatibility()


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def _ensure_schema_compatibility() -> None:
    """
    Keep databases created before the revision counter existed usable.
    """
    try:
        with engine.begin() as conn:
            inspector = inspect(conn)
            table_names = set(inspector.get_table_names())
            if "documents" in table_names:
                document_columns = {column["name"] for column in inspector.get_columns("documents")}
                if "revision" not in document_columns:
                    logger.warning("Column 'revision' missing on 'documents'. Applying automatic fix.")
                    statement = "ALTER TABLE documents ADD COLUMN revision INTEGER NOT NULL DEFAULT 0"
                    if settings.database_url.startswith("postgresql"):
                        statement = "ALTER TABLE documents ADD COLUMN IF NOT EXISTS revision INTEGER NOT NULL DEFAULT 0"
                    conn.exec_driver_sql(statement)
                    logger.info("Column 'revision' added to 'documents'.")
    except SQLAlchemyError as exc:  # pragma: no cover - best effort safeguard
        logger.error("Failed to adjust database schema: %s", exc)
