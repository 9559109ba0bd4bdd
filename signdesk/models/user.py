from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field

from signdesk.models.base import TimestampedModel, UUIDModel


class User(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "users"

    email: str = Field(index=True, unique=True)
    full_name: str

    password_hash: str
    is_active: bool = Field(default=True)
    last_login_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
