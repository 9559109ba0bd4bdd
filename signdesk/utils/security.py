from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping
from uuid import UUID, uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from signdesk.core.config import settings


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _lifetime(token_type: TokenType) -> timedelta:
    if token_type is TokenType.ACCESS:
        return timedelta(minutes=settings.access_token_expire_minutes)
    return timedelta(minutes=settings.refresh_token_expire_minutes)


def create_token(user_id: UUID | str, token_type: TokenType) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + _lifetime(token_type),
        "token_type": token_type.value,
        "jti": uuid4().hex,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(user_id: UUID | str) -> str:
    return create_token(user_id, TokenType.ACCESS)


def create_refresh_token(user_id: UUID | str) -> str:
    return create_token(user_id, TokenType.REFRESH)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def decode_token(token: str, expected_type: TokenType | None = None) -> dict[str, Any]:
    """Verify signature and expiry; optionally require a token type."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    token_type = payload.get("token_type")
    if token_type is None:
        raise ValueError("Invalid token payload")
    if expected_type is not None and token_type != expected_type.value:
        raise ValueError("Invalid token type")
    return payload


def token_subject(payload: Mapping[str, Any]) -> UUID:
    try:
        return UUID(str(payload["sub"]))
    except (KeyError, ValueError, TypeError) as exc:
        raise ValueError("Invalid token subject") from exc
