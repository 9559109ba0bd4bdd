from sqlmodel import Session, select

from signdesk.core.errors import Conflict
from signdesk.models.base import utcnow
from signdesk.models.user import User
from signdesk.schemas.auth import LoginRequest, RefreshRequest, RegisterRequest, Token
from signdesk.utils.security import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    token_subject,
    verify_password,
)


class AuthService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def register(self, payload: RegisterRequest) -> Token:
        email = payload.email.strip().lower()
        existing_user = self.session.exec(select(User).where(User.email == email)).first()
        if existing_user:
            raise Conflict("User already exists")

        user = User(
            email=email,
            full_name=payload.full_name,
            password_hash=get_password_hash(payload.password),
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        return self._build_tokens(user)

    def authenticate(self, payload: LoginRequest) -> Token:
        statement = select(User).where(User.email == payload.username.strip().lower())
        user = self.session.exec(statement).first()

        if not user or not user.is_active:
            raise ValueError("Invalid credentials")

        if not verify_password(payload.password, user.password_hash):
            raise ValueError("Invalid credentials")

        user.last_login_at = utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        return self._build_tokens(user)

    def refresh(self, payload: RefreshRequest) -> Token:
        token_data = decode_token(payload.refresh_token, TokenType.REFRESH)
        user = self.session.get(User, token_subject(token_data))
        if not user or not user.is_active:
            raise ValueError("Invalid token")

        return self._build_tokens(user)

    def _build_tokens(self, user: User) -> Token:
        return Token(
            access_token=create_access_token(str(user.id)),
            refresh_token=create_refresh_token(str(user.id)),
        )
