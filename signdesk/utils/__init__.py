from signdesk.utils.security import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    token_subject,
    verify_password,
)

__all__ = [
    "TokenType",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "get_password_hash",
    "token_subject",
    "verify_password",
]
