from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from signdesk.api.deps import get_db
from signdesk.api.errors import to_http
from signdesk.core.errors import SignDeskError
from signdesk.core.logging_setup import logger
from signdesk.schemas.auth import LoginRequest, RefreshRequest, RegisterRequest, Token
from signdesk.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, session: Session = Depends(get_db)) -> Token:
    try:
        token = AuthService(session).register(payload)
    except SignDeskError as exc:
        raise to_http(exc) from exc
    logger.info("User registered: %s", payload.email)
    return token


@router.post("/login", response_model=Token)
def login(payload: LoginRequest, session: Session = Depends(get_db)) -> Token:
    try:
        return AuthService(session).authenticate(payload)
    except ValueError as exc:
        logger.warning("Failed login for %s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


@router.post("/refresh", response_model=Token)
def refresh(payload: RefreshRequest, session: Session = Depends(get_db)) -> Token:
    try:
        return AuthService(session).refresh(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
