"""FastAPI dependency providers.

Collaborators are built from settings here and handed to ``AccountService``;
nothing below the router reads configuration or looks services up globally.
"""

import secrets
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.exceptions import TokenError
from app.repositories.user import UserRepository
from app.services.account import AccountService
from app.services.jwt import JWTService, TokenService
from app.services.notifier import LoggingNotifier, Notifier
from app.services.password import BcryptHasher, PasswordHasher


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: str


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return BcryptHasher(rounds=get_settings().BCRYPT_ROUNDS)


@lru_cache
def get_token_service() -> TokenService:
    settings = get_settings()
    return JWTService(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        expire_hours=settings.JWT_EXPIRE_HOURS,
    )


@lru_cache
def get_dummy_password_hash() -> str:
    """Hash of a random password, verified against when login meets an unknown email."""
    return get_password_hasher().hash(secrets.token_urlsafe(32))


@lru_cache
def get_notifier() -> Notifier:
    settings = get_settings()
    return LoggingNotifier(settings.APP_BASE_URL, reset_expire_minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)


def get_account_service(
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
    notifier: Notifier = Depends(get_notifier),
    dummy_hash: str = Depends(get_dummy_password_hash),
) -> AccountService:
    """Build a request-scoped account service around the request's DB session."""
    return AccountService(
        store=UserRepository(db),
        hasher=hasher,
        tokens=tokens,
        notifier=notifier,
        reset_token_ttl=timedelta(minutes=get_settings().RESET_TOKEN_EXPIRE_MINUTES),
        dummy_hash=dummy_hash,
    )


def get_current_user(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> CurrentUser:
    """Resolve the acting user from an ``Authorization: Bearer`` header. Raises 401 if invalid."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Authorization header required")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    try:
        user_id = tokens.verify(parts[1])
    except TokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired token") from None

    return CurrentUser(user_id=user_id)
