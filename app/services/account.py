"""Account lifecycle service.

Registration, activation, login and password recovery over an account store,
a password hasher, a token service and a notifier, all passed in at
construction. Every operation returns an ``AuthResult``; business failures are
never raised.

Store writes always happen before the matching notification. When the
notification fails the write is kept and the result carries
``NOTIFICATION_FAILED``: the token stays valid and the user can ask again.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from app.exceptions import (
    AccountStoreError,
    DuplicateEmailError,
    NotificationError,
    RecordNotFoundError,
    StaleRecordError,
)
from app.models.user import User
from app.repositories.user import AccountStore
from app.services.jwt import TokenService
from app.services.notifier import Notifier
from app.services.password import PasswordHasher

logger = logging.getLogger("kairo_anchor")

TOKEN_BYTES = 32


class AuthErrorCode(str, Enum):
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_OLD_PASSWORD = "invalid_old_password"
    ACCOUNT_NOT_ACTIVATED = "account_not_activated"
    NOTIFICATION_FAILED = "notification_failed"
    INTERNAL = "internal"


ERROR_MESSAGES = {
    AuthErrorCode.CONFLICT: "Email already registered",
    AuthErrorCode.NOT_FOUND: "User not found",
    AuthErrorCode.INVALID_TOKEN: "Invalid or already used token",
    AuthErrorCode.EXPIRED: "Reset token has expired. Please request a new one.",
    AuthErrorCode.INVALID_CREDENTIALS: "Invalid email or password",
    AuthErrorCode.INVALID_OLD_PASSWORD: "Invalid old password",
    AuthErrorCode.ACCOUNT_NOT_ACTIVATED: "Account not activated, please check your email",
    AuthErrorCode.NOTIFICATION_FAILED: "Could not send the email, please try again",
    AuthErrorCode.INTERNAL: "Something went wrong",
}


@dataclass
class UserSummary:
    """Public view of a user, safe to return to clients."""

    id: str
    email: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            email=user.email,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


@dataclass
class AuthResult:
    """Outcome of an account operation."""

    success: bool
    error: str | None = None
    error_code: AuthErrorCode | None = None
    user: UserSummary | None = None
    token: str | None = None


def failure(code: AuthErrorCode, message: str | None = None, user: UserSummary | None = None) -> AuthResult:
    return AuthResult(success=False, error=message or ERROR_MESSAGES[code], error_code=code, user=user)


def generate_token() -> str:
    """Random one-time token, hex encoded, from the OS CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


class AccountService:
    """Runs the Pending -> Active lifecycle and the password recovery flows."""

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        notifier: Notifier,
        reset_token_ttl: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = datetime.utcnow,
        dummy_hash: str | None = None,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.notifier = notifier
        self.reset_token_ttl = reset_token_ttl
        self.clock = clock
        self.dummy_hash = dummy_hash

    def register(self, email: str, password: str) -> AuthResult:
        """Create a pending account and email its activation token."""
        try:
            if self.store.find_by_email(email) is not None:
                return failure(AuthErrorCode.CONFLICT)

            activation_token = generate_token()
            user = User(
                email=email,
                password_hash=self.hasher.hash(password),
                is_active=False,
                activation_token=activation_token,
            )
            try:
                user = self.store.create(user)
            except DuplicateEmailError:
                return failure(AuthErrorCode.CONFLICT)
            summary = UserSummary.from_user(user)
        except AccountStoreError:
            return self._store_failure("register")

        logger.info("Registered user %s (pending activation)", summary.id)
        try:
            self.notifier.send_activation(summary.email, activation_token)
        except NotificationError:
            logger.warning("Activation email for user %s could not be sent", summary.id, exc_info=True)
            return failure(AuthErrorCode.NOTIFICATION_FAILED, user=summary)

        return AuthResult(success=True, user=summary)

    def activate(self, token: str) -> AuthResult:
        """Consume an activation token. A token can be used once only."""
        try:
            try:
                user = self.store.find_by_activation_token(token)
            except RecordNotFoundError:
                return failure(AuthErrorCode.INVALID_TOKEN, "Invalid activation token")

            user.is_active = True
            user.activation_token = None
            try:
                user = self.store.update(user)
            except (StaleRecordError, RecordNotFoundError):
                return failure(AuthErrorCode.INVALID_TOKEN, "Invalid activation token")
        except AccountStoreError:
            return self._store_failure("activate")

        logger.info("Activated user %s", user.id)
        return AuthResult(success=True, user=UserSummary.from_user(user))

    def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and issue a bearer token.

        Unknown email and wrong password give the same error. The activation
        check only runs once the password is known to be right.
        """
        try:
            user = self.store.find_by_email(email)
        except AccountStoreError:
            return self._store_failure("login")

        if user is None:
            # Unknown emails cost one bcrypt check, same as a wrong password.
            self.hasher.verify(self._get_dummy_hash(), password)
            logger.info("Failed login attempt")
            return failure(AuthErrorCode.INVALID_CREDENTIALS)

        if not self.hasher.verify(user.password_hash, password):
            logger.info("Failed login attempt")
            return failure(AuthErrorCode.INVALID_CREDENTIALS)

        if not user.is_active:
            return failure(AuthErrorCode.ACCOUNT_NOT_ACTIVATED)

        token = self.tokens.issue(user.id)
        logger.info("User %s logged in", user.id)
        return AuthResult(success=True, user=UserSummary.from_user(user), token=token)

    def forgot_password(self, email: str) -> AuthResult:
        """Store a fresh reset token on the account and email it.

        Unlike login this reports unknown emails as NOT_FOUND.
        """
        try:
            user = self.store.find_by_email(email)
            if user is None:
                return failure(AuthErrorCode.NOT_FOUND)

            reset_token = generate_token()
            user.reset_token = reset_token
            user.reset_token_expires_at = self.clock() + self.reset_token_ttl
            try:
                user = self.store.update(user)
            except RecordNotFoundError:
                return failure(AuthErrorCode.NOT_FOUND)
            except StaleRecordError:
                return failure(AuthErrorCode.CONFLICT, "Account was modified concurrently, please retry")
            summary = UserSummary.from_user(user)
        except AccountStoreError:
            return self._store_failure("forgot_password")

        logger.info("Password reset requested for user %s", summary.id)
        try:
            self.notifier.send_password_reset(summary.email, reset_token)
        except NotificationError:
            logger.warning("Password reset email for user %s could not be sent", summary.id, exc_info=True)
            return failure(AuthErrorCode.NOTIFICATION_FAILED, user=summary)

        return AuthResult(success=True, user=summary)

    def change_password(self, token: str, new_password: str) -> AuthResult:
        """Set a new password with a reset token instead of the old password."""
        try:
            try:
                user = self.store.find_by_reset_token(token)
            except RecordNotFoundError:
                return failure(AuthErrorCode.INVALID_TOKEN, "Invalid reset token")

            expires_at = user.reset_token_expires_at
            if expires_at is None or expires_at < self.clock():
                return failure(AuthErrorCode.EXPIRED)

            user.password_hash = self.hasher.hash(new_password)
            user.reset_token = None
            user.reset_token_expires_at = None
            try:
                user = self.store.update(user)
            except (StaleRecordError, RecordNotFoundError):
                # Another request consumed the token between our read and write.
                return failure(AuthErrorCode.INVALID_TOKEN, "Invalid reset token")
        except AccountStoreError:
            return self._store_failure("change_password")

        logger.info("Password changed via reset token for user %s", user.id)
        return AuthResult(success=True, user=UserSummary.from_user(user))

    def reset_password(self, user_id: str, old_password: str, new_password: str) -> AuthResult:
        """Replace the password of an authenticated user who knows the old one."""
        try:
            user = self.store.find_by_id(user_id)
            if user is None:
                return failure(AuthErrorCode.NOT_FOUND)

            if not self.hasher.verify(user.password_hash, old_password):
                return failure(AuthErrorCode.INVALID_OLD_PASSWORD)

            user.password_hash = self.hasher.hash(new_password)
            user.reset_token = None
            user.reset_token_expires_at = None
            try:
                user = self.store.update(user)
            except RecordNotFoundError:
                return failure(AuthErrorCode.NOT_FOUND)
            except StaleRecordError:
                return failure(AuthErrorCode.CONFLICT, "Account was modified concurrently, please retry")
        except AccountStoreError:
            return self._store_failure("reset_password")

        logger.info("Password reset for user %s", user.id)
        return AuthResult(success=True, user=UserSummary.from_user(user))

    def get_profile(self, user_id: str) -> AuthResult:
        try:
            user = self.store.find_by_id(user_id)
        except AccountStoreError:
            return self._store_failure("get_profile")
        if user is None:
            return failure(AuthErrorCode.NOT_FOUND)
        return AuthResult(success=True, user=UserSummary.from_user(user))

    def _get_dummy_hash(self) -> str:
        if self.dummy_hash is None:
            self.dummy_hash = self.hasher.hash(generate_token())
        return self.dummy_hash

    def _store_failure(self, operation: str) -> AuthResult:
        logger.exception("Account store failure during %s", operation)
        return failure(AuthErrorCode.INTERNAL)
