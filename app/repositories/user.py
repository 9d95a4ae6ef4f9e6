"""User account store backed by SQLAlchemy."""

from typing import Protocol

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.exceptions import AccountStoreError, DuplicateEmailError, RecordNotFoundError, StaleRecordError
from app.models.user import User


class AccountStore(Protocol):
    """Persistence operations the account service relies on."""

    def create(self, user: User) -> User:
        """Insert a new user. Raise DuplicateEmailError if the email is taken."""
        ...

    def update(self, user: User) -> User:
        """Write back a user read from this store.

        Raise RecordNotFoundError if no row has its id, StaleRecordError if the row changed since it was read.
        """
        ...

    def find_by_email(self, email: str) -> User | None: ...

    def find_by_id(self, user_id: str) -> User | None: ...

    def find_by_activation_token(self, token: str) -> User:
        """Raise RecordNotFoundError if no user holds the token."""
        ...

    def find_by_reset_token(self, token: str) -> User:
        """Raise RecordNotFoundError if no user holds the token."""
        ...


class UserRepository:
    """SQLAlchemy implementation of AccountStore.

    Writes are optimistic: ``User.version_id`` makes every UPDATE conditional on
    the version that was read, so two requests racing on the same row cannot
    both commit.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, user: User) -> User:
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEmailError(f"Email already registered: {user.email}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise AccountStoreError("Failed to create user") from e
        self.db.refresh(user)
        return user

    def update(self, user: User) -> User:
        state = inspect(user)
        if state.transient or state.pending:
            raise RecordNotFoundError(f"User {user.id} was never stored")
        user_id = user.id
        self.db.add(user)
        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            if self.find_by_id(user_id) is None:
                raise RecordNotFoundError(f"User {user_id} no longer exists") from e
            raise StaleRecordError(f"User {user_id} was modified concurrently") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise AccountStoreError(f"Failed to update user {user_id}") from e
        self.db.refresh(user)
        return user

    def find_by_email(self, email: str) -> User | None:
        return self._first(User.email == email)

    def find_by_id(self, user_id: str) -> User | None:
        return self._first(User.id == user_id)

    def find_by_activation_token(self, token: str) -> User:
        user = self._first(User.activation_token == token) if token else None
        if user is None:
            raise RecordNotFoundError("Invalid activation token")
        return user

    def find_by_reset_token(self, token: str) -> User:
        user = self._first(User.reset_token == token) if token else None
        if user is None:
            raise RecordNotFoundError("Invalid reset token")
        return user

    def _first(self, criterion) -> User | None:
        try:
            return self.db.query(User).filter(criterion).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise AccountStoreError("User lookup failed") from e
