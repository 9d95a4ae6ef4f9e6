"""Password hashing."""

from typing import Protocol

import bcrypt

# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password_hash: str, password: str) -> bool: ...


class BcryptHasher:
    """Salted bcrypt hashing. The hash string embeds its own salt and cost."""

    def __init__(self, rounds: int = 14) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("utf-8")

    def verify(self, password_hash: str, password: str) -> bool:
        """Constant-time check. A mismatch or an unreadable hash is just False."""
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError:
            return False


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]
