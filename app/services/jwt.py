"""JWT Token Service."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Protocol

from jose import ExpiredSignatureError, JWTError, jwt

from app.exceptions import InvalidSignatureError, TokenExpiredError

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


class TokenService(Protocol):
    def issue(self, user_id: str) -> str: ...

    def verify(self, token: str) -> str: ...


class JWTService:
    """Issues and validates HMAC-signed bearer tokens carrying a user id."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_hours: int = 24,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"Unsupported JWT algorithm '{algorithm}', expected one of {HMAC_ALGORITHMS}")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire = timedelta(hours=expire_hours)
        self.clock = clock

    def issue(self, user_id: str) -> str:
        """Create a token for the given user, valid for the configured duration."""
        now = self.clock()
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.expire,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Return the user id embedded in a valid token.

        Only the configured algorithm is accepted, so a token signed with any
        other algorithm (including ``none``) fails like a bad signature.

        Raises:
            TokenExpiredError: signature is good but ``exp`` has passed
            InvalidSignatureError: anything else
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise InvalidSignatureError(str(e)) from e

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidSignatureError("Token has no subject")
        return user_id
