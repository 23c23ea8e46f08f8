import secrets
from typing import Optional

from passlib.context import CryptContext


class PasswordHasher:
    """Salted bcrypt hashing with constant-time verification."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: Optional[str]) -> bool:
        if not hashed:
            self._context.dummy_verify()
            return False
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            # malformed stored hash
            return False

    def dummy_verify(self) -> None:
        """Spend the same time as a real check when the user does not exist."""
        self._context.dummy_verify()


def new_session_token() -> str:
    return secrets.token_urlsafe(32)
