"""Password hashing helpers."""

from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash

from errors import InvalidInput


class PasswordHasher:
    """One-way hashing with a configurable werkzeug method string."""

    def __init__(self, method: str = "scrypt"):
        self.method = method

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password for storage."""

        if not isinstance(plaintext, str) or not plaintext:
            raise InvalidInput("Password must be a non-empty string.")
        return generate_password_hash(plaintext, method=self.method)

    def verify(self, plaintext: str, hashed: str | None) -> bool:
        """Return whether ``plaintext`` matches ``hashed``."""

        if not isinstance(plaintext, str) or not hashed:
            return False
        try:
            return check_password_hash(hashed, plaintext)
        except ValueError:
            return False
