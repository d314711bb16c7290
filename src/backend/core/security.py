"""Security utilities for authentication.

Covers session token issuance/verification, password and one-time code
hashing, and the deterministic vote key used for vote deduplication.
Collaborators are plain objects built from ``Settings`` so the secret key
never lives in module state.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from core.config import Settings

# Token issuer and audience for validation
TOKEN_ISSUER = "townsquare-api"
TOKEN_AUDIENCE = "townsquare-client"


class TokenIssuer:
    """Issues and validates signed session tokens bound to a user id."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int | None = None,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.SESSION_TOKEN_EXPIRE_MINUTES,
        )

    def create_session_token(self, user_id: str, extra: dict[str, Any] | None = None) -> str:
        """
        Create a session token for ``user_id``.

        Tokens carry no ``exp`` claim unless an expiry is configured; they stay
        valid until revoked through logout.
        """
        now = datetime.now(timezone.utc)
        to_encode: dict[str, Any] = dict(extra or {})
        to_encode.update(
            {
                "sub": user_id,
                "iat": now,
                "type": "access",
                "iss": TOKEN_ISSUER,
                "aud": TOKEN_AUDIENCE,
                "jti": secrets.token_urlsafe(16),  # Unique token ID for revocation
            }
        )
        if self._expire_minutes:
            to_encode["exp"] = now + timedelta(minutes=self._expire_minutes)
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> dict[str, Any] | None:
        """
        Decode and validate a session token.

        Returns:
            The decoded payload or None if invalid
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                issuer=TOKEN_ISSUER,
                audience=TOKEN_AUDIENCE,
            )
        except JWTError:
            return None
        if payload.get("type") != "access" or not payload.get("sub"):
            return None
        return payload


class PasswordHasher:
    """One-way bcrypt hashing for passwords and verification codes."""

    def __init__(self, rounds: int = 10):
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, secret: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False


def generate_vote_id(user_id: str, target_id: str) -> str:
    """
    Derive the vote document id for a (user, target) pair.

    The same pair always maps to the same id, so the document store itself
    rejects a second vote by the same user on the same target.
    """
    return hashlib.sha256(f"{user_id}:{target_id}".encode()).hexdigest()


def generate_otp_code(length: int = 4) -> str:
    """Generate a numeric one-time code without a leading zero."""
    lower = 10 ** (length - 1)
    return str(lower + secrets.randbelow(9 * lower))
