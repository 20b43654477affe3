"""Bearer tokens and password secrets."""

from __future__ import annotations

import datetime as dt
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Optional

import jwt

from ..errors import InvalidTokenError
from .entities import User

__all__ = ["Identity", "IdentityGate", "PasswordHasher", "parse_bearer"]

_ALGORITHM = "HS256"
_HASH_SCHEME = "pbkdf2_sha256"


@dataclass(slots=True, frozen=True)
class Identity:
    """Claims carried by a verified bearer token."""

    user_id: str
    email: str
    team_id: Optional[str] = None


@dataclass(slots=True)
class IdentityGate:
    """Issue and verify HS256 bearer tokens."""

    secret: str
    ttl: dt.timedelta = dt.timedelta(hours=24)

    def issue(self, user: User) -> str:
        now = dt.datetime.now(dt.timezone.utc)
        payload = {
            "userId": user.id,
            "email": user.email,
            "teamId": user.team_id,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=_ALGORITHM)

    def authenticate(self, token: Optional[str]) -> Identity:
        if not token:
            raise InvalidTokenError()
        try:
            claims = jwt.decode(token, self.secret, algorithms=[_ALGORITHM])
        except jwt.PyJWTError:
            raise InvalidTokenError("Invalid or expired access token") from None
        user_id = claims.get("userId")
        if not user_id:
            raise InvalidTokenError("Invalid or expired access token")
        return Identity(
            user_id=user_id,
            email=claims.get("email", ""),
            team_id=claims.get("teamId"),
        )


def parse_bearer(header: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""

    if not header:
        raise InvalidTokenError()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidTokenError()
    return token.strip()


@dataclass(slots=True)
class PasswordHasher:
    """Salted PBKDF2-SHA256 secrets: ``pbkdf2_sha256$<iterations>$<salt>$<digest>``."""

    iterations: int = 260_000
    salt_bytes: int = 16

    def hash(self, password: str) -> str:
        salt = secrets.token_hex(self.salt_bytes)
        digest = self._digest(password, salt, self.iterations)
        return f"{_HASH_SCHEME}${self.iterations}${salt}${digest}"

    def verify(self, password: str, secret: str) -> bool:
        try:
            scheme, iterations, salt, expected = secret.split("$", 3)
            rounds = int(iterations)
        except ValueError:
            return False
        if scheme != _HASH_SCHEME:
            return False
        return hmac.compare_digest(self._digest(password, salt, rounds), expected)

    @staticmethod
    def _digest(password: str, salt: str, iterations: int) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations
        ).hex()
