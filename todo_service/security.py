"""Security helpers: password hashing and JWT issuance/verification.

:class:`PasswordHasher` is a thin wrapper around
:class:`passlib.context.CryptContext` using Argon2. :class:`TokenService`
signs identity claims with :mod:`jwt` (PyJWT) using a fixed symmetric
algorithm and a fixed 12 hour lifetime. Both are constructed once at
startup with values from :class:`~todo_service.config.Settings`.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from todo_service.errors import InvalidToken, MalformedHash

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(hours=12)


class PasswordHasher:
    """Salted one-way password hashing."""

    def __init__(self, context: Optional[CryptContext] = None) -> None:
        self._context = context or CryptContext(schemes=["argon2"], deprecated="auto")

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return whether ``plaintext`` matches ``hashed``.

        A mismatch is simply ``False``. A stored value that is not a hash
        this context understands raises :class:`MalformedHash`.
        """
        try:
            return self._context.verify(plaintext, hashed)
        except (ValueError, TypeError) as exc:
            raise MalformedHash(str(exc)) from exc

    def dummy_verify(self) -> None:
        """Spend the time of a real verification without a stored hash."""
        self._context.dummy_verify()


class IdentityClaims(BaseModel):
    """Identity attributes carried inside an access token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="sub", min_length=1)
    username: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    is_admin: bool = Field(default=False, alias="isAdmin")

    @classmethod
    def from_user(cls, user: Any) -> "IdentityClaims":
        return cls(
            user_id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            is_admin=user.is_admin,
        )


class TokenService:
    """Issue and verify signed, time-limited identity tokens."""

    def __init__(self, secret_key: str) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key

    def issue(self, claims: IdentityClaims, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = claims.model_dump(by_alias=True)
        payload.update({"iat": issued_at, "exp": issued_at + TOKEN_LIFETIME})
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> IdentityClaims:
        """Decode ``token`` and return its claims.

        Bad signature, expiry, garbage input and incomplete payloads all
        raise the same :class:`InvalidToken`.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
            return IdentityClaims.model_validate(payload)
        except (jwt.InvalidTokenError, ValidationError) as exc:
            raise InvalidToken(str(exc)) from exc
