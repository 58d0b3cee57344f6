"""Authentication flows and the bearer-token guard for protected routes.

:class:`AccountService` implements signup, signin and token refresh.
:func:`require_claims` is the FastAPI dependency every todo route goes
through; it rejects the request before any storage access when the
``Authorization`` header is missing, malformed or carries a bad token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from fastapi import Depends, Request

from todo_service.errors import AuthenticationFailure, AuthorizationFailure, UserNotFound
from todo_service.models import User
from todo_service.schemas import SignupRequest
from todo_service.security import IdentityClaims, PasswordHasher, TokenService
from todo_service.store import UserStore

logger = logging.getLogger(__name__)


def extract_bearer_token(header: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not header:
        raise AuthorizationFailure("missing authorization header")
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise AuthorizationFailure("malformed authorization header")
    return token


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_bearer_token(request: Request) -> str:
    return extract_bearer_token(request.headers.get("Authorization"))


async def require_claims(
    token: str = Depends(get_bearer_token),
    tokens: TokenService = Depends(get_token_service),
) -> IdentityClaims:
    """FastAPI dependency returning the verified claims of the caller."""
    return tokens.verify(token)


def ensure_same_user(claims: IdentityClaims, user_id: Optional[str]) -> str:
    """Return the caller's user id, rejecting a request aimed at someone else."""
    if user_id is not None and user_id != claims.user_id:
        raise AuthorizationFailure("user id does not match token subject")
    return claims.user_id


class AccountService:
    """Signup, signin and token refresh."""

    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens

    def _issue(self, user: User) -> str:
        return self._tokens.issue(IdentityClaims.from_user(user))

    async def signup(self, fields: SignupRequest) -> Tuple[User, str]:
        hashed = await asyncio.to_thread(self._hasher.hash, fields.password)
        user = await self._store.create(fields, hashed)
        return user, self._issue(user)

    async def signin(self, username: str, password: str) -> Tuple[User, str]:
        """Check credentials and issue a token.

        Unknown usernames and wrong passwords both end in the same
        :class:`AuthenticationFailure`, after roughly the same amount of
        hashing work.
        """
        try:
            user = await self._store.find_by_username(username)
        except UserNotFound:
            await asyncio.to_thread(self._hasher.dummy_verify)
            logger.info("Sign-in rejected for %s", username)
            raise AuthenticationFailure(username) from None

        matches = await asyncio.to_thread(self._hasher.verify, password, user.hashed_password)
        if not matches:
            logger.info("Sign-in rejected for %s", username)
            raise AuthenticationFailure(username)

        logger.info("User %s signed in", user.username)
        return user, self._issue(user)

    async def refresh(self, claims: IdentityClaims) -> Tuple[User, str]:
        """Issue a fresh token from the currently stored profile."""
        user = await self._store.find_by_id(claims.user_id)
        logger.info("Refreshed token for user %s", user.username)
        return user, self._issue(user)
