"""Persistence operations for user documents and their embedded todo list."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from todo_service.errors import DuplicateUsername, StorageFailure, UserNotFound, WriteConflict
from todo_service.models import User
from todo_service.schemas import SignupRequest

logger = logging.getLogger(__name__)


class UserStore:
    """Read and write :class:`User` rows.

    Every method opens its own session, so returned users are detached
    snapshots. ``replace_todo_list`` is the only way the todo list is
    written and it never touches the profile columns.
    """

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Database operation failed: %s", exc, exc_info=True)
            raise StorageFailure("database operation failed") from exc

    async def create(self, fields: SignupRequest, hashed_password: str) -> User:
        """Insert a new user with an already hashed password."""
        async with self._session() as session:
            existing = await session.execute(
                select(User.id).where(User.username == fields.username)
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateUsername(fields.username)

            user = User(
                username=fields.username,
                hashed_password=hashed_password,
                first_name=fields.first_name,
                last_name=fields.last_name,
                email=str(fields.email),
                is_admin=False,
                todo_list=[],
                next_todo_id=1,
                version=0,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as exc:
                # lost a race with a concurrent signup for the same name
                await session.rollback()
                raise DuplicateUsername(fields.username) from exc
            await session.refresh(user)

        logger.info("Created user %s (%s)", user.username, user.id)
        return user

    async def find_by_username(self, username: str) -> User:
        async with self._session() as session:
            result = await session.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFound(username)
        return user

    async def find_by_id(self, user_id: str) -> User:
        async with self._session() as session:
            user = await session.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    async def replace_todo_list(
        self,
        user_id: str,
        items: List[Dict[str, Any]],
        *,
        next_todo_id: int,
        expected_version: int,
    ) -> User:
        """Overwrite the todo list if nobody wrote it since ``expected_version``.

        Raises :class:`UserNotFound` when the user is gone and
        :class:`WriteConflict` when the stored version moved on.
        """
        async with self._session() as session:
            async with session.begin():
                result = await session.execute(
                    update(User)
                    .where(User.id == user_id, User.version == expected_version)
                    .values(
                        todo_list=items,
                        next_todo_id=next_todo_id,
                        version=User.version + 1,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    exists = await session.execute(select(User.id).where(User.id == user_id))
                    if exists.scalar_one_or_none() is None:
                        raise UserNotFound(user_id)
                    raise WriteConflict(user_id)

            user = await session.get(User, user_id, populate_existing=True)
        if user is None:
            raise UserNotFound(user_id)
        return user
