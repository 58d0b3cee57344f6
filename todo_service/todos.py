"""Read-modify-write logic for the todo list embedded in a user document.

The list transforms are pure functions over plain lists of
``{"id": int, "content": str}`` mappings. :class:`TodoMutationEngine`
loads the user, applies one of them and writes the result back through
:meth:`UserStore.replace_todo_list`, reloading and recomputing when a
concurrent write wins the version check.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from todo_service.errors import WriteConflict
from todo_service.models import User
from todo_service.schemas import TodoItem
from todo_service.store import UserStore

logger = logging.getLogger(__name__)

Items = List[Dict[str, Any]]
# A plan returns (new items, new counter), or None when nothing changes.
Plan = Callable[[User], Optional[Tuple[Items, int]]]


def allocate_id(items: Items, next_todo_id: int) -> int:
    """Return an id that no entry of ``items`` uses.

    The stored counter is the normal source; it is bumped past the
    largest existing id in case the list was written by something else.
    """
    highest = max((int(item["id"]) for item in items), default=0)
    return max(next_todo_id, highest + 1)


def append_item(items: Items, item_id: int, content: str) -> Items:
    return [*items, {"id": item_id, "content": content}]


def remove_item(items: Items, todo_id: int) -> Items:
    return [item for item in items if item["id"] != todo_id]


def replace_content(items: Items, todo_id: int, content: str) -> Items:
    return [
        {**item, "content": content} if item["id"] == todo_id else item
        for item in items
    ]


class TodoMutationEngine:
    """Add, edit, delete and list entries of a user's todo list."""

    def __init__(self, store: UserStore, max_attempts: int = 3) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._max_attempts = max_attempts

    async def list_items(self, user_id: str) -> List[TodoItem]:
        user = await self._store.find_by_id(user_id)
        return [TodoItem.model_validate(item) for item in user.todo_list]

    async def add(self, user_id: str, content: str) -> User:
        def plan(user: User) -> Tuple[Items, int]:
            item_id = allocate_id(user.todo_list, user.next_todo_id)
            return append_item(user.todo_list, item_id, content), item_id + 1

        user = await self._apply(user_id, plan)
        logger.info("Added todo to user %s (%d items)", user_id, len(user.todo_list))
        return user

    async def delete(self, user_id: str, todo_id: int) -> User:
        def plan(user: User) -> Optional[Tuple[Items, int]]:
            remaining = remove_item(user.todo_list, todo_id)
            if len(remaining) == len(user.todo_list):
                return None
            return remaining, user.next_todo_id

        return await self._apply(user_id, plan)

    async def edit(self, user_id: str, todo_id: int, content: str) -> User:
        def plan(user: User) -> Optional[Tuple[Items, int]]:
            if not any(item["id"] == todo_id for item in user.todo_list):
                return None
            return replace_content(user.todo_list, todo_id, content), user.next_todo_id

        return await self._apply(user_id, plan)

    async def _apply(self, user_id: str, plan: Plan) -> User:
        for attempt in range(1, self._max_attempts + 1):
            user = await self._store.find_by_id(user_id)
            change = plan(user)
            if change is None:
                # unknown todo id: nothing to write
                return user
            items, next_todo_id = change
            try:
                return await self._store.replace_todo_list(
                    user_id,
                    items,
                    next_todo_id=next_todo_id,
                    expected_version=user.version,
                )
            except WriteConflict:
                logger.warning(
                    "Concurrent todo write for user %s (attempt %d/%d)",
                    user_id,
                    attempt,
                    self._max_attempts,
                )
                if attempt == self._max_attempts:
                    raise
        raise WriteConflict(user_id)
