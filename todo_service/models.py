"""SQLAlchemy models for the todo service.

A user row doubles as a document: its todo list lives in the ``todo_list``
JSON column rather than in a table of its own.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from todo_service.database import Base


def _new_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """ORM model representing an application user and their todo list.

    Attributes
    ----------
    id:
        Opaque identifier assigned on insert.
    hashed_password:
        Password hash; never part of any response.
    todo_list:
        Ordered list of ``{"id": int, "content": str}`` mappings.
    next_todo_id:
        Next todo id to hand out; only ever grows.
    version:
        Incremented on every todo list write, used for conflict detection.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_user_id)
    username: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    todo_list: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    next_todo_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<User id={self.id!r} username={self.username!r}>"
