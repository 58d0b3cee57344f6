"""Pydantic schemas for request bodies and responses of the todo service.

Wire format uses camelCase keys. Response models are allow-lists: a field
only leaves the service if it is declared here, which is what keeps the
password hash out of every response.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

_REQUEST_CONFIG = ConfigDict(
    extra="forbid",
    str_strip_whitespace=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class SignupRequest(BaseModel):
    """Schema for user registration requests."""

    model_config = _REQUEST_CONFIG

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: EmailStr


class SigninRequest(BaseModel):
    """Schema for login requests."""

    model_config = _REQUEST_CONFIG

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AddTodoRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    user_id: Optional[str] = None
    content: str = Field(min_length=1)


class DeleteTodoRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    user_id: Optional[str] = None
    todo_id: int


class EditTodoRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    user_id: Optional[str] = None
    todo_id: int
    content: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    """Body of a refresh call.

    Clients tend to post back their whole stored session, so unknown keys
    are ignored here rather than rejected.
    """

    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True
    )

    token: Optional[str] = None
    user_id: Optional[str] = None


class TodoItem(BaseModel):
    """Single entry of a user's todo list."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int
    content: str


class UserOut(BaseModel):
    """Outward-facing projection of a stored user."""

    model_config = ConfigDict(
        extra="forbid",
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    username: str
    first_name: str
    last_name: str
    email: str
    is_admin: bool
    todo_list: List[TodoItem]


class AuthResponse(BaseModel):
    """Schema returned after signup, signin and refresh."""

    model_config = ConfigDict(
        extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    user: UserOut
    token: str
