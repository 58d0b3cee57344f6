"""FastAPI application for the todo service.

Endpoints (all under ``/api`` except the health check):

- ``POST /signup`` and ``POST /signin`` return the sanitized user and a
  JSON Web Token.
- ``PUT /addTodoItem``, ``PUT /deleteTodoItem`` and ``PUT /editTodoItem``
  mutate the caller's todo list and return the sanitized user.
- ``GET /getTodos/{user_id}`` returns the caller's todo list.
- ``POST /refresh`` reissues a token from the stored profile.

Run with ``uvicorn todo_service.app:create_app --factory`` or the
``todo-service`` console script.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

from todo_service.auth import (
    AccountService,
    ensure_same_user,
    get_bearer_token,
    require_claims,
)
from todo_service.config import Settings, load_settings
from todo_service.database import build_engine, build_session_factory, init_db
from todo_service.errors import AuthorizationFailure, register_exception_handlers
from todo_service.schemas import (
    AddTodoRequest,
    AuthResponse,
    DeleteTodoRequest,
    EditTodoRequest,
    RefreshRequest,
    SigninRequest,
    SignupRequest,
    TodoItem,
    UserOut,
)
from todo_service.security import IdentityClaims, PasswordHasher, TokenService
from todo_service.store import UserStore
from todo_service.todos import TodoMutationEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_todos(request: Request) -> TodoMutationEngine:
    return request.app.state.todos


def _auth_response(user, token: str) -> AuthResponse:
    return AuthResponse(user=UserOut.model_validate(user), token=token)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest, accounts: AccountService = Depends(get_accounts)
) -> AuthResponse:
    """Register a new user and sign them in."""
    user, token = await accounts.signup(payload)
    return _auth_response(user, token)


@router.post("/signin", response_model=AuthResponse)
async def signin(
    payload: SigninRequest, accounts: AccountService = Depends(get_accounts)
) -> AuthResponse:
    """Authenticate a user and return an access token."""
    user, token = await accounts.signin(payload.username, payload.password)
    return _auth_response(user, token)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    payload: RefreshRequest,
    bearer: str = Depends(get_bearer_token),
    claims: IdentityClaims = Depends(require_claims),
    accounts: AccountService = Depends(get_accounts),
) -> AuthResponse:
    """Issue a new token with claims re-read from the stored user."""
    if payload.token is not None and payload.token != bearer:
        raise AuthorizationFailure("body token does not match bearer token")
    ensure_same_user(claims, payload.user_id)
    user, token = await accounts.refresh(claims)
    return _auth_response(user, token)


@router.put("/addTodoItem", response_model=UserOut)
async def add_todo_item(
    payload: AddTodoRequest,
    claims: IdentityClaims = Depends(require_claims),
    todos: TodoMutationEngine = Depends(get_todos),
) -> UserOut:
    user_id = ensure_same_user(claims, payload.user_id)
    user = await todos.add(user_id, payload.content)
    return UserOut.model_validate(user)


@router.put("/deleteTodoItem", response_model=UserOut)
async def delete_todo_item(
    payload: DeleteTodoRequest,
    claims: IdentityClaims = Depends(require_claims),
    todos: TodoMutationEngine = Depends(get_todos),
) -> UserOut:
    user_id = ensure_same_user(claims, payload.user_id)
    user = await todos.delete(user_id, payload.todo_id)
    return UserOut.model_validate(user)


@router.put("/editTodoItem", response_model=UserOut)
async def edit_todo_item(
    payload: EditTodoRequest,
    claims: IdentityClaims = Depends(require_claims),
    todos: TodoMutationEngine = Depends(get_todos),
) -> UserOut:
    user_id = ensure_same_user(claims, payload.user_id)
    user = await todos.edit(user_id, payload.todo_id, payload.content)
    return UserOut.model_validate(user)


@router.get("/getTodos/{user_id}", response_model=List[TodoItem])
async def get_todo_items(
    user_id: str,
    claims: IdentityClaims = Depends(require_claims),
    todos: TodoMutationEngine = Depends(get_todos),
) -> List[TodoItem]:
    """Return the caller's todo list in insertion order."""
    return await todos.list_items(ensure_same_user(claims, user_id))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; settings come from the environment by default."""
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings)
        await init_db(engine)

        store = UserStore(build_session_factory(engine))
        tokens = TokenService(settings.secret_key)
        app.state.token_service = tokens
        app.state.accounts = AccountService(store, PasswordHasher(), tokens)
        app.state.todos = TodoMutationEngine(store, max_attempts=settings.mutation_attempts)
        logger.info("Todo service ready")

        yield

        await engine.dispose()

    app = FastAPI(
        root_path=settings.root_path,
        title="Todo Service",
        lifespan=lifespan,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        """Health check endpoint returning the service status."""
        return {"status": "ok"}

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
