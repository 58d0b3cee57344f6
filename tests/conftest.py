from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from todo_service.app import create_app
from todo_service.config import Settings
from todo_service.database import build_engine, build_session_factory, init_db
from todo_service.schemas import SignupRequest
from todo_service.store import UserStore

SECRET = "test-secret-key"

ALICE = {
    "username": "alice",
    "password": "p1",
    "firstName": "A",
    "lastName": "L",
    "email": "a@x.com",
}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        secret_key=SECRET, database_url=f"sqlite+aiosqlite:///{tmp_path / 'todo.db'}"
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
async def store(settings):
    engine = build_engine(settings)
    await init_db(engine)
    yield UserStore(build_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def alice_fields() -> SignupRequest:
    return SignupRequest.model_validate(ALICE)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
