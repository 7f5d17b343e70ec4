import os
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

# Ensure the module-level app defaults to the memory backend to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from taskboard.api.main import create_app  # noqa: E402
from taskboard.api.repositories import (  # noqa: E402
    InMemoryTaskRepository,
    InMemoryUserRepository,
    Repositories,
)
from taskboard.api.settings import Settings  # noqa: E402

PASSWORD = "password123"


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret="test-secret", log_level="WARNING")


@pytest.fixture
def repositories() -> Repositories:
    return Repositories(tasks=InMemoryTaskRepository(), users=InMemoryUserRepository())


@pytest.fixture
def app(settings, repositories):
    return create_app(settings=settings, repositories=repositories)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def register(client) -> Callable[..., Dict]:
    """Register a user and return {"id", "token", "headers"}."""

    def _register(name: str = "Test User", email: str = "test@example.com", password: str = PASSWORD) -> Dict:
        res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        body = res.json()
        return {
            "id": body["data"]["user"]["id"],
            "token": body["token"],
            "headers": {"Authorization": f"Bearer {body['token']}"},
        }

    return _register


@pytest.fixture
def auth_headers(register) -> Dict[str, str]:
    return register()["headers"]


def task_payload(title="Test Task", description="Do something", **extra):
    payload = {"title": title, "description": description}
    payload.update(extra)
    return payload


def assert_task_shape(task: dict):
    for key in ["id", "title", "priority", "status", "position", "user", "createdAt", "updatedAt"]:
        assert key in task
    # Optional fields
    assert "description" in task
    assert "dueDate" in task
    assert isinstance(task["id"], int)
    assert isinstance(task["position"], int)
    assert task["priority"] in ("low", "medium", "high")
    assert task["status"] in ("todo", "in-progress", "completed")
