"""Test configuration for the collaboration server."""

import os

# Настройки читаются из окружения при импорте sitecollab.main
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./sitecollab-test.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("CREATE_SCHEMA_ON_STARTUP", "true")

from pathlib import Path
from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from sitecollab.config import Settings
from sitecollab.core.db import build_engine, build_session_factory, create_schema
from sitecollab.core.security import TokenService
from sitecollab.domains.identity.schemas import UserCreate
from sitecollab.domains.identity.services import IdentityService
from sitecollab.domains.projects.schemas import ProjectCreate
from sitecollab.domains.projects.services import ProjectService
from sitecollab.main import create_app


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'sitecollab.db'}",
        "jwt_secret": "test-secret",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def token_service(settings: Settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
async def session_factory(settings: Settings):
    engine = build_engine(settings)
    await create_schema(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def owner(session_factory, token_service):
    async with session_factory() as session:
        return await IdentityService(session, token_service).register_user(
            UserCreate(email="owner@sitecollab.io", password="secret123", name="Owner")
        )


@pytest.fixture
async def project(session_factory, owner):
    async with session_factory() as session:
        return await ProjectService(session).create_project(owner.id, ProjectCreate(name="Landing"))


def register(client: TestClient, email: str, name: str, password: str = "secret123") -> Dict[str, str]:
    """Регистрация и вход; возвращает id, имя и токен"""
    response = client.post("/auth/register", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def auth_headers(user: Dict[str, str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {user['token']}"}


def create_project(client: TestClient, user: Dict[str, str], name: str = "Landing") -> Dict[str, Any]:
    response = client.post("/projects", json={"name": name}, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()
