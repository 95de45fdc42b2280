import logging

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crm_api.api.deps import db, password_hasher, token_issuer
from crm_api.core.security import PasswordHasher, TokenIssuer
from crm_api.db.base import Base
from crm_api.main import create_app
from crm_api.repositories.user_repository import SqlUserRepository
from crm_api.services.user_service import UserService

import crm_api.models.user  # noqa: F401


@pytest.fixture()
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture()
def tokens():
    return TokenIssuer(secret="test-secret", algorithm="HS256", expires_min=5)


@pytest.fixture()
def service(session, hasher, tokens):
    return UserService(
        SqlUserRepository(session),
        hasher=hasher,
        tokens=tokens,
        logger=logging.getLogger("crm_api.test.service"),
    )


@pytest.fixture()
async def client(session_factory, hasher, tokens):
    app = create_app(logging.getLogger("crm_api.test"))

    async def _db():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[db] = _db
    app.dependency_overrides[password_hasher] = lambda: hasher
    app.dependency_overrides[token_issuer] = lambda: tokens

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
