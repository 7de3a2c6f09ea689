"""
Pytest configuration and fixtures.

Every test gets its own SQLite database file (aiosqlite driver), created
from the SQLModel metadata and seeded like a fresh deployment. HTTP tests
go through the real app with ``get_session`` overridden to use that file.
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import select

from queuedesk.db.init_db import init_db
from queuedesk.db.models import Desk, DeskStatus, Token, TokenStatus
from queuedesk.db.session import get_session
from queuedesk.main import app
from queuedesk.schemas.desk import DeskCreate
from queuedesk.schemas.token import TokenCreate
from queuedesk.services.desk_service import DeskService
from queuedesk.services.token_service import TokenService


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'queuedesk.db'}",
        poolclass=NullPool,
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await init_db(test_engine, session)
    return factory


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture
def make_token(db_session):
    async def _make_token(name: str = "Customer") -> Token:
        return await TokenService(db_session).create_token(TokenCreate(name=name))
    return _make_token


@pytest.fixture
def make_desk(db_session):
    async def _make_desk(operator_name: str = "Operator") -> Desk:
        return await DeskService(db_session).create_desk(DeskCreate(operator_name=operator_name))
    return _make_desk


@pytest.fixture
def check_invariants(session_factory):
    """Assert the token/desk pairing rules hold across the whole store."""

    async def _check():
        async with session_factory() as session:
            desks = (await session.execute(select(Desk))).scalars().all()
            tokens = (await session.execute(select(Token))).scalars().all()

        tokens_by_id = {token.id: token for token in tokens}
        for desk in desks:
            assert (desk.status == DeskStatus.OCCUPIED) == (desk.assigned_token_id is not None)
            if desk.status == DeskStatus.OCCUPIED:
                assert tokens_by_id[desk.assigned_token_id].assigned_desk_id == desk.id
        for token in tokens:
            assert (token.status == TokenStatus.ASSIGNED) == (token.assigned_desk_id is not None)

        numbers = [token.token_number for token in tokens]
        assert len(numbers) == len(set(numbers))
        desk_numbers = [desk.desk_number for desk in desks]
        assert len(desk_numbers) == len(set(desk_numbers))

    return _check
