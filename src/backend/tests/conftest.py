"""
Pytest fixtures for Vigia backend tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any, Optional
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_DB", "vigia_test")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")

from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from db.base import Base  # noqa: E402
from db.capabilities import SchemaCapabilities  # noqa: E402


def make_engine() -> AsyncEngine:
    """
    In-memory SQLite engine shared by every session of a test.

    pysqlite's own transaction handling breaks SAVEPOINT, so the driver is put
    in autocommit mode and BEGIN is emitted by SQLAlchemy instead.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


async def create_schema(engine: AsyncEngine, exclude: tuple[str, ...] = ()) -> None:
    """Create every table except ``exclude``."""
    tables = [table for name, table in Base.metadata.tables.items() if name not in exclude]
    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, tables=tables))


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Engine with the full current schema."""
    import models  # noqa: F401

    test_engine = make_engine()
    await create_schema(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def engine_factory() -> AsyncGenerator[Any, None]:
    """Build engines whose schema lacks some tables: await engine_factory(exclude=(...))."""
    import models  # noqa: F401

    created: list[AsyncEngine] = []

    async def _factory(exclude: tuple[str, ...] = ()) -> AsyncEngine:
        new_engine = make_engine()
        await create_schema(new_engine, exclude=exclude)
        created.append(new_engine)
        return new_engine

    yield _factory
    for created_engine in created:
        await created_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def capabilities() -> SchemaCapabilities:
    """Capabilities of the current schema."""
    return SchemaCapabilities.full()


class Seeder:
    """Inserts reference and roster rows for tests."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _add(self, obj: Any) -> Any:
        async with self.session_factory() as session:
            session.add(obj)
            await session.commit()
        return obj

    async def delegate(
        self,
        full_name: str = "Laura Rojas",
        department: Optional[str] = "Huila",
        municipality: Optional[str] = "Timaná",
        address: Optional[str] = "Calle 5 # 3-20",
        polling_station_code: Optional[str] = None,
        team_profile: bool = False,
    ) -> str:
        from models.delegate import Delegate, TeamProfile

        delegate_id = str(uuid4())
        await self._add(
            Delegate(
                id=delegate_id,
                full_name=full_name,
                email=f"{delegate_id[:8]}@vigia.test",
                department=department,
                municipality=municipality,
                address=address,
                polling_station_code=polling_station_code,
            )
        )
        if team_profile:
            await self._add(TeamProfile(delegate_id=delegate_id))
        return delegate_id

    async def location(
        self,
        code: str = "41-807-00-01",
        department: str = "Huila",
        municipality: str = "Timaná",
        name: str = "IE Luis Calixto Leiva",
        address: Optional[str] = "Carrera 4 # 6-15",
        table_count: int = 10,
    ) -> int:
        from models.location import PollingLocation

        department_code, municipality_code, zone_code, station_code = code.split("-")
        location = await self._add(
            PollingLocation(
                department_code=department_code,
                municipality_code=municipality_code,
                zone_code=zone_code,
                station_code=station_code,
                code=code,
                department=department,
                municipality=municipality,
                name=name,
                address=address,
                table_count=table_count,
            )
        )
        return location.id

    async def candidate(
        self,
        full_name: str = "Ana Gómez",
        party: Optional[str] = "Partido Verde",
        position: Optional[str] = "Alcaldía",
        color: Optional[str] = "#2e7d32",
        ballot_number: Optional[int] = None,
    ) -> str:
        from models.candidate import Candidate

        candidate_id = str(uuid4())
        await self._add(
            Candidate(
                id=candidate_id,
                full_name=full_name,
                party=party,
                position=position,
                color=color,
                ballot_number=ballot_number,
            )
        )
        return candidate_id


@pytest.fixture
def seed(session_factory: async_sessionmaker[AsyncSession]) -> Seeder:
    """Row factory for the test database."""
    return Seeder(session_factory)


@pytest.fixture
async def app(
    engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    capabilities: SchemaCapabilities,
) -> Any:
    """FastAPI application wired to the test database."""
    from db.session import get_db
    from main import app as fastapi_app

    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _get_test_db
    fastapi_app.state.capabilities = capabilities
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    fastapi_app.state.capabilities = None


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def _bearer(role: str, delegate_id: Optional[str] = None, user_id: Optional[str] = None) -> dict[str, str]:
    """Authorization header with a token for ``role``."""
    from core.security import create_access_token

    claims: dict[str, Any] = {"sub": user_id or str(uuid4()), "role": role}
    if delegate_id:
        claims["delegate_id"] = delegate_id
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture
def auth_headers() -> Any:
    """Build Authorization headers: auth_headers(role, delegate_id=None)."""
    return _bearer


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.execute = AsyncMock()
    return session
