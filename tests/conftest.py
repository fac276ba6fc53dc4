import os

# app.database がインポート時にエンジンを作るため、先に SQLite を指定しておく
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SYNC_DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.models.todo import Todo
from app.models.user import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SYNC_DATABASE_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


class StatementLog(list):
    """発行された UPDATE 文を記録する"""

    def updates(self, table: str) -> list[str]:
        return [s for s in self if s.startswith(f"UPDATE {table} ")]

    def updated_columns(self, table: str) -> list[set[str]]:
        """UPDATE 文ごとの SET 対象列"""
        result = []
        for stmt in self.updates(table):
            set_clause = stmt.split(" SET ", 1)[1].split(" WHERE ", 1)[0]
            result.append({part.split("=")[0].strip() for part in set_clause.split(",")})
        return result


def _record_statements(sync_engine) -> StatementLog:
    log = StatementLog()

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _before(conn, cursor, statement, parameters, context, executemany):
        log.append(" ".join(statement.split()))

    return log


# ------------------------ sync ------------------------

@pytest.fixture
def sync_engine():
    engine = create_engine(
        TEST_SYNC_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def sync_session_factory(sync_engine):
    return sessionmaker(bind=sync_engine, expire_on_commit=False)


@pytest.fixture
def statements(sync_engine) -> StatementLog:
    return _record_statements(sync_engine)


@pytest.fixture
def seeded(sync_session_factory):
    """User 1件 + Todo 2件を投入し、detached のまま返す"""
    with sync_session_factory() as session:
        user = User(name="Alice", email="alice@example.com")
        session.add(user)
        session.flush()
        todos = [
            Todo(title="Buy milk", completed=False, owner_id=user.id),
            Todo(title="Walk dog", completed=False, owner_id=user.id),
        ]
        session.add_all(todos)
        session.commit()
    return user, todos


# ------------------------ async ------------------------

@pytest.fixture
async def async_engine():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def async_session_factory(async_engine):
    return sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def async_statements(async_engine) -> StatementLog:
    return _record_statements(async_engine.sync_engine)


@pytest.fixture
async def async_seeded(async_session_factory):
    async with async_session_factory() as session:
        user = User(name="Bob", email="bob@example.com")
        session.add(user)
        await session.flush()
        todo = Todo(title="Buy milk", completed=False, owner_id=user.id)
        session.add(todo)
        await session.commit()
    return user, todo


@pytest.fixture
async def client(async_session_factory):
    async def override_get_db():
        async with async_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
