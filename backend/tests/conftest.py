# tests/conftest.py — Shared test fixtures
import os
import uuid

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

from models import Base, Board, BoardColumn, Card, Company, Project, User, UserRole
from auth import AuthService
from database import engine as app_engine, get_db_session
from main import app

TEST_PASSWORD = "TestPassword123!"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory):
    """HTTP test client with overridden DB dependency"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    # /health uses the module-level engine directly
    await app_engine.dispose()


@pytest_asyncio.fixture
async def test_company(db_session):
    company = Company(id=str(uuid.uuid4()), name="Test Company")
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


@pytest_asyncio.fixture
async def other_company(db_session):
    company = Company(id=str(uuid.uuid4()), name="Other Company")
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


async def make_user(db_session, company, email, name, role=UserRole.USER) -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        display_name=name,
        password_hash=AuthService.hash_password(TEST_PASSWORD),
        company_id=company.id,
        role=role,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session, test_company):
    """Create a test user"""
    return await make_user(db_session, test_company, "testuser@kanban-hub.dev", "Test User")


@pytest_asyncio.fixture
async def second_user(db_session, test_company):
    return await make_user(db_session, test_company, "second@kanban-hub.dev", "Second User")


@pytest_asyncio.fixture
async def manager_user(db_session, test_company):
    return await make_user(
        db_session, test_company, "manager@kanban-hub.dev", "Manager User", UserRole.MANAGER,
    )


@pytest_asyncio.fixture
async def outsider(db_session, other_company):
    return await make_user(db_session, other_company, "outsider@elsewhere.dev", "Outsider")


async def make_project(db_session, owner, name="Project") -> Project:
    project = Project(name=name, owner_id=owner.id, company_id=owner.company_id)
    db_session.add(project)
    await db_session.commit()
    await db_session.refresh(project)
    return project


async def make_board(db_session, project, name="Board", columns=("To Do", "Doing", "Done")):
    """Board with dense columns; returns (board, [columns])"""
    board = Board(project_id=project.id, name=name)
    db_session.add(board)
    await db_session.flush()
    cols = []
    for position, title in enumerate(columns):
        col = BoardColumn(board_id=board.id, title=title, position=position)
        db_session.add(col)
        cols.append(col)
    await db_session.commit()
    return board, cols


async def make_cards(db_session, column, titles):
    """Dense cards at the end of a column, in the given order"""
    cards = []
    for position, title in enumerate(titles):
        card = Card(board_id=column.board_id, column_id=column.id, title=title, position=position)
        db_session.add(card)
        cards.append(card)
    await db_session.commit()
    return cards


@pytest_asyncio.fixture
async def test_project(db_session, test_user):
    return await make_project(db_session, test_user, "Test Project")


@pytest_asyncio.fixture
async def test_board(db_session, test_project):
    return await make_board(db_session, test_project, "Test Board")


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = AuthService.create_access_token(AuthService.token_claims(user))
    return {"Authorization": f"Bearer {token}"}
