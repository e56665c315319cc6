"""
pytest configuration and fixtures.

Loads environment variables from .env file for all tests and provides a
fresh SQLite database per test.
"""

from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv

from store.db import DatabaseConnection, StoreDbContext
from store.db.repositories import SalesRepository
from store.models import UserInfo


def pytest_configure(config):
    """Load .env file before running tests"""
    # Find the project root (where .env is located)
    project_root = Path(__file__).parent.parent
    env_file = project_root / ".env"

    if env_file.exists():
        print(f"Loading environment from {env_file}")
        load_dotenv(env_file)


@pytest_asyncio.fixture
async def database(tmp_path: Path):
    """Initialize a SQLite database with the full store schema."""
    await DatabaseConnection.initialize(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"
    )
    await DatabaseConnection.create_schema()
    yield DatabaseConnection
    await DatabaseConnection.close()


@pytest_asyncio.fixture
async def session(database):
    """Open a session on the test database."""
    session = DatabaseConnection.get_session()
    yield session
    await session.close()


@pytest.fixture
def context(session) -> StoreDbContext:
    """Create a database context on the test session."""
    return StoreDbContext(session)


@pytest.fixture
def user_info() -> UserInfo:
    return UserInfo(name="tester")


@pytest.fixture
def sales(user_info: UserInfo, context: StoreDbContext) -> SalesRepository:
    """Create a SalesRepository on the test context."""
    return SalesRepository(user_info, context)
