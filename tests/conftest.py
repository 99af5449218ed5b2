import os
import tempfile
from pathlib import Path

import pytest

_TMP_DIR = Path(tempfile.mkdtemp(prefix="hirescore-tests-"))

# Override with TEST_DATABASE_URL to run against PostgreSQL
DEFAULT_TEST_DB_URL = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}",
)

TEST_ENV = {
    "ENVIRONMENT": "test",
    "DATABASE_URL": DEFAULT_TEST_DB_URL,
    "DATA_DIR": str(_TMP_DIR),
    "JWT_SECRET": "test-jwt-secret-0123456789abcdef0123456789abcdef",
    "SCHEDULING_MAX_ATTEMPTS": "3",
    "SCHEDULING_RETRY_BACKOFF_MS": "0",
    "LOG_LEVEL": "INFO",
    # Keep the pool small for PostgreSQL runs
    "DB_POOL_SIZE": "5",
    "DB_MAX_OVERFLOW": "2",
    "DB_POOL_TIMEOUT": "10",
    "DB_POOL_RECYCLE": "300",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value

from hirescore.core.auth import Principal, create_access_token
from hirescore.core.db import async_session
from hirescore.domain.base import Base
from hirescore.domain.models import User, UserRole
from hirescore.domain.scheduling_service import SchedulingService


@pytest.fixture(scope="session", autouse=True)
def _set_test_env():
    """Force deterministic env for tests and reset cached settings."""
    for key, value in TEST_ENV.items():
        os.environ[key] = value

    from hirescore.core import settings as settings_module

    settings_module.get_settings.cache_clear()
    yield
    settings_module.get_settings.cache_clear()


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_db(_set_test_env):
    """Apply migrations once per session to the test database."""
    from hirescore.core.settings import get_settings
    from hirescore.migrations.runner import upgrade_to_head

    upgrade_to_head(get_settings().database_url_sync)
    yield


async def _wipe_db():
    """Delete every row, children first."""
    async with async_session() as session:
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()


@pytest.fixture(autouse=True)
async def _clean_database_between_tests(request):
    """Wipe all tables before each test to avoid cross-test pollution."""
    if "no_db_cleanup" in request.keywords:
        return
    await _wipe_db()


def pytest_configure(config):
    config.addinivalue_line("markers", "no_db_cleanup: test does not touch the database")


async def make_user(email: str, role: str, *, verified: bool = True) -> User:
    async with async_session() as session:
        user = User(email=email, role=role, is_verified=verified)
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def principal_for():
    def _principal(user: User) -> Principal:
        return Principal(user_id=user.id, role=user.role)

    return _principal


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
async def recruiter() -> User:
    return await make_user("recruiter@example.com", UserRole.RECRUITER)


@pytest.fixture
async def other_recruiter() -> User:
    return await make_user("other.recruiter@example.com", UserRole.RECRUITER)


@pytest.fixture
async def applicant_a() -> User:
    return await make_user("alice@example.com", UserRole.APPLICANT)


@pytest.fixture
async def applicant_b() -> User:
    return await make_user("bob@example.com", UserRole.APPLICANT)


@pytest.fixture
def service() -> SchedulingService:
    return SchedulingService(max_attempts=3, retry_backoff_ms=0)
