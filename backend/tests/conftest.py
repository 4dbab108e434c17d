import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "TEST_JWT_SECRET_CHANGE_ME")
os.environ.pop("DEFAULT_ADMIN_PASSWORD", None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import cacophony_api.models  # noqa: F401
from cacophony_api.database import Base, get_db
from cacophony_api.main import app
from cacophony_api.models.user import GlobalPermission
from cacophony_api.services import devices as device_service
from cacophony_api.services import groups as group_service
from cacophony_api.services.auth import AuthService
from cacophony_api.services.permissions import UserAccess

PASSWORD = "correct-horse-battery"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker) -> AsyncSession:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make(username, permission=GlobalPermission.OFF):
        return await AuthService.create_user(
            db,
            username=username,
            password=PASSWORD,
            email=f"{username}@cacophony.org.nz",
            global_permission=permission,
        )
    return _make


@pytest.fixture
def make_group(db):
    async def _make(owner, groupname):
        return await group_service.create_group(db, UserAccess.from_user(owner), groupname)
    return _make


@pytest.fixture
def make_device(db):
    async def _make(group, devicename):
        return await device_service.register_device(db, devicename, PASSWORD, group)
    return _make


def auth(entity) -> dict:
    """Authorization header for a user or device."""
    return {"Authorization": "JWT " + AuthService.create_entity_token(entity)}
