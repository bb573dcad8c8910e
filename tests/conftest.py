import os

# Configure the environment before the application modules are imported
os.environ["SECRET_KEY"] = "test-secret-key-for-portal-tests"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["MAIL_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("LOG_DIR", None)
os.environ.pop("SUPERUSER_EMAIL", None)

from typing import AsyncGenerator, Dict

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from portal import create_app
from portal.core.database import get_db
from portal.core.rate_limiter import rate_limiter
from portal.core.security import create_access_token, get_password_hash
from portal.models import Base, Organization, ParentProfile, StudentProfile, TeacherProfile, User
from portal.services.organization_service import OrganizationService

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "password123"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

fake = Faker()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.clear()
    yield
    rate_limiter.clear()


@pytest.fixture
def app(session_factory):
    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        session = session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def organization(db_session) -> Organization:
    organization = Organization(name="Riverside Academy", slug="riverside", email="office@riverside.org")
    db_session.add(organization)
    await db_session.flush()
    await OrganizationService(db_session).create_builtin_roles(organization.id)
    await db_session.commit()
    return organization


@pytest.fixture
async def roles(db_session, organization):
    return await OrganizationService(db_session).create_builtin_roles(organization.id)


@pytest.fixture
def make_user(db_session, organization, roles):
    """Factory creating an approved user holding one built-in role."""
    async def _make_user(role: str, organization_id: int = None, role_map=None, **kwargs) -> User:
        org_id = organization_id or organization.id
        role_map = role_map or roles
        user = User(
            organization_id=org_id,
            email=kwargs.pop("email", fake.unique.email()),
            password_hash=TEST_PASSWORD_HASH,
            first_name=kwargs.pop("first_name", fake.first_name()),
            last_name=kwargs.pop("last_name", fake.last_name()),
            is_active=kwargs.pop("is_active", True),
            is_approved=kwargs.pop("is_approved", True),
            roles=[role_map[role]],
            **kwargs
        )
        if role == "Student":
            user.student_profile = StudentProfile(organization_id=org_id)
        elif role == "Parent":
            user.parent_profile = ParentProfile(organization_id=org_id)
        elif role == "Teacher":
            user.teacher_profile = TeacherProfile(organization_id=org_id, salary=3000)
        db_session.add(user)
        await db_session.commit()
        return user
    return _make_user


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user("Admin", email="admin@riverside.org")


@pytest.fixture
async def teacher_user(make_user) -> User:
    return await make_user("Teacher", email="teacher@riverside.org")


@pytest.fixture
async def student_user(make_user) -> User:
    return await make_user("Student", email="student@riverside.org")


@pytest.fixture
async def parent_user(make_user) -> User:
    return await make_user("Parent", email="parent@riverside.org")


@pytest.fixture
async def superuser(make_user) -> User:
    return await make_user("Admin", email="root@riverside.org", is_superuser=True)


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user.id, user.organization_id, user.role_names)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user) -> Dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def teacher_headers(teacher_user) -> Dict[str, str]:
    return auth_headers(teacher_user)


@pytest.fixture
def student_headers(student_user) -> Dict[str, str]:
    return auth_headers(student_user)


@pytest.fixture
def parent_headers(parent_user) -> Dict[str, str]:
    return auth_headers(parent_user)


@pytest.fixture
def superuser_headers(superuser) -> Dict[str, str]:
    return auth_headers(superuser)


@pytest.fixture
async def other_organization(db_session):
    """A second tenant, for isolation checks."""
    organization = Organization(name="Hillside School", slug="hillside")
    db_session.add(organization)
    await db_session.flush()
    roles = await OrganizationService(db_session).create_builtin_roles(organization.id)
    await db_session.commit()
    return organization, roles


@pytest.fixture
def headers_for():
    """Build bearer headers for any user created inside a test."""
    return auth_headers
