"""
SocietySync - Test Configuration and Fixtures
"""
import os
from datetime import timedelta
from typing import AsyncGenerator, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the app reads its settings
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_societysync.db'
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = TEST_DATABASE_URL
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_FILE'] = ''
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''

from app.main import app
from app.core.database import Base, get_db
from app.core.roles import Role
from app.core.security import get_password_hash, create_user_token
from app.core.types import utcnow
from app.models.invite import Invite, InviteKind, link_placeholder_email
from app.models.membership import Membership
from app.models.platform_config import PlatformConfig
from app.models.recruitment import Application, ApplicationStatus
from app.models.society import Society, Department, SocietyCategory
from app.models.user import User

fake = Faker()

DEFAULT_PASSWORD = 'testpassword123'

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh schema and session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """For tests that need several independent sessions at once"""
    return TestSessionLocal


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client; every request gets its own session like in production"""
    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                if session.new or session.dirty or session.deleted:
                    await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Factories ====================

@pytest.fixture
def make_user(db_session: AsyncSession):
    async def _make_user(role: Role = Role.STUDENT, email: Optional[str] = None,
                         password: str = DEFAULT_PASSWORD, is_active: bool = True) -> User:
        user = User(
            email=(email or fake.unique.email()).lower(),
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            hashed_password=get_password_hash(password),
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_society(db_session: AsyncSession):
    async def _make_society(coordinator: Optional[User] = None, name: Optional[str] = None,
                            is_active: bool = True) -> Society:
        society = Society(
            name=name or f"{fake.unique.company()} Society",
            description=fake.sentence(),
            category=SocietyCategory.TECH,
            faculty_coordinator_id=str(coordinator.id) if coordinator else None,
            is_active=is_active,
        )
        db_session.add(society)
        await db_session.commit()
        return society
    return _make_society


@pytest.fixture
def make_department(db_session: AsyncSession):
    async def _make_department(society: Society, name: Optional[str] = None) -> Department:
        department = Department(society_id=str(society.id), name=name or fake.unique.word().title())
        db_session.add(department)
        await db_session.commit()
        return department
    return _make_department


@pytest.fixture
def make_membership(db_session: AsyncSession):
    async def _make_membership(user: User, society: Society, role: Role,
                               department: Optional[Department] = None,
                               started_at=None) -> Membership:
        now = started_at or utcnow()
        membership = Membership(
            user_id=str(user.id),
            society_id=str(society.id),
            department_id=str(department.id) if department else None,
            role=role,
            is_active=True,
            started_at=now,
            created_at=now,
        )
        db_session.add(membership)
        await db_session.commit()
        return membership
    return _make_membership


@pytest.fixture
def make_invite(db_session: AsyncSession):
    async def _make_invite(society: Society, role: Role, email: Optional[str] = None,
                           department: Optional[Department] = None, created_by: Optional[User] = None,
                           expires_in: timedelta = timedelta(days=7), used: bool = False) -> Invite:
        token = fake.unique.sha256()
        now = utcnow()
        invite = Invite(
            kind=InviteKind.TARGETED if email else InviteKind.LINK,
            email=email.lower() if email else link_placeholder_email(token),
            society_id=str(society.id),
            department_id=str(department.id) if department else None,
            role=role,
            token=token,
            expires_at=now + expires_in,
            used=used,
            created_by_id=str(created_by.id) if created_by else None,
            created_at=now,
        )
        db_session.add(invite)
        await db_session.commit()
        return invite
    return _make_invite


@pytest.fixture
def make_application(db_session: AsyncSession):
    async def _make_application(user: User, society: Society,
                                status: ApplicationStatus = ApplicationStatus.APPLIED,
                                department: Optional[Department] = None) -> Application:
        application = Application(
            user_id=str(user.id),
            society_id=str(society.id),
            department_id=str(department.id) if department else None,
            status=status,
            answers={},
        )
        db_session.add(application)
        await db_session.commit()
        return application
    return _make_application


@pytest.fixture
def set_platform_config(db_session: AsyncSession):
    async def _set(admin_emails=(), faculty_whitelist=()) -> PlatformConfig:
        config = PlatformConfig(admin_emails=list(admin_emails), faculty_whitelist=list(faculty_whitelist))
        db_session.add(config)
        await db_session.commit()
        return config
    return _set


# ==================== Common actors ====================

@pytest.fixture
async def test_user(make_user) -> User:
    return await make_user(Role.STUDENT)


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user(Role.ADMIN)


@pytest.fixture
async def faculty_user(make_user) -> User:
    return await make_user(Role.FACULTY)


@pytest.fixture
async def society(make_society, faculty_user) -> Society:
    return await make_society(coordinator=faculty_user)


@pytest.fixture
async def department(make_department, society) -> Department:
    return await make_department(society)


@pytest.fixture
async def core_user(make_user, make_membership, society) -> User:
    user = await make_user(Role.CORE)
    await make_membership(user, society, Role.CORE)
    return user


@pytest.fixture
async def head_user(make_user, make_membership, society, department) -> User:
    user = await make_user(Role.HEAD)
    await make_membership(user, society, Role.HEAD, department)
    return user


@pytest.fixture
def default_password() -> str:
    """Plain-text password of every factory-made user"""
    return DEFAULT_PASSWORD


def auth_headers_for(user: User) -> dict:
    """Bearer header for any person"""
    return {'Authorization': f'Bearer {create_user_token(user)}'}


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return auth_headers_for(test_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)
