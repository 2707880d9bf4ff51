"""
AbiBoard - Test Configuration and Fixtures
"""
import io
import os
import tempfile
from datetime import timedelta
from typing import AsyncGenerator, Callable, List, Optional

import pytest
from faker import Faker
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DEBUG'] = 'false'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///:memory:'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['LOG_FILE'] = ''
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['SEED_DEFAULT_FIELDS'] = 'false'
os.environ['UPLOAD_PATH'] = tempfile.mkdtemp(prefix='abiboard-uploads-')

from abiboard.main import app
from abiboard.core.database import Base, get_db
from abiboard.core.security import create_access_token
from abiboard.core.types import utcnow
from abiboard.models import Gender, ProfileField, User, UserRole
from abiboard.services.deadline import SubmissionWindow, get_submission_window
from abiboard.services.field_registry import field_registry_service

fake = Faker('de_DE')

TEST_DATABASE_URL = 'sqlite+aiosqlite://'


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database for each test"""
    # One engine per test: aiosqlite connections are bound to the event loop
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def set_deadline() -> Callable[[Optional[timedelta]], SubmissionWindow]:
    """
    Override the submission window for the next requests.

    ``set_deadline(timedelta(hours=-1))`` puts the deadline an hour in the
    past, ``set_deadline(None)`` removes it.
    """
    def _set(offset: Optional[timedelta]) -> SubmissionWindow:
        now = utcnow()
        window = SubmissionWindow(deadline=now + offset if offset is not None else None, now=now)
        app.dependency_overrides[get_submission_window] = lambda: window
        return window

    return _set


async def _create_user(db_session: AsyncSession, role: UserRole, **kwargs) -> User:
    user = User(
        email=kwargs.pop('email', fake.unique.email()),
        first_name=kwargs.pop('first_name', fake.first_name()),
        last_name=kwargs.pop('last_name', fake.last_name()),
        gender=kwargs.pop('gender', Gender.FEMALE),
        role=role,
        is_active=kwargs.pop('is_active', True),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for additional users"""
    async def _make(role: UserRole = UserRole.STUDENT, **kwargs) -> User:
        return await _create_user(db_session, role, **kwargs)
    return _make


@pytest.fixture
async def student_user(db_session: AsyncSession) -> User:
    """Create a test student"""
    return await _create_user(db_session, UserRole.STUDENT)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await _create_user(db_session, UserRole.ADMIN, gender=None)


def headers_for(user: User) -> dict:
    """Generate authentication headers for a user"""
    token = create_access_token({'sub': str(user.id), 'role': user.role.value})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers(student_user: User) -> dict:
    return headers_for(student_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
async def default_fields(db_session: AsyncSession) -> List[ProfileField]:
    """The seeded default fields: imageUrl, quote, plansAfter, memory, memoryImages"""
    await field_registry_service.seed_default_fields(db_session)
    return await field_registry_service.list_fields(db_session)


def make_image(fmt: str = 'PNG', size=(8, 8), color=(200, 30, 30)) -> bytes:
    """Small valid image file"""
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image('PNG')


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image('JPEG')
