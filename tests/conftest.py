import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# TEST SETTINGS
# Must be set BEFORE importing app.main so Settings() picks them up.
# ------------------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["POWER_ADMIN_EMAIL"] = "root@noticeboard.edu"  # keep in sync with helpers.POWER_EMAIL
os.environ["POWER_ADMIN_PASSWORD"] = "rootpass123"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENV"] = "test"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("REDIS_URL", None)

from app.main import app  # noqa: E402
from app.api.deps import get_db_session  # noqa: E402
from app.core import database  # noqa: E402
from app.models.academic import Faculty, Department, Level, LEVEL_NUMBERS  # noqa: E402
from app.models.user import UserRole  # noqa: E402
from app.services.auth_service import create_user, get_user_by_email  # noqa: E402
from tests.helpers import DEFAULT_PASSWORD, POWER_EMAIL  # noqa: E402


# ------------------------------------------------------------------
# DATABASE: fresh in-memory SQLite per test
# ------------------------------------------------------------------
@pytest_asyncio.fixture
async def session_factory():
    engine = database.build_engine("sqlite+aiosqlite://")
    await database.init_db(engine)
    yield database.make_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """
    httpx >= 0.27 style client (ASGITransport). Startup events do not run,
    so each test builds exactly the data it needs.
    """
    async def override_get_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.state.cache.clear()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.cache.clear()


# ------------------------------------------------------------------
# DATA HELPERS
# ------------------------------------------------------------------
@pytest.fixture
def make_user(db_session):
    """
    Factory: await make_user("user", email=..., managed_department_id=...)
    Returns the persisted, verified user.
    """
    counter = {"n": 0}

    async def _make(role="user", email=None, name=None, **extra):
        counter["n"] += 1
        role = UserRole.parse(role)
        user = await create_user(
            db_session,
            name=name or f"{role.value.title()} {counter['n']}",
            email=email or f"{role.value}{counter['n']}@example.com",
            password=DEFAULT_PASSWORD,
            role=role,
            managed_department_id=extra.pop("managed_department_id", None),
        )
        if extra:
            for key, value in extra.items():
                setattr(user, key, value)
            db_session.add(user)
            await db_session.commit()
            await db_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def power_admin(make_user):
    return await make_user("power", email=POWER_EMAIL, name="Root")


@pytest_asyncio.fixture
async def academic(db_session):
    """
    One faculty (SCI) with two departments (CS, MATH), each with levels
    100..500, plus a second faculty (ENG) with one department (EE).
    """
    sci = Faculty(name="Faculty of Science", code="SCI")
    eng = Faculty(name="Faculty of Engineering", code="ENG")
    db_session.add_all([sci, eng])
    await db_session.flush()

    cs = Department(name="Computer Science", code="CS", faculty_id=sci.id)
    math = Department(name="Mathematics", code="MATH", faculty_id=sci.id)
    ee = Department(name="Electrical Engineering", code="EE", faculty_id=eng.id)
    db_session.add_all([cs, math, ee])
    await db_session.flush()

    levels = {}
    for dept in (cs, math, ee):
        for number in LEVEL_NUMBERS:
            level = Level(department_id=dept.id, level_number=number, display_name=f"{number} Level")
            db_session.add(level)
            levels[(dept.code, number)] = level

    await db_session.commit()
    return {
        "sci": sci,
        "eng": eng,
        "cs": cs,
        "math": math,
        "ee": ee,
        "levels": levels,
    }


@pytest.fixture
def fetch_user(session_factory):
    """Read a user back through a fresh session (sees API-side commits)."""
    async def _fetch(email):
        async with session_factory() as session:
            return await get_user_by_email(session, email)

    return _fetch
