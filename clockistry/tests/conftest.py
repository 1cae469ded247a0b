import os
import tempfile

_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret

# Date-window assertions are written against a UTC server calendar.
os.environ["ENV"] = "test"
os.environ["APP_TIMEZONE"] = "UTC"

import subprocess
from datetime import datetime, timedelta
from itertools import count
from pathlib import Path
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.engine import make_url

_SQLITE_PATH = Path(tempfile.gettempdir()) / f"clockistry_test_{os.getpid()}.sqlite3"
TEST_DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{_SQLITE_PATH}")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from clockistry import database
from clockistry.deps.auth import get_clock
from clockistry.main import app
from clockistry.models import Client, Company, Project, Task, Team, TeamMember, TimeEntry, User  # noqa: F401
from clockistry.services.auth_service import hash_password

_sequence = count(1)


def _is_postgres(database_url: str) -> bool:
    return make_url(database_url).drivername.startswith("postgresql")


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database():
    if _is_postgres(TEST_DATABASE_URL):
        env = os.environ.copy()
        env["DATABASE_URL"] = TEST_DATABASE_URL
        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            cwd=Path(__file__).resolve().parents[2],
            env=env,
        )
        database.configure_database()
    else:
        if _SQLITE_PATH.exists():
            _SQLITE_PATH.unlink()
        database.configure_database()
        database.Base.metadata.create_all(bind=database.engine)

    yield

    database.engine.dispose()
    if not _is_postgres(TEST_DATABASE_URL) and _SQLITE_PATH.exists():
        _SQLITE_PATH.unlink()


def _clear_tables() -> None:
    with database.engine.begin() as conn:
        if _is_postgres(TEST_DATABASE_URL):
            quoted = ", ".join(f'"{t.name}"' for t in database.Base.metadata.sorted_tables)
            conn.execute(text(f"TRUNCATE TABLE {quoted} RESTART IDENTITY CASCADE"))
            return
        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def _truncate_tables_between_tests():
    _clear_tables()
    yield
    app.dependency_overrides.clear()
    _clear_tables()


class FrozenClock:
    """Injected in place of the wall clock so durations are exact."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    frozen = FrozenClock(datetime(2024, 3, 5, 9, 0, 0))
    app.dependency_overrides[get_clock] = lambda: frozen
    return frozen


def _save(row):
    db = database.SessionLocal()
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    finally:
        db.close()


@pytest.fixture
def company_factory():
    def _make(name=None, pricing_level="office", max_members=50, is_active=True):
        return _save(
            Company(
                name=name or f"Company {next(_sequence)}",
                pricing_level=pricing_level,
                max_members=max_members,
                is_active=is_active,
            )
        )

    return _make


@pytest.fixture
def user_factory():
    def _make(company_id=None, role="employee", name=None, email=None, password=None, is_active=True):
        n = next(_sequence)
        return _save(
            User(
                company_id=company_id,
                role=role,
                name=name or f"User {n}",
                email=email or f"user{n}@example.com",
                password_hash=hash_password(password) if password else None,
                is_active=is_active,
            )
        )

    return _make


@pytest.fixture
def client_factory():
    def _make(company_id, name=None):
        return _save(Client(company_id=company_id, name=name or f"Client {next(_sequence)}"))

    return _make


@pytest.fixture
def project_factory():
    def _make(company_id, name=None, client=None):
        return _save(
            Project(
                company_id=company_id,
                name=name or f"Project {next(_sequence)}",
                client_id=client.id if client is not None else None,
                client_name=client.name if client is not None else None,
            )
        )

    return _make


@pytest.fixture
def entry_factory():
    """Insert a finished (or running) entry directly, bypassing the timer."""

    def _make(user, start_time, duration=3600, is_running=False, is_billable=False, project=None):
        return _save(
            TimeEntry(
                id=str(uuid4()),
                user_id=user.id,
                company_id=user.company_id,
                created_by=user.id,
                project_id=project.id if project is not None else None,
                project_name=project.name if project is not None else None,
                description="seeded",
                start_time=start_time,
                end_time=None if is_running else start_time + timedelta(seconds=duration),
                duration=0 if is_running else duration,
                is_running=is_running,
                is_billable=is_billable,
                tags=[],
            )
        )

    return _make
