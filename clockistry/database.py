import os
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

DEFAULT_DATABASE_URL = "postgresql://localhost/clockistry"

Base = declarative_base()

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

DATABASE_URL = ""
engine: Optional[Engine] = None


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    # SQLite ignores ON DELETE rules unless asked per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(database_url, connect_args={"check_same_thread": False})
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine
    return create_engine(database_url, pool_pre_ping=True)


def configure_database(database_url: Optional[str] = None) -> Engine:
    """Bind SessionLocal to ``database_url`` (default: $DATABASE_URL), reusing the engine if unchanged."""
    global DATABASE_URL, engine

    # Looked up on every call so tests can repoint DATABASE_URL before the first session.
    url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if engine is not None and url == DATABASE_URL:
        return engine

    engine = _build_engine(url)
    SessionLocal.configure(bind=engine)
    DATABASE_URL = url
    return engine


configure_database()


def get_db():
    configure_database()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
