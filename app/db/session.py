# app/db/session.py
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# SQLite file by default; any SQLAlchemy URL via DATABASE_URL
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./studio.db")

_is_sqlite = DATABASE_URL.startswith("sqlite")
_is_memory = _is_sqlite and (DATABASE_URL in {"sqlite://", "sqlite:///:memory:"})

_engine_kwargs = {"pool_pre_ping": True, "future": True}
if _is_sqlite:
    # required for SQLite + threads (TestClient, APScheduler)
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
if _is_memory:
    # a single shared connection, otherwise every session sees an empty DB
    _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, **_engine_kwargs)


if _is_sqlite:

    # Enforce foreign keys in SQLite
    @event.listens_for(engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    future=True,
)
