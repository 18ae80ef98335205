"""Database connection and session management for dayplanner.

Tasks, weekly fixed schedules and stored plans live in SQLite unless
`DATABASE_URL` points somewhere else.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dayplanner.db")

# create_engine pool option -> (environment variable, default)
POOL_SETTINGS = {
    "pool_size": ("DAYPLANNER_DB_POOL_SIZE", "5"),
    "max_overflow": ("DAYPLANNER_DB_MAX_OVERFLOW", "5"),
    "pool_timeout": ("DAYPLANNER_DB_POOL_TIMEOUT_SEC", "30"),
}


def _is_sqlite_url(database_url: str) -> bool:
    return (database_url or "").startswith("sqlite")


def get_engine_kwargs(database_url: str) -> dict:
    """create_engine keyword arguments for a URL, read from the environment.

    Pure function, so it can be checked without opening a connection.
    """
    kwargs: dict = {
        "echo": os.getenv("DAYPLANNER_DB_ECHO", "false").lower() == "true",
        "pool_pre_ping": True,
    }
    if _is_sqlite_url(database_url):
        # One connection may be used from several request threads
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        for option, (env_name, default) in POOL_SETTINGS.items():
            kwargs[option] = int(os.getenv(env_name, default))
    return kwargs


def build_engine(database_url: str) -> Engine:
    return create_engine(database_url, **get_engine_kwargs(database_url))


engine = build_engine(DATABASE_URL)


@event.listens_for(Engine, "connect")
def set_sqlite_pragmas(dbapi_conn, connection_record):
    """Turn on foreign keys so plan items cannot point at missing tasks."""
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Session:
    """Get database session (dependency for FastAPI)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(engine_override: Engine = None):
    """Create the dayplanner tables (tasks, schedules, plan items, plan days) if missing."""
    from dayplanner.database import models  # noqa: F401

    Base.metadata.create_all(bind=engine_override or engine)
