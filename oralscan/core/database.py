"""
Engine and sessions. Scans, profiles and accounts share one database; SQLite by
default, PostgreSQL (psycopg 3) when DATABASE_URL points at one.
"""
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .config import settings

logger = logging.getLogger(__name__)

_PSYCOPG = "postgresql+psycopg://"


def normalize_database_url(url: str | None) -> str:
    """Hosted Postgres URLs (postgres://, bare postgresql://) get the psycopg 3 driver."""
    url = (url or "").strip() or "sqlite:///./oralscan.db"
    scheme, sep, rest = url.partition("://")
    if sep and scheme in ("postgres", "postgresql"):
        return _PSYCOPG + rest
    return url


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url:
        # One shared connection, otherwise each session would see an empty database
        options["poolclass"] = StaticPool
    return options


DATABASE_URL = normalize_database_url(settings.database_url)
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))


def get_db():
    """FastAPI dependency: one session per request."""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    from oralscan import models  # noqa: F401  registers the tables on the metadata

    SQLModel.metadata.create_all(engine)


def database_ok() -> bool:
    try:
        with Session(engine) as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("database check failed: %s", e)
        return False
    return True
