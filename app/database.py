# app/database.py
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients, hence the tiny pool.
#
# Without DATABASE_URL there is no engine at all: get_session() yields None
# and every service guarded by db_guard degrades to empty reads and failed
# writes.
# ---------------------------------------------------------


def _build_engine():
    db_url = settings.DATABASE_URL
    if not db_url:
        logger.warning(
            "DATABASE_URL not set. Catalog reads will be empty and writes will fail; "
            "the public catalog falls back to the legacy JSON data."
        )
        return None

    # Append sslmode=require if it is not already present
    if db_url.startswith("postgres") and "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return create_engine(
        db_url,
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


engine = _build_engine()


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup. No-op without an engine.
    """
    if engine is None:
        return
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session, or None when the
    database is not configured.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session | None = Depends(get_session)):
            ...
    """
    if engine is None:
        yield None
        return
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Iterator[Session | None]:
    """
    Session context for code running outside a request (realtime reloads,
    background polling).
    """
    if engine is None:
        yield None
        return
    with Session(engine) as session:
        yield session
