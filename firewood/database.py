# firewood/database.py
from typing import Any

from sqlmodel import SQLModel, create_engine, Session

from firewood.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Postgres connection (production)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep the footprint small on a hosted pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# SQLite (local runs) gets none of the pool options, it does not
# support them.
# ---------------------------------------------------------


def _prepare_url(db_url: str) -> str:
    if not db_url.startswith("postgres"):
        return db_url

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"
    return db_url


def _engine_kwargs(db_url: str) -> dict[str, Any]:
    if db_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 1,
        "max_overflow": 0,
    }


db_url = _prepare_url(settings.DATABASE_URL)

engine = create_engine(
    db_url,
    echo=False,        # set to True if you want to debug SQL queries
    **_engine_kwargs(db_url),
)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def dispose_engine() -> None:
    """
    Close every pooled connection. Called on application shutdown.
    """
    engine.dispose()


def get_session():
    """
    One Session per request. Repositories only flush; the service that
    owns the operation commits or rolls back. Tests override this
    dependency with an in-memory engine.
    """
    with Session(engine) as session:
        yield session
