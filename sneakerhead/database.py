# sneakerhead/database.py
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from sneakerhead.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Postgres connection
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=5       : small fixed pool per worker process
# - max_overflow=5    : allow short bursts during checkout spikes
# - pool_pre_ping=True: validate connections before using them
#
# SQLite (local runs, tests) skips all of that. An in-memory database only
# lives as long as its connection, so it gets a single shared one; a file
# database keeps the default pool, one connection per thread.
# ---------------------------------------------------------


def build_engine(db_url: str, echo: bool = False) -> Engine:
    """
    Create the SQLAlchemy engine for the given URL.
    """
    if db_url.startswith("sqlite"):
        in_memory = db_url in ("sqlite://", "sqlite:///:memory:")
        return create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
        )

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return create_engine(
        db_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
