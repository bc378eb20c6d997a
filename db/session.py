"""
Engine and session factory helpers.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.logger import get_logger

from .models import Base

logger = get_logger("db")


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for ``database_url``.

    In-memory SQLite shares a single connection so every session sees the same
    database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        logger.info("Database engine created: SQLite")
    else:
        engine = create_engine(database_url, pool_pre_ping=True, pool_recycle=3600)
        logger.info("Database engine created: %s", engine.dialect.name)
    return engine


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
