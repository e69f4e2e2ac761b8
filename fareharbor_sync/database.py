import logging
from datetime import datetime, timezone
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every timestamp column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Build an engine for the given URL (SQLite needs check_same_thread off for FastAPI)"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    return create_engine(
        database_url,
        connect_args=connect_args,
        echo=echo,
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create all tables in the database"""
    # Register models on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


def get_db(request: Request) -> Iterator[Session]:
    """Dependency to get a session from the app's session factory"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
