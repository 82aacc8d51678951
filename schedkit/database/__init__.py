"""
Database engine, session factory, and metadata for the reference schedule store.
"""

from __future__ import annotations

from functools import lru_cache
import logging
from typing import Any, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import SchedulingConfig, get_scheduling_config

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(config: Optional[SchedulingConfig] = None, url: Optional[str] = None) -> Engine:
    """Create an engine for the configured database URL."""
    config = config or get_scheduling_config()
    database_url = url or config.database_url
    kwargs: dict[str, Any] = {"echo": config.database_echo, "future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
    logger.info("Creating database engine for dialect %s", database_url.split(":", 1)[0])
    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@lru_cache(maxsize=1)
def _default_session_factory() -> sessionmaker:
    engine = create_db_engine()
    Base.metadata.create_all(bind=engine)
    return create_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a session from the default factory and always close it."""
    db = _default_session_factory()()
    try:
        yield db
    finally:
        db.close()
