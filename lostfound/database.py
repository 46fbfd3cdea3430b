# database.py
"""SQLAlchemy engine and declarative base for the local key/value store."""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from lostfound.settings import get_settings

logger = logging.getLogger(__name__)

# Declarative base for the models
Base = declarative_base()


# ============================================
# ENGINE
# ============================================

def create_storage_engine(url: str) -> Engine:
    """
    Create an engine for ``url``.

    SQLite connections may be shared with the uvicorn worker threads.
    """
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        echo=False,  # True to log SQL statements
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Engine for the configured STORAGE_URL, tables created on first use"""
    engine = create_storage_engine(get_settings().STORAGE_URL)
    init_db(engine)
    return engine


# ============================================
# TABLE INITIALIZATION
# ============================================

def init_db(engine: Optional[Engine] = None) -> None:
    """Create every table defined in the models"""
    # models register themselves on Base when imported
    from lostfound import models  # noqa: F401

    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.debug("Storage tables created/verified on %s", engine.url)
