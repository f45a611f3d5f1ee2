"""SQLAlchemy engine and sessions built from the ``database`` config section."""

from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from chiffrage.adapters.outbound.sqlalchemy_models import Base

PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_URL = "sqlite:///data/chiffrage.db"
_SQLITE_PREFIX = "sqlite:///"


def resolve_database_url(url: str) -> str:
    """Anchor a relative SQLite file path on the chiffrage package directory.

    The parent directory of the file is created. Other URLs are returned as is.
    """
    if not url.startswith(_SQLITE_PREFIX):
        return url
    path = url[len(_SQLITE_PREFIX):]
    if not path or path == ":memory:" or os.path.isabs(path):
        return url
    path = os.path.join(PACKAGE_DIR, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return _SQLITE_PREFIX + path


def engine_from_config(config: dict, create_tables: bool = True) -> Engine:
    """Engine for ``database.url``; the tables are created unless told otherwise."""
    database = config.get("database", {})
    engine = create_engine(
        resolve_database_url(database.get("url") or DEFAULT_URL),
        echo=bool(database.get("echo", False)),
    )
    if create_tables:
        Base.metadata.create_all(engine)
    return engine


def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)
