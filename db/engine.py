"""SQLAlchemy engine utilities."""

import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def database_path() -> Path:
    """Return ``PERIOD_DB_PATH`` if set, else ``periods.db`` in the working directory."""

    env_path = os.environ.get("PERIOD_DB_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return (Path.cwd() / "periods.db").resolve()


def get_engine(db_path: Path | None = None) -> Engine:
    """Return an engine bound to ``db_path`` (default :func:`database_path`)."""

    url = f"sqlite:///{db_path or database_path()}"
    return create_engine(
        url,
        connect_args={"check_same_thread": False},
        echo=False,
    )


def init_db(engine: Engine) -> Engine:
    """Create any missing tables on ``engine``."""

    from db import models  # noqa: F401 – side-effect import

    Base.metadata.create_all(engine)
    return engine
