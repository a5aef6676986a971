"""Engine binding for the directory database."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logger = logging.getLogger(__name__)

_DEFAULT_SQLITE_PATH = Path(__file__).resolve().parents[4] / "var" / "centerlink.db"

# Unbound until bind() runs; handlers only open sessions after startup.
SessionFactory = sessionmaker(expire_on_commit=False, class_=Session)

_engine: Optional[Engine] = None


def database_url() -> str:
    """``CENTERLINK_DB_URL`` if set, else a SQLite file at ``CENTERLINK_DB_PATH``."""

    explicit = os.getenv("CENTERLINK_DB_URL")
    if explicit:
        return explicit
    sqlite_path = Path(os.getenv("CENTERLINK_DB_PATH", str(_DEFAULT_SQLITE_PATH)))
    sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{sqlite_path}"


def bind(url: Optional[str] = None) -> Engine:
    """Point :data:`SessionFactory` at ``url``, replacing any previous engine."""

    global _engine
    if _engine is not None:
        _engine.dispose()
    target = url or database_url()
    connect_args = {"check_same_thread": False} if target.startswith("sqlite") else {}
    _engine = create_engine(target, future=True, connect_args=connect_args)
    SessionFactory.configure(bind=_engine)
    logger.info("Database bound to %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def init_db() -> Engine:
    """Create missing tables on the bound engine, binding from the environment first if needed."""

    engine = _engine if _engine is not None else bind()
    Base.metadata.create_all(engine)
    return engine


def dispose() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
