"""Database and extension wiring for HabitLens."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from flask import Flask, current_app
from sqlmodel import Session

from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories.habit import SQLModelHabitRepository
from .logging_config import get_logger
from .services.habits import ensure_owner

logger = get_logger(__name__)

EXTENSION_KEY = "habitlens"


def init_db(app: Flask) -> None:
    """Create the engine, initialize the schema and bootstrap the owner account."""

    config: BaseConfig = app.config["HABITLENS_CONFIG"]
    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)
    owner = ensure_owner(session_factory, config.OWNER_USERNAME)

    app.extensions[EXTENSION_KEY] = {
        "engine": engine,
        "session_factory": session_factory,
        "owner_id": owner.id,
    }

    logger.info("Database ready", extra={"database_url": config.DATABASE_URL})


def _state() -> dict:
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError as exc:  # pragma: no cover - exercised only on misconfigured apps
        raise RuntimeError("Database engine not initialized") from exc


def get_engine():
    return _state()["engine"]


def get_repository() -> SQLModelHabitRepository:
    """Return a habit repository bound to the current app's engine."""
    return SQLModelHabitRepository(_state()["session_factory"])


def current_user_id() -> int:
    """Return the id of the user requests act on."""
    return _state()["owner_id"]


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope around operations."""

    session = Session(get_engine(), expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
