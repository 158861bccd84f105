from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from intake.config import get_settings
from intake.criteria import CRITERIA_CATALOGUE
from intake.models import Base, Criterion

_ENGINES: dict[str, Engine] = {}
_SESSIONS: dict[str, sessionmaker[Session]] = {}


def get_engine(db_url: str | None = None) -> Engine:
    target_url = db_url or get_settings().database_url
    if target_url not in _ENGINES:
        connect_args = {"check_same_thread": False} if target_url.startswith("sqlite") else {}
        _ENGINES[target_url] = create_engine(target_url, connect_args=connect_args)
    return _ENGINES[target_url]


def get_session_factory(db_url: str | None = None) -> sessionmaker[Session]:
    target_url = db_url or get_settings().database_url
    if target_url not in _SESSIONS:
        _SESSIONS[target_url] = sessionmaker(
            bind=get_engine(target_url),
            autoflush=False,
            expire_on_commit=False,
        )
    return _SESSIONS[target_url]


def init_db(db_url: str | None = None) -> None:
    if db_url is None:
        settings = get_settings()
        Path(settings.database_path).parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_url)
    Base.metadata.create_all(engine)
    with session_scope(db_url) as session:
        seed_criteria(session)


def dispose_engines() -> None:
    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()
    _SESSIONS.clear()


@contextmanager
def session_scope(db_url: str | None = None) -> Iterator[Session]:
    """Context manager providing a transactional session scope.

    Usage (CLI, scripts, etc.)::

        with session_scope() as session:
            ...
    """
    session = get_session_factory(db_url)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """All-or-nothing unit of writes on an open session.

    Pending work must be committed before entering: on failure everything since
    the last commit is rolled back and the error re-raised; on success the
    scoped writes are committed once.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def seed_criteria(session: Session) -> int:
    """Seed the criterion catalogue if the table is empty. Returns rows added."""
    count = session.execute(select(func.count()).select_from(Criterion)).scalar_one()
    if count > 0:
        return 0
    for name, pillar in CRITERIA_CATALOGUE.items():
        session.add(Criterion(name=name, pillar=str(pillar)))
    session.flush()
    return len(CRITERIA_CATALOGUE)
