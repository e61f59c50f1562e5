"""
Database engine and session scopes.

One transaction per unit of work: CLI commands use `get_db()` as a context
manager, API requests get the same scope through `get_db_dependency`.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from db.models import Base

logger = logging.getLogger(__name__)


def make_engine(url: str, echo: bool = False) -> Engine:
    # FastAPI runs sync handlers on a threadpool; SQLite connections must be shareable.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, echo=echo)


engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# autoflush is off: helpers call session.flush() before reading generated ids.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Optional[Engine] = None) -> None:
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database ready at {bind.url.render_as_string(hide_password=True)}")


@contextmanager
def session_scope(factory: Callable[[], Session] = SessionLocal) -> Generator[Session, None, None]:
    """Commit when the block finishes, roll back if it raises."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("Transaction rolled back")
        raise
    finally:
        session.close()


# CLI entry points: `with get_db() as session: ...`
get_db = session_scope


def get_db_dependency() -> Generator[Session, None, None]:
    """FastAPI dependency wrapping the request in `session_scope`."""
    with session_scope() as session:
        yield session
