import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.errors import DatabaseError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def load_models() -> None:
    """Import every model module so Base.metadata knows all tables."""
    from app.models import (  # noqa: F401
        addon, audit_log, booking, coupon, expense, lead, payment, payment_method, photographer, reschedule,
    )


class Database:
    """Row-store handle. Built explicitly, initialised with init() and torn down with dispose()."""

    def __init__(self, url: str, **engine_kwargs: Any):
        self.url = url
        self.engine_kwargs = engine_kwargs
        self.engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and make_url(self.url).database in (None, "", ":memory:")

    def init(self, create_all: bool = False) -> "Database":
        if self.engine is not None:
            return self
        kwargs: dict[str, Any] = {"pool_pre_ping": True, **self.engine_kwargs}
        if self.is_sqlite:
            kwargs.setdefault("connect_args", {"check_same_thread": False})
            if self.is_memory:
                # one shared connection, otherwise each checkout sees an empty database
                kwargs.setdefault("poolclass", StaticPool)
            else:
                db_path = make_url(self.url).database
                os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)

        load_models()
        self.engine = create_engine(self.url, **kwargs)
        if self.is_sqlite:
            _configure_sqlite(self.engine, wal=not self.is_memory)
        self._session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        if create_all:
            Base.metadata.create_all(self.engine)
        logger.info("database_initialised", extra={"extra": {"dialect": self.engine.dialect.name}})
        return self

    def dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._session_factory = None

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database.init() has not been called")
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        db = self.session()
        try:
            yield db
        finally:
            db.close()


def _configure_sqlite(engine: Engine, wal: bool) -> None:
    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection, connection_record):  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, operation: str, **context: Any) -> Iterator[Session]:
    """Commit on success. Persistence failures roll back and surface as DatabaseError."""
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "db_operation_failed",
            exc_info=True,
            extra={"extra": {"operation": operation, **context}},
        )
        raise DatabaseError(f"{operation} failed", operation=operation, **context) from exc
    except Exception:
        db.rollback()
        raise
