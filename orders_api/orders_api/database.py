"""Engine and transaction handling for the record store."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .logger import logger
from .models import Base


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself instead of pysqlite's lazy one.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_immediate(connection):
    # SQLite ignores FOR UPDATE; take the write lock when the transaction starts.
    connection.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Owns the SQLAlchemy engine and hands out transactional sessions.

    Every call to :meth:`session_scope` is one transaction: it commits when
    the block exits normally and rolls back when the block raises.
    Objects stay readable after commit so callers can build responses from
    them. On SQLite, where row locks do not exist, every transaction opens
    with ``BEGIN IMMEDIATE`` so concurrent writers run one at a time.
    """

    def __init__(self, url: str, echo: bool = False):
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = 30
        self._engine: Engine = create_engine(url, echo=echo, pool_pre_ping=True, connect_args=connect_args)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine, "connect", _configure_sqlite_connection)
            event.listen(self._engine, "begin", _begin_sqlite_immediate)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_all(self) -> None:
        """Create any missing tables."""
        Base.metadata.create_all(self._engine)
        logger.info("Record store schema ensured")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            return False

    def dispose(self) -> None:
        self._engine.dispose()
