"""
Module: stock_kernel.db.engine
Responsibility: SQLAlchemy engine construction, session factory management,
    and the transactional scope used by every unit of work.  A ``Database``
    is an explicitly constructed storage handle: callers create one, inject
    it into the services, and ``dispose()`` it at shutdown.
Architecture position: Kernel > DB.  May import from db/base.py and the
    kernel exceptions.  Imports models/ only inside create_tables/drop_tables.

Invariants enforced:
    - PostgreSQL: READ COMMITTED isolation with explicit row-level locking
      (SELECT ... FOR UPDATE) on every stock-affecting read.
    - SQLite: every transaction opens with BEGIN IMMEDIATE, so writers
      serialize on the database lock; foreign keys are switched on per
      connection.  FOR UPDATE is not rendered on SQLite.
    - SQLite: the parent directory of a file-backed database is created on
      construction.
    - session_scope() commits on success and rolls back on any exception;
      success is only reported after commit returns.

Failure modes:
    - StorageUnavailableError when the driver reports an operational or
      interface failure (connection lost, database locked past the busy
      timeout).  The unit of work has been rolled back.
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.exceptions import StockKernelError, StorageUnavailableError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _ensure_sqlite_directory(database: str | None) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    parent = Path(database).parent
    if not parent.exists():
        parent.mkdir(parents=True, exist_ok=True)
        logger.info("sqlite_directory_created", extra={"path": str(parent)})


def _install_sqlite_locking(engine: Engine) -> None:
    """Take over SQLite transaction control so each unit of work is exclusive."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's own BEGIN handling; the "begin" hook emits it.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    Storage handle: one engine plus its session factory.

    Contract:
        Constructed once per process (or per test) from a database URL.
        Services receive the handle and open units of work with
        ``session_scope()``; ledgers receive the resulting Session.

    Guarantees:
        - ``session_scope()`` yields a Session inside one transaction and
          commits or rolls back as a whole.
        - ``dispose()`` releases all pooled connections.
    """

    def __init__(
        self,
        database_url: str,
        *,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
        sqlite_busy_timeout: float = 30.0,
    ):
        url = make_url(database_url)
        self.dialect_name = url.get_backend_name()

        if self.dialect_name == "sqlite":
            _ensure_sqlite_directory(url.database)
            self.engine = create_engine(
                url,
                echo=echo,
                connect_args={
                    "check_same_thread": False,
                    "timeout": sqlite_busy_timeout,
                },
            )
            _install_sqlite_locking(self.engine)
        else:
            self.engine = create_engine(
                url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=pool_pre_ping,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                isolation_level="READ COMMITTED",
            )

        self.session_factory: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False
        )

        logger.info(
            "engine_initialized",
            extra={
                "dialect": self.dialect_name,
                "echo": echo,
            },
        )

    def session(self) -> Session:
        """Get a new session bound to this database."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit, session is committed and closed.
            On exception, session is rolled back and closed.  Driver-level
            operational failures are re-raised as StorageUnavailableError;
            everything else is re-raised unchanged.

        Usage:
            with database.session_scope() as session:
                ledger = ItemLedger(session, clock)
                ...
        """
        session = self.session()
        logger.debug("transaction_started")
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except (OperationalError, InterfaceError) as exc:
            self._rollback_after_storage_failure(session)
            logger.error("transaction_storage_failure", exc_info=True)
            raise StorageUnavailableError(str(exc.orig or exc)) from exc
        except StockKernelError as exc:
            session.rollback()
            logger.info(
                "transaction_rolled_back",
                extra={"error_code": exc.code},
            )
            raise
        except Exception:
            session.rollback()
            logger.warning("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    @staticmethod
    def _rollback_after_storage_failure(session: Session) -> None:
        try:
            session.rollback()
        except SQLAlchemyError:
            # Connection is already gone; closing the session discards it.
            logger.warning("rollback_failed_after_storage_failure", exc_info=True)

    def create_tables(self) -> None:
        """Create all tables defined in the models."""
        from stock_kernel.db.base import Base
        import stock_kernel.models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("tables_created", extra={"dialect": self.dialect_name})

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution - primarily for testing."""
        from stock_kernel.db.base import Base
        import stock_kernel.models  # noqa: F401

        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Release all pooled connections."""
        self.engine.dispose()
