"""Core database connection with ACID transaction support."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Iterator, Optional

from userapi.db.schema import SCHEMA_DDL
from userapi.errors import StoreError, StoreErrorKind, StoreUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate driver errors into tagged ``StoreError``s."""
    try:
        yield
    except sqlite3.IntegrityError as exc:
        raise StoreError(str(exc), kind=StoreErrorKind.CONSTRAINT) from exc
    except sqlite3.Error as exc:
        raise StoreError(str(exc)) from exc


class Database:
    """
    SQLite database wrapper with explicit ACID transaction support.

    Each thread gets its own connection to the same file, so SQLite's own
    locking is what isolates concurrent callers.  Schema bootstrap runs
    once per instance, guarded by a lock; ``close()`` releases every
    connection the instance opened.
    """

    def __init__(self, path: Optional[Path | str] = None, busy_timeout: Optional[float] = None):
        from userapi.config import get_db_config
        if path is None or busy_timeout is None:
            config = get_db_config()
            path = config.path if path is None else path
            busy_timeout = config.busy_timeout if busy_timeout is None else busy_timeout
        self.path: Path = Path(path)
        self.busy_timeout: float = busy_timeout
        self._local = threading.local()
        self._conns: list[sqlite3.Connection] = []
        self._conns_lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._initialized = False

    # -- connection lifecycle --------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def connection(self) -> sqlite3.Connection:
        conn: Optional[sqlite3.Connection] = getattr(self._local, "conn", None)
        if conn is None:
            self._ensure_dir()
            # Autocommit mode: BEGIN/COMMIT/ROLLBACK are issued explicitly.
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.busy_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._local.conn = conn
            with self._conns_lock:
                self._conns.append(conn)
        return conn

    def _discard_connection(self) -> None:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            return
        self._local.conn = None
        with self._conns_lock:
            if conn in self._conns:
                self._conns.remove(conn)
        conn.close()

    def close(self) -> None:
        with self._conns_lock:
            conns, self._conns = self._conns, []
        for conn in conns:
            conn.close()
        self._local = threading.local()
        self._initialized = False
        if conns:
            logger.debug(f"Closed {len(conns)} connection(s) to {self.path}")

    def init(self) -> None:
        """Open the database and create all tables (idempotent, runs once)."""
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            try:
                conn = self.connection()
                conn.execute("PRAGMA journal_mode = WAL")
                conn.executescript(SCHEMA_DDL)
            except (sqlite3.Error, OSError) as exc:
                logger.error(f"Database bootstrap failed for {self.path}: {exc}")
                self._discard_connection()
                raise StoreUnavailable(f"Cannot open database at {self.path}: {exc}") from exc
            self._initialized = True
            logger.info(f"Database ready at {self.path}")

    ensure_session = init

    # -- transaction helpers ---------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """ACID transaction: commits on success, rolls back on exception."""
        conn = self.connection()
        if conn.in_transaction:
            raise StoreError("Nested transactions are not supported")
        with _store_errors():
            conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            with _store_errors():
                conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                try:
                    conn.execute("ROLLBACK")
                except sqlite3.Error:
                    logger.exception("Rollback failed; discarding connection")
                    self._discard_connection()
            raise

    # -- low-level query helpers -----------------------------------------------

    def execute(
        self, sql: str, params: tuple = (), conn: Optional[sqlite3.Connection] = None
    ) -> sqlite3.Cursor:
        with _store_errors():
            return (conn or self.connection()).execute(sql, params)

    def fetchone(
        self, sql: str, params: tuple = (), conn: Optional[sqlite3.Connection] = None
    ) -> Optional[dict[str, Any]]:
        with _store_errors():
            row = (conn or self.connection()).execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetchall(
        self, sql: str, params: tuple = (), conn: Optional[sqlite3.Connection] = None
    ) -> list[dict[str, Any]]:
        with _store_errors():
            rows = (conn or self.connection()).execute(sql, params).fetchall()
        return [dict(r) for r in rows]


@contextmanager
def open_database(path: Optional[Path | str] = None) -> Generator[Database, None, None]:
    """Open and initialise a Database for the duration of a ``with`` block."""
    db = Database(path)
    try:
        db.init()
        yield db
    finally:
        db.close()


# -- module singleton ----------------------------------------------------------

_default_db: Optional[Database] = None
_default_lock = threading.Lock()


def get_db(path: Optional[Path] = None) -> Database:
    """Return (and lazily initialise) the module-level Database singleton."""
    global _default_db
    with _default_lock:
        if _default_db is None:
            db = Database(path)
            db.init()
            _default_db = db
        return _default_db


def reset_db() -> None:
    """Close and discard the singleton (useful in tests)."""
    global _default_db
    with _default_lock:
        if _default_db is not None:
            _default_db.close()
            _default_db = None
