# Copyright 2025 Massupdate Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Store adapters.

Every backend exposes the same small surface:

    store = open_store("stoolap", ":memory:")
    store.execute("UPDATE testtbl SET mark=mark+1 WHERE rid=$1", [7])

    stmt = store.prepare("UPDATE testtbl SET mark=mark+1 WHERE rid=$1")
    stmt.execute([7])
    stmt.close()

    with store.begin() as tx:
        tx.execute(...)
        tx.commit()       # without this, leaving the block rolls back

Driver errors are re-raised as StoreError naming the failing operation.
"""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Type

from stoolap import Database, StoolapError

logger = logging.getLogger(__name__)

Params = Optional[Sequence[Any]]

STAGING_UPDATE_JOIN = (
    "UPDATE {table} SET mark = mark + s.n "
    "FROM (SELECT rid, COUNT(*) AS n FROM {staging} GROUP BY rid) AS s "
    "WHERE {table}.rid = s.rid"
)
STAGING_UPDATE_SUBQUERY = (
    "UPDATE {table} SET mark = mark + "
    "(SELECT COUNT(*) FROM {staging} WHERE {staging}.rid = {table}.rid) "
    "WHERE rid IN (SELECT rid FROM {staging})"
)


class MassUpdateError(Exception):
    """Base error for the benchmark harness."""


class StoreError(MassUpdateError):
    """A statement or transaction-control call failed."""

    def __init__(self, operation: str, sql: Optional[str] = None, detail: str = ""):
        self.operation = operation
        self.sql = sql
        self.detail = detail
        message = f"{operation} failed"
        if detail:
            message += f": {detail}"
        if sql:
            message += f" [{sql[:120]}]"
        super().__init__(message)


@contextmanager
def translate(errors: Tuple[Type[BaseException], ...], operation: str, sql: Optional[str] = None) -> Iterator[None]:
    try:
        yield
    except errors as exc:
        raise StoreError(operation, sql, str(exc)) from exc


@dataclass(frozen=True)
class Dialect:
    """SQL differences between backends."""

    name: str
    param_marker: str
    staging_create: str
    staging_drop: Optional[str]
    staging_update: str

    def placeholder(self, n: int) -> str:
        return self.param_marker.format(n=n)

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder(n) for n in range(1, count + 1))


STOOLAP = Dialect(
    name="stoolap",
    param_marker="${n}",
    staging_create="CREATE TABLE {staging} (rid INTEGER)",
    staging_drop="DROP TABLE {staging}",
    staging_update=STAGING_UPDATE_SUBQUERY,
)

SQLITE = Dialect(
    name="sqlite",
    param_marker="?",
    staging_create="CREATE TEMP TABLE {staging} (rid INTEGER)",
    staging_drop="DROP TABLE temp.{staging}",
    staging_update=STAGING_UPDATE_JOIN,
)

POSTGRES = Dialect(
    name="postgres",
    param_marker="%s",
    staging_create="CREATE TEMP TABLE {staging} (rid INTEGER) ON COMMIT DROP",
    staging_drop=None,
    staging_update=STAGING_UPDATE_JOIN,
)


class PreparedHandle:
    """A statement parsed once and executed many times."""

    sql: str

    def execute(self, params: Params = None) -> int:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "PreparedHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class Transaction:
    """Explicit transaction whose default outcome is rollback.

    Used as a context manager, leaving the block without a successful
    commit() rolls back. rollback() after commit() is a no-op.
    """

    def __init__(self) -> None:
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def execute(self, sql: str, params: Params = None) -> int:
        raise NotImplementedError

    def prepare(self, sql: str) -> PreparedHandle:
        raise NotImplementedError

    def commit(self) -> None:
        if self._finished:
            raise StoreError("commit", detail="transaction already finished")
        self._commit()
        self._finished = True

    def rollback(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._rollback()

    def _commit(self) -> None:
        raise NotImplementedError

    def _rollback(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.rollback()
        return False


class Store:
    """One connection to the relational store."""

    dialect: Dialect
    driver: str = ""

    def execute(self, sql: str, params: Params = None) -> int:
        raise NotImplementedError

    def exec(self, sql: str) -> None:
        """Run a parameterless statement such as DDL."""
        self.execute(sql)

    def prepare(self, sql: str) -> PreparedHandle:
        raise NotImplementedError

    def begin(self) -> Transaction:
        raise NotImplementedError

    def query_rows(self, sql: str, params: Params = None) -> list:
        """All result rows as tuples."""
        raise NotImplementedError

    def query_value(self, sql: str, params: Params = None) -> Any:
        """First column of the first row, or None."""
        rows = self.query_rows(sql, params)
        return rows[0][0] if rows else None

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.driver})"


# ============================================================
# Stoolap
# ============================================================

_STOOLAP_ERRORS = (StoolapError,)


class StoolapPrepared(PreparedHandle):
    __slots__ = ("_stmt", "sql")

    def __init__(self, stmt, sql: str):
        self._stmt = stmt
        self.sql = sql

    def execute(self, params: Params = None) -> int:
        with translate(_STOOLAP_ERRORS, "prepared execute", self.sql):
            return self._stmt.execute(params)

    def close(self) -> None:
        self._stmt = None


class StoolapTxStatement(PreparedHandle):
    """Statement reused inside a stoolap transaction.

    stoolap transactions have no prepare(). Parameter sets are queued and
    sent as one execute_batch() call, which parses the text once, when the
    handle is closed or the transaction commits. execute() returns 0.
    """

    __slots__ = ("_tx", "sql", "_pending")

    def __init__(self, tx: "StoolapTransaction", sql: str):
        self._tx = tx
        self.sql = sql
        self._pending: List[list] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def execute(self, params: Params = None) -> int:
        self._pending.append(list(params or ()))
        return 0

    def flush(self) -> int:
        """Send the queued parameter sets; returns the affected row count."""
        if not self._pending:
            return 0
        batch, self._pending = self._pending, []
        return self._tx.execute_batch(self.sql, batch)

    def close(self) -> None:
        if self._tx is not None:
            try:
                self.flush()
            finally:
                self._tx.forget(self)
                self._tx = None

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            self._pending = []
        self.close()
        return False


class StoolapTransaction(Transaction):
    def __init__(self, tx):
        super().__init__()
        self._tx = tx
        self._statements: List[StoolapTxStatement] = []

    def execute(self, sql: str, params: Params = None) -> int:
        with translate(_STOOLAP_ERRORS, "execute", sql):
            return self._tx.execute(sql, params)

    def execute_batch(self, sql: str, params_list: List[list]) -> int:
        with translate(_STOOLAP_ERRORS, "batch execute", sql):
            return self._tx.execute_batch(sql, params_list)

    def prepare(self, sql: str) -> PreparedHandle:
        stmt = StoolapTxStatement(self, sql)
        self._statements.append(stmt)
        return stmt

    def forget(self, stmt: StoolapTxStatement) -> None:
        self._statements.remove(stmt)

    def _commit(self) -> None:
        for stmt in self._statements:
            stmt.flush()
        with translate(_STOOLAP_ERRORS, "commit"):
            self._tx.commit()

    def _rollback(self) -> None:
        self._statements = []
        with translate(_STOOLAP_ERRORS, "rollback"):
            self._tx.rollback()


class StoolapStore(Store):
    dialect = STOOLAP
    driver = "stoolap"

    def __init__(self, db: Database):
        self._db = db

    @classmethod
    def open(cls, path: str = ":memory:") -> "StoolapStore":
        with translate(_STOOLAP_ERRORS, "open"):
            return cls(Database.open(path))

    def execute(self, sql: str, params: Params = None) -> int:
        with translate(_STOOLAP_ERRORS, "execute", sql):
            return self._db.execute(sql, params)

    def exec(self, sql: str) -> None:
        with translate(_STOOLAP_ERRORS, "exec", sql):
            self._db.exec(sql)

    def prepare(self, sql: str) -> PreparedHandle:
        with translate(_STOOLAP_ERRORS, "prepare", sql):
            return StoolapPrepared(self._db.prepare(sql), sql)

    def begin(self) -> Transaction:
        with translate(_STOOLAP_ERRORS, "begin"):
            return StoolapTransaction(self._db.begin())

    def query_rows(self, sql: str, params: Params = None) -> list:
        with translate(_STOOLAP_ERRORS, "query", sql):
            raw = self._db.query_raw(sql, params)
        return [tuple(row) for row in raw["rows"]]

    def close(self) -> None:
        with translate(_STOOLAP_ERRORS, "close"):
            self._db.close()


# ============================================================
# DB-API drivers (sqlite3, psycopg)
# ============================================================


class DbApiPrepared(PreparedHandle):
    """Dedicated cursor reused with one statement text."""

    def __init__(self, store: "DbApiStore", sql: str):
        self._store = store
        self._cursor = store._cursor_for("prepare", sql)
        self.sql = sql

    def execute(self, params: Params = None) -> int:
        with translate(self._store.errors, "prepared execute", self.sql):
            self._cursor.execute(self.sql, params or (), **self._store.prepare_options)
            return self._cursor.rowcount

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None


class DbApiTransaction(Transaction):
    """BEGIN/COMMIT/ROLLBACK issued on an autocommit connection."""

    def __init__(self, store: "DbApiStore"):
        super().__init__()
        self._store = store
        store._control("BEGIN")

    def execute(self, sql: str, params: Params = None) -> int:
        return self._store.execute(sql, params)

    def prepare(self, sql: str) -> PreparedHandle:
        return self._store.prepare(sql)

    def _commit(self) -> None:
        self._store._control("COMMIT")

    def _rollback(self) -> None:
        self._store._control("ROLLBACK")


class DbApiStore(Store):
    errors: Tuple[Type[BaseException], ...] = ()
    # keyword arguments for cursor.execute() on the plain and prepared paths
    execute_options: dict = {}
    prepare_options: dict = {}

    def __init__(self, conn, errors: Optional[Tuple[Type[BaseException], ...]] = None):
        if errors is not None:
            self.errors = errors
        self._conn = conn
        self._cursor = self._cursor_for("open")

    def _cursor_for(self, operation: str, sql: Optional[str] = None):
        with translate(self.errors, operation, sql):
            return self._conn.cursor()

    def _control(self, sql: str) -> None:
        with translate(self.errors, sql.lower(), sql):
            self._cursor.execute(sql, **self.execute_options)

    def execute(self, sql: str, params: Params = None) -> int:
        with translate(self.errors, "execute", sql):
            self._cursor.execute(sql, params or (), **self.execute_options)
            return self._cursor.rowcount

    def prepare(self, sql: str) -> PreparedHandle:
        return DbApiPrepared(self, sql)

    def begin(self) -> Transaction:
        return DbApiTransaction(self)

    def query_rows(self, sql: str, params: Params = None) -> list:
        with translate(self.errors, "query", sql):
            self._cursor.execute(sql, params or (), **self.execute_options)
            return [tuple(row) for row in self._cursor.fetchall()]

    def close(self) -> None:
        with translate(self.errors, "close"):
            self._cursor.close()
            self._conn.close()


class SqliteStore(DbApiStore):
    dialect = SQLITE
    driver = "sqlite3"
    errors = (sqlite3.Error,)

    @classmethod
    def open(cls, path: str = ":memory:") -> "SqliteStore":
        with translate(cls.errors, "open"):
            # isolation_level=None gives true autocommit
            conn = sqlite3.connect(path, isolation_level=None)
        return cls(conn)


class PostgresStore(DbApiStore):
    dialect = POSTGRES
    driver = "psycopg"
    # psycopg prepares any statement run prepare_threshold times; only
    # prepared handles may do so
    execute_options = {"prepare": False}
    prepare_options = {"prepare": True}

    @classmethod
    def open(cls, dsn: str) -> "PostgresStore":
        try:
            import psycopg
        except ImportError as exc:
            raise StoreError("open", detail="psycopg is not installed") from exc

        errors = (psycopg.Error,)
        with translate(errors, "open"):
            conn = psycopg.connect(dsn, autocommit=True)
        return cls(conn, errors)


def open_store(backend: str, dsn: str) -> Store:
    """Open a store for one of the configured backends."""
    if backend == "stoolap":
        store = StoolapStore.open(dsn)
    elif backend == "sqlite":
        store = SqliteStore.open(dsn)
    elif backend == "postgres":
        store = PostgresStore.open(dsn)
    else:
        raise ValueError(f"unknown backend {backend!r}")
    logger.info("Opened %s store (%s)", store.driver, backend)
    return store
