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

"""Store adapter tests."""

import sqlite3
import sys

import pytest
from massupdate.store import (
    POSTGRES,
    SQLITE,
    STOOLAP,
    PostgresStore,
    SqliteStore,
    StoolapStore,
    StoolapTransaction,
    StoreError,
    open_store,
)


@pytest.fixture(params=["sqlite", "stoolap"])
def store(request):
    s = open_store(request.param, ":memory:")
    s.exec("CREATE TABLE t (id INTEGER PRIMARY KEY, n INTEGER NOT NULL)")
    yield s
    s.close()


def ph(store, n):
    return store.dialect.placeholder(n)


def test_placeholders():
    assert STOOLAP.placeholders(3) == "$1, $2, $3"
    assert SQLITE.placeholders(2) == "?, ?"
    assert POSTGRES.placeholders(2) == "%s, %s"
    assert SQLITE.placeholders(0) == ""


def test_open_store_unknown_backend():
    with pytest.raises(ValueError):
        open_store("oracle", "")


def test_open_store_types():
    s = open_store("sqlite", ":memory:")
    assert isinstance(s, SqliteStore)
    s.close()
    s = open_store("stoolap", ":memory:")
    assert isinstance(s, StoolapStore)
    s.close()


def test_execute_returns_affected_rows(store):
    store.execute(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})", [1, 0])
    store.execute(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})", [2, 0])
    changes = store.execute("UPDATE t SET n = n + 1")
    assert changes == 2
    assert store.query_rows("SELECT id, n FROM t ORDER BY id") == [(1, 1), (2, 1)]


def test_query_value(store):
    assert store.query_value("SELECT COUNT(*) FROM t") == 0
    assert store.query_value(f"SELECT n FROM t WHERE id = {ph(store, 1)}", [9]) is None


def test_prepared_reuse(store):
    with store.prepare(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})") as stmt:
        for i in range(10):
            stmt.execute([i, i * 2])
    assert store.query_value("SELECT SUM(n) FROM t") == 90


def test_commit(store):
    tx = store.begin()
    tx.execute(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})", [1, 5])
    tx.commit()
    assert tx.finished
    assert store.query_value("SELECT n FROM t") == 5


def test_rollback_after_commit_is_noop(store):
    tx = store.begin()
    tx.execute(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})", [1, 5])
    tx.commit()
    tx.rollback()
    assert store.query_value("SELECT COUNT(*) FROM t") == 1


def test_double_commit_raises(store):
    tx = store.begin()
    tx.commit()
    with pytest.raises(StoreError):
        tx.commit()


def test_context_manager_rolls_back_without_commit(store):
    with store.begin() as tx:
        tx.execute(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})", [1, 5])
    assert tx.finished
    assert store.query_value("SELECT COUNT(*) FROM t") == 0


def test_context_manager_rolls_back_on_exception(store):
    with pytest.raises(ValueError):
        with store.begin() as tx:
            tx.execute(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})", [1, 5])
            raise ValueError("test error")
    assert store.query_value("SELECT COUNT(*) FROM t") == 0


def test_context_manager_keeps_commit(store):
    with store.begin() as tx:
        tx.execute(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})", [1, 5])
        tx.commit()
    assert store.query_value("SELECT COUNT(*) FROM t") == 1


def test_prepare_inside_transaction(store):
    with store.begin() as tx:
        with tx.prepare(f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})") as stmt:
            stmt.execute([1, 1])
            stmt.execute([2, 1])
        tx.commit()
    assert store.query_value("SELECT COUNT(*) FROM t") == 2


def test_error_names_operation(store):
    with pytest.raises(StoreError) as info:
        store.execute("SELECTX * FROM nowhere")
    assert info.value.operation == "execute"
    assert info.value.sql == "SELECTX * FROM nowhere"
    assert "execute failed" in str(info.value)
    assert info.value.__cause__ is not None


def test_sqlite_error_is_chained():
    s = SqliteStore.open(":memory:")
    with pytest.raises(StoreError) as info:
        s.query_rows("SELECT * FROM missing")
    assert isinstance(info.value.__cause__, sqlite3.Error)
    assert info.value.operation == "query"
    s.close()


def test_duplicate_key_in_transaction_is_store_error(store):
    sql = f"INSERT INTO t VALUES ({ph(store, 1)}, {ph(store, 2)})"
    store.execute(sql, [1, 0])
    with pytest.raises(StoreError):
        with store.begin() as tx:
            tx.execute(sql, [2, 0])
            tx.execute(sql, [1, 0])
            tx.commit()
    assert store.query_value("SELECT COUNT(*) FROM t") == 1


def test_store_context_manager_closes():
    with SqliteStore.open(":memory:") as s:
        s.execute("CREATE TABLE x (id INTEGER)")
    with pytest.raises(StoreError):
        s.execute("SELECT 1")


def test_ddl_inside_transaction(store):
    with store.begin() as tx:
        tx.execute("CREATE TABLE u (id INTEGER)")
        tx.execute(f"INSERT INTO u VALUES ({ph(store, 1)})", [1])
        assert tx.execute("UPDATE u SET id = id + 1") == 1
        tx.execute("DROP TABLE u")
        tx.commit()
    with pytest.raises(StoreError):
        store.execute("SELECT * FROM u")


def test_postgres_without_psycopg(monkeypatch):
    monkeypatch.setitem(sys.modules, "psycopg", None)
    with pytest.raises(StoreError) as info:
        open_store("postgres", "dbname=nowhere")
    assert info.value.operation == "open"
    assert "psycopg is not installed" in str(info.value)
    assert isinstance(info.value.__cause__, ImportError)
    assert PostgresStore.errors == ()


# --- stoolap transaction statements ---


class FakeTx:
    def __init__(self):
        self.batches = []
        self.committed = False
        self.rolled_back = False

    def execute_batch(self, sql, params_list):
        self.batches.append((sql, params_list))
        return len(params_list)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True


def test_stoolap_tx_statement_sends_one_batch():
    fake = FakeTx()
    tx = StoolapTransaction(fake)
    with tx.prepare("UPDATE t SET n = n + 1 WHERE id = $1") as stmt:
        stmt.execute([1])
        stmt.execute([2])
        stmt.execute([2])
        assert fake.batches == []
        assert stmt.pending == 3
    assert fake.batches == [("UPDATE t SET n = n + 1 WHERE id = $1", [[1], [2], [2]])]
    tx.commit()
    assert fake.committed


def test_stoolap_commit_flushes_open_statement():
    fake = FakeTx()
    tx = StoolapTransaction(fake)
    stmt = tx.prepare("UPDATE t SET n = 0 WHERE id = $1")
    stmt.execute([7])
    tx.commit()
    assert fake.batches == [("UPDATE t SET n = 0 WHERE id = $1", [[7]])]
    assert fake.committed


def test_stoolap_tx_statement_discards_on_error():
    fake = FakeTx()
    with pytest.raises(RuntimeError):
        with StoolapTransaction(fake) as tx:
            with tx.prepare("UPDATE t SET n = 0 WHERE id = $1") as stmt:
                stmt.execute([7])
                raise RuntimeError("boom")
    assert fake.batches == []
    assert fake.rolled_back


def test_stoolap_batch_failure_rolls_back():
    s = StoolapStore.open(":memory:")
    s.exec("CREATE TABLE t (id INTEGER PRIMARY KEY, n INTEGER NOT NULL)")
    with pytest.raises(StoreError) as info:
        with s.begin() as tx:
            with tx.prepare("INSERT INTO t VALUES ($1, $2)") as stmt:
                stmt.execute([1, 0])
                stmt.execute([1, 0])
            tx.commit()
    assert info.value.operation == "batch execute"
    assert s.query_value("SELECT COUNT(*) FROM t") == 0
    s.close()
