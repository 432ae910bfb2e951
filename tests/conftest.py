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

"""Shared fixtures: small seeded tables and a statement-recording store."""

import random

import pytest
from massupdate.schema import prepare_table
from massupdate.store import PreparedHandle, SqliteStore, Store, StoolapStore, StoreError, Transaction

ROWS = 500


class RecordingPrepared(PreparedHandle):
    def __init__(self, owner: "RecordingStore", inner: PreparedHandle):
        self._owner = owner
        self._inner = inner
        self.sql = inner.sql

    def execute(self, params=None) -> int:
        self._owner._record(self.sql)
        return self._inner.execute(params)

    def close(self) -> None:
        self._owner.closed_handles += 1
        self._inner.close()


class RecordingTransaction(Transaction):
    def __init__(self, owner: "RecordingStore", inner: Transaction):
        super().__init__()
        self._owner = owner
        self._inner = inner

    def execute(self, sql, params=None) -> int:
        self._owner._record(sql)
        return self._inner.execute(sql, params)

    def prepare(self, sql) -> PreparedHandle:
        return RecordingPrepared(self._owner, self._inner.prepare(sql))

    def _commit(self) -> None:
        self._owner.controls.append("COMMIT")
        self._inner.commit()

    def _rollback(self) -> None:
        self._owner.controls.append("ROLLBACK")
        self._inner.rollback()


class RecordingStore(Store):
    """Wraps a store, recording every executed statement.

    fail_at=n makes the n-th statement (1-based) raise StoreError.
    """

    def __init__(self, inner: Store, fail_at=None):
        self._inner = inner
        self.dialect = inner.dialect
        self.driver = inner.driver
        self.fail_at = fail_at
        self.statements = []
        self.controls = []
        self.closed_handles = 0

    def _record(self, sql: str) -> None:
        self.statements.append(sql)
        if self.fail_at is not None and len(self.statements) == self.fail_at:
            raise StoreError("execute", sql, "injected failure")

    def reset(self) -> None:
        self.statements.clear()
        self.controls.clear()

    def execute(self, sql, params=None) -> int:
        self._record(sql)
        return self._inner.execute(sql, params)

    def prepare(self, sql) -> PreparedHandle:
        return RecordingPrepared(self, self._inner.prepare(sql))

    def begin(self) -> Transaction:
        self.controls.append("BEGIN")
        return RecordingTransaction(self, self._inner.begin())

    def query_rows(self, sql, params=None) -> list:
        return self._inner.query_rows(sql, params)

    def close(self) -> None:
        self._inner.close()


def updates(store: RecordingStore) -> list:
    return [sql for sql in store.statements if sql.startswith("UPDATE")]


@pytest.fixture
def sqlite_store():
    store = SqliteStore.open(":memory:")
    prepare_table(store, random.Random(0), ROWS)
    yield store
    store.close()


@pytest.fixture
def stoolap_store():
    store = StoolapStore.open(":memory:")
    prepare_table(store, random.Random(0), ROWS)
    yield store
    store.close()


@pytest.fixture
def recording(sqlite_store):
    return RecordingStore(sqlite_store)
