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

"""Table creation and seed data."""

import logging
import random
import time

from massupdate.config import FILL_BATCH, TABLE
from massupdate.store import Store

logger = logging.getLogger(__name__)

SCHEMA = [
    f"DROP TABLE IF EXISTS {TABLE}",
    f"""CREATE TABLE {TABLE} (
        rid INTEGER NOT NULL PRIMARY KEY,
        code INTEGER NOT NULL,
        name TEXT NOT NULL,
        mark INTEGER NOT NULL
    )""",
    f"CREATE INDEX idx_code ON {TABLE} (code)",
    f"CREATE UNIQUE INDEX idx_code_name ON {TABLE} (code, name)",
]


def create_schema(store: Store) -> None:
    for sql in SCHEMA:
        store.exec(sql)


def random_name(rng: random.Random) -> str:
    length = 15 + rng.randrange(15)
    return "".join(chr(0x61 + rng.randrange(26)) for _ in range(length))


def fill_table(store: Store, rng: random.Random, total_rows: int, batch: int = FILL_BATCH) -> None:
    """Insert total_rows rows with mark = 0 in one transaction."""
    with store.begin() as tx:
        rid = 0
        while rid < total_rows:
            values = []
            for _ in range(min(batch, total_rows - rid)):
                code = 100 + rng.randrange(900)
                values.append(f"({rid},{code},'{random_name(rng)}',0)")
                rid += 1
            tx.execute(f"INSERT INTO {TABLE} (rid, code, name, mark) VALUES " + ", ".join(values))
        tx.commit()


def prepare_table(store: Store, rng: random.Random, total_rows: int) -> float:
    """Create and populate the table; returns the fill time in ms."""
    create_schema(store)
    t0 = time.perf_counter()
    fill_table(store, rng, total_rows)
    elapsed_ms = (time.perf_counter() - t0) * 1000
    logger.info("Table filled (%d rows) in %.0f ms", total_rows, elapsed_ms)
    return elapsed_ms


def marks(store: Store) -> dict:
    """rid -> mark for every row that has been touched."""
    rows = store.query_rows(f"SELECT rid, mark FROM {TABLE} WHERE mark > 0 ORDER BY rid")
    return {rid: mark for rid, mark in rows}


def reset_marks(store: Store) -> int:
    return store.execute(f"UPDATE {TABLE} SET mark = 0 WHERE mark > 0")
