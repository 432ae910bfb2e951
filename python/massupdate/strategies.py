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

"""Mass UPDATE strategies.

Each strategy applies ``mark = mark + 1`` to the rows named by a sorted
workload and returns a description of its design point. They differ only
in how statements are built (literal text, bound parameters, prepared
handles), how rows are grouped per statement, and whether everything runs
in one explicit transaction.

A strategy that opens a transaction relies on the store's rollback-by-
default scope: any error before commit() leaves the table untouched.
"""

from typing import Dict, Iterator, List, Sequence

from massupdate.config import STAGING_TABLE, TABLE
from massupdate.store import Store

UPDATE_PREFIX = f"UPDATE {TABLE} SET mark=mark+1 WHERE rid"


def groups(rids: Sequence[int], portion: int) -> Iterator[Sequence[int]]:
    """Consecutive groups of at most portion ids; the last one may be short."""
    for i in range(0, len(rids), portion):
        yield rids[i:i + portion]


def full_groups(rids: Sequence[int], arity: int) -> Iterator[Sequence[int]]:
    """Consecutive groups of exactly arity ids; a shorter tail is dropped."""
    for i in range(0, len(rids) - arity + 1, arity):
        yield rids[i:i + arity]


def literal_list(rids: Sequence[int]) -> str:
    return ",".join(str(int(rid)) for rid in rids)


class Strategy:
    """One way of executing the mass update."""

    key: str = ""
    uses_portion = False

    def describe(self, portion: int = 0) -> str:
        raise NotImplementedError

    def run(self, store: Store, rids: Sequence[int], portion: int = 0) -> str:
        if self.uses_portion and portion < 1:
            raise ValueError(f"{self.key}: portion must be >= 1 (got {portion})")
        if rids:
            self.apply(store, rids, portion)
        return self.describe(portion)

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"


class RowLiteral(Strategy):
    key = "row-literal"

    def describe(self, portion: int = 0) -> str:
        return "Per row, autocommit, literal SQL"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        for rid in rids:
            store.execute(f"{UPDATE_PREFIX}={int(rid)}")


class RowParam(Strategy):
    key = "row-param"

    def describe(self, portion: int = 0) -> str:
        return "Per row, autocommit, bound parameter, no prepare"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        sql = f"{UPDATE_PREFIX}={store.dialect.placeholder(1)}"
        for rid in rids:
            store.execute(sql, [rid])


class RowPrepared(Strategy):
    key = "row-prepared"

    def describe(self, portion: int = 0) -> str:
        return "Per row, autocommit, prepared parameter"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        with store.prepare(f"{UPDATE_PREFIX}={store.dialect.placeholder(1)}") as stmt:
            for rid in rids:
                stmt.execute([rid])


class TxRowPrepared(Strategy):
    key = "tx-row-prepared"

    def describe(self, portion: int = 0) -> str:
        return "Single transaction, per row, prepared"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        with store.begin() as tx:
            with tx.prepare(f"{UPDATE_PREFIX}={store.dialect.placeholder(1)}") as stmt:
                for rid in rids:
                    stmt.execute([rid])
            tx.commit()


class TxPreparedGroups(Strategy):
    """Prepared ``IN`` list of fixed arity.

    Only whole groups are executed: up to arity - 1 trailing ids of the
    workload are left unmutated. Known limitation, kept as is.
    """

    def __init__(self, arity: int):
        if arity < 1:
            raise ValueError(f"arity must be >= 1 (got {arity})")
        self.arity = arity
        self.key = f"tx-prepared-{arity}"

    def describe(self, portion: int = 0) -> str:
        return f"Single transaction, prepared IN lists of {self.arity}"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        sql = f"{UPDATE_PREFIX} IN ({store.dialect.placeholders(self.arity)})"
        with store.begin() as tx:
            with tx.prepare(sql) as stmt:
                for group in full_groups(rids, self.arity):
                    stmt.execute(list(group))
            tx.commit()


class TxTextGroups(Strategy):
    key = "tx-text"
    uses_portion = True

    def describe(self, portion: int = 0) -> str:
        return f"Single transaction, text IN lists of {portion}"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        with store.begin() as tx:
            for group in groups(rids, portion):
                tx.execute(f"{UPDATE_PREFIX} IN ({literal_list(group)})")
            tx.commit()


class TextGroups(Strategy):
    key = "text"
    uses_portion = True

    def describe(self, portion: int = 0) -> str:
        return f"Autocommit, text IN lists of {portion}"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        for group in groups(rids, portion):
            store.execute(f"{UPDATE_PREFIX} IN ({literal_list(group)})")


class StagingTable(Strategy):
    """Load ids into a temporary table, then update with one join.

    The join adds the number of staged copies of each id, so duplicates in
    the workload compound the same way they do for per-row updates.
    """

    key = "staging"
    uses_portion = True

    def describe(self, portion: int = 0) -> str:
        return f"Staging table, inserts of {portion} rows, one join update"

    def apply(self, store: Store, rids: Sequence[int], portion: int) -> None:
        dialect = store.dialect
        with store.begin() as tx:
            tx.execute(dialect.staging_create.format(staging=STAGING_TABLE))
            for group in groups(rids, portion):
                values = ", ".join(f"({int(rid)})" for rid in group)
                tx.execute(f"INSERT INTO {STAGING_TABLE} (rid) VALUES {values}")
            tx.execute(dialect.staging_update.format(table=TABLE, staging=STAGING_TABLE))
            if dialect.staging_drop:
                tx.execute(dialect.staging_drop.format(staging=STAGING_TABLE))
            tx.commit()


def build_catalogue() -> Dict[str, Strategy]:
    strategies: List[Strategy] = [
        RowLiteral(),
        RowParam(),
        RowPrepared(),
        TxRowPrepared(),
        TxPreparedGroups(4),
        TxPreparedGroups(8),
        TxTextGroups(),
        TextGroups(),
        StagingTable(),
    ]
    return {s.key: s for s in strategies}


CATALOGUE = build_catalogue()
