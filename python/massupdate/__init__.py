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

"""Massupdate - compare ways of running a mass UPDATE.

Usage:
    import random
    from massupdate import Bench, CATALOGUE, WorkloadGenerator, open_store, prepare_table

    store = open_store("stoolap", ":memory:")
    rng = random.Random(0)
    prepare_table(store, rng, 100_000)

    bench = Bench(store, WorkloadGenerator(rng, 100_000))
    bench.run(CATALOGUE["row-param"])          # baseline, ratio 1.0
    bench.run(CATALOGUE["tx-text"], 100)       # BenchmarkReport(..., ratio=...)
    store.close()

Command line:
    python -m massupdate --backend sqlite
"""

from massupdate.bench import Bench, BenchmarkReport, Fatal, Result, format_report
from massupdate.plan import DEFAULT_PLAN, run_plan, select_plan
from massupdate.schema import create_schema, fill_table, prepare_table
from massupdate.store import (
    MassUpdateError,
    PreparedHandle,
    Store,
    StoreError,
    Transaction,
    open_store,
)
from massupdate.strategies import CATALOGUE, Strategy
from massupdate.workload import WorkloadGenerator

__all__ = [
    "Bench",
    "BenchmarkReport",
    "Fatal",
    "Result",
    "format_report",
    "DEFAULT_PLAN",
    "run_plan",
    "select_plan",
    "create_schema",
    "fill_table",
    "prepare_table",
    "MassUpdateError",
    "PreparedHandle",
    "Store",
    "StoreError",
    "Transaction",
    "open_store",
    "CATALOGUE",
    "Strategy",
    "WorkloadGenerator",
]
