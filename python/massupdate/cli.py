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

"""Mass UPDATE benchmark.

Run:  python -m massupdate [password] [--backend stoolap|sqlite|postgres]
"""

import argparse
import logging
import random
import sys
from typing import List, Optional

from massupdate import config
from massupdate.bench import Bench, Fatal
from massupdate.config import Settings
from massupdate.plan import DEFAULT_PLAN, run_plan, select_plan
from massupdate.schema import prepare_table
from massupdate.store import StoreError, open_store
from massupdate.strategies import CATALOGUE
from massupdate.workload import WorkloadGenerator

logger = logging.getLogger("massupdate")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="massupdate",
        description="Compare ways of incrementing a counter on a scattered set of rows.",
    )
    parser.add_argument(
        "credential",
        nargs="?",
        default="",
        help="Appended to the connection string (the postgres password by default).",
    )
    parser.add_argument("--backend", choices=config.BACKENDS, default="stoolap")
    parser.add_argument("--dsn", help="Base connection string (default depends on backend).")
    parser.add_argument("--rows", type=int, default=config.TOTAL_ROWS, help="Rows seeded into the table.")
    parser.add_argument("--updates", type=int, default=config.UPDATE_COUNT, help="Rows updated per trial.")
    parser.add_argument("--trials", type=int, default=config.TRIAL_COUNT, help="Trials averaged per strategy.")
    parser.add_argument("--seed", type=int, default=config.SEED)
    parser.add_argument(
        "--only",
        nargs="+",
        default=(),
        metavar="KEY",
        choices=list(CATALOGUE),
        help="Run only these strategies, in plan order.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return parser.parse_args(argv)


def configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        backend=args.backend,
        dsn_base=args.dsn,
        credential=args.credential,
        total_rows=args.rows,
        update_count=args.updates,
        trial_count=args.trials,
        seed=args.seed,
        only=tuple(args.only),
    )


def run(settings: Settings) -> int:
    plan = select_plan(DEFAULT_PLAN, settings.only) if settings.only else DEFAULT_PLAN
    rng = random.Random(settings.seed)

    try:
        store = open_store(settings.backend, settings.dsn())
    except StoreError as exc:
        logger.error("Cannot connect: %s", exc)
        return 1

    with store:
        logger.info("Database driver: %s", store.driver)
        try:
            prepare_table(store, rng, settings.total_rows)
        except StoreError as exc:
            logger.error("Setup failed: %s", exc)
            return 1

        print(f"Updating {settings.update_count} rows, averaged over {settings.trial_count} trials")
        bench = Bench(
            store,
            WorkloadGenerator(rng, settings.total_rows),
            update_count=settings.update_count,
            trial_count=settings.trial_count,
        )
        result = run_plan(bench, plan)
        if isinstance(result, Fatal):
            logger.error("Aborting run, %s failed: %s", result.operation, result)
            return 1

    print("Done.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        settings = settings_from_args(args)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    return run(settings)
