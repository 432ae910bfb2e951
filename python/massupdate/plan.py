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

"""Ordered benchmark plan and its sequential runner."""

from typing import Callable, Dict, Iterable, List, Sequence, Tuple, Union

from massupdate.bench import Bench, BenchmarkReport, Fatal, format_report
from massupdate.strategies import CATALOGUE, Strategy

PlanEntry = Tuple[str, int]

# The first entry is the baseline.
DEFAULT_PLAN: List[PlanEntry] = [
    ("row-param", 0),
    ("row-prepared", 0),
    ("row-literal", 0),

    ("tx-row-prepared", 0),
    ("tx-prepared-4", 0),
    ("tx-prepared-8", 0),

    ("tx-text", 4),
    ("tx-text", 8),
    ("tx-text", 25),
    ("tx-text", 100),
    ("tx-text", 250),

    ("text", 4),
    ("text", 8),
    ("text", 25),
    ("text", 100),
    ("text", 250),

    ("staging", 8),
    ("staging", 25),
    ("staging", 100),
]


def select_plan(plan: Sequence[PlanEntry], keys: Iterable[str],
                catalogue: Dict[str, Strategy] = CATALOGUE) -> List[PlanEntry]:
    """Entries of plan whose strategy is in keys, in plan order."""
    wanted = set(keys)
    unknown = wanted.difference(catalogue)
    if unknown:
        raise KeyError(f"unknown strategies: {', '.join(sorted(unknown))}")
    return [entry for entry in plan if entry[0] in wanted]


def print_report(report: BenchmarkReport) -> None:
    print(format_report(report), flush=True)


def run_plan(
    bench: Bench,
    plan: Sequence[PlanEntry] = DEFAULT_PLAN,
    catalogue: Dict[str, Strategy] = CATALOGUE,
    report: Callable[[BenchmarkReport], None] = print_report,
) -> Union[List[BenchmarkReport], Fatal]:
    """Run entries strictly in order; stop at the first failure."""
    for key, _ in plan:
        if key not in catalogue:
            raise KeyError(f"unknown strategy {key!r}")

    reports = []
    for key, portion in plan:
        result = bench.run(catalogue[key], portion)
        if isinstance(result, Fatal):
            return result
        report(result)
        reports.append(result)
    return reports
