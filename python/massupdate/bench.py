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

"""Trial runner: times a strategy over fresh workloads and compares it to the baseline."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from massupdate.config import TRIAL_COUNT, UPDATE_COUNT
from massupdate.store import Store, StoreError
from massupdate.strategies import Strategy
from massupdate.workload import WorkloadGenerator

logger = logging.getLogger(__name__)

NS_PER_MS = 1_000_000


@dataclass(frozen=True)
class BenchmarkReport:
    key: str
    portion: int
    description: str
    trials: int
    mean_ms: float
    ratio: float


@dataclass(frozen=True)
class Fatal:
    """A strategy failed; the table state can no longer be trusted."""

    key: str
    portion: int
    error: StoreError

    @property
    def operation(self) -> str:
        return self.error.operation

    def __str__(self) -> str:
        return f"{self.key} (portion {self.portion}): {self.error}"


Result = Union[BenchmarkReport, Fatal]


class Bench:
    """Runs strategies against one store and keeps the run's baseline.

    The first strategy that completes sets the baseline mean; every ratio is
    baseline / mean, so values above 1 are faster than the baseline.
    """

    def __init__(
        self,
        store: Store,
        workload: WorkloadGenerator,
        update_count: int = UPDATE_COUNT,
        trial_count: int = TRIAL_COUNT,
        clock: Callable[[], int] = time.perf_counter_ns,
    ):
        if trial_count < 1:
            raise ValueError(f"trial_count must be >= 1 (got {trial_count})")
        self.store = store
        self.workload = workload
        self.update_count = update_count
        self.trial_count = trial_count
        self.clock = clock
        self._baseline_ms: Optional[float] = None

    @property
    def baseline_ms(self) -> Optional[float]:
        return self._baseline_ms

    def run(self, strategy: Strategy, portion: int = 0) -> Result:
        total_ns = 0
        description = strategy.describe(portion)
        for trial in range(self.trial_count):
            # Fresh ids every trial, otherwise the store serves cached pages.
            rids = self.workload.generate(self.update_count)
            t0 = self.clock()
            try:
                description = strategy.run(self.store, rids, portion)
            except StoreError as exc:
                logger.error("%s failed on trial %d: %s", strategy.key, trial + 1, exc)
                return Fatal(strategy.key, portion, exc)
            total_ns += self.clock() - t0

        mean_ms = total_ns / self.trial_count / NS_PER_MS
        if self._baseline_ms is None:
            self._baseline_ms = mean_ms
        if mean_ms == self._baseline_ms:
            ratio = 1.0
        elif mean_ms > 0:
            ratio = self._baseline_ms / mean_ms
        else:
            ratio = float("inf")
        return BenchmarkReport(
            key=strategy.key,
            portion=portion,
            description=description,
            trials=self.trial_count,
            mean_ms=mean_ms,
            ratio=ratio,
        )


def format_report(report: BenchmarkReport) -> str:
    return f"{report.mean_ms:6.1f} ms  x{report.ratio:<6.2f}  {report.description}"
