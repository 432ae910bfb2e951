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

"""Row identifier workloads."""

import random
from typing import List


class WorkloadGenerator:
    """Draws sorted row identifiers from one shared random sequence.

    The sequence is seeded once per run and never re-seeded, so every call
    yields a different workload. Repeating the same rows would let the
    store's page cache absorb the cost of later trials.
    """

    __slots__ = ("rng", "total_rows")

    def __init__(self, rng: random.Random, total_rows: int):
        if total_rows < 1:
            raise ValueError(f"total_rows must be >= 1 (got {total_rows})")
        self.rng = rng
        self.total_rows = total_rows

    @classmethod
    def seeded(cls, seed: int, total_rows: int) -> "WorkloadGenerator":
        return cls(random.Random(seed), total_rows)

    def generate(self, count: int) -> List[int]:
        """count identifiers in [0, total_rows), duplicates allowed, ascending."""
        if count < 0:
            raise ValueError(f"count must be >= 0 (got {count})")
        rids = [self.rng.randrange(self.total_rows) for _ in range(count)]
        rids.sort()
        return rids
