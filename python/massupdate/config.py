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

"""Run configuration: workload sizes, table names and connection defaults."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

TOTAL_ROWS = 100_000     # Rows seeded into the table
UPDATE_COUNT = 4_000     # Rows touched by one trial
TRIAL_COUNT = 20         # Trials averaged per strategy
SEED = 0
FILL_BATCH = 20          # Rows per seed INSERT statement

TABLE = "testtbl"
STAGING_TABLE = "tmpx"

BACKENDS = ("stoolap", "sqlite", "postgres")

DEFAULT_DSN = {
    "stoolap": ":memory:",
    "sqlite": ":memory:",
    # The password is appended from the command line.
    "postgres": "dbname=MYDB sslmode=disable user=postgres password=",
}


@dataclass
class Settings:
    backend: str = "stoolap"
    dsn_base: Optional[str] = None
    credential: str = ""
    total_rows: int = TOTAL_ROWS
    update_count: int = UPDATE_COUNT
    trial_count: int = TRIAL_COUNT
    seed: int = SEED
    only: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"unknown backend {self.backend!r}, expected one of {', '.join(BACKENDS)}")
        if self.total_rows < 1:
            raise ValueError(f"total_rows must be >= 1 (got {self.total_rows})")
        if self.update_count < 0:
            raise ValueError(f"update_count must be >= 0 (got {self.update_count})")
        if self.trial_count < 1:
            raise ValueError(f"trial_count must be >= 1 (got {self.trial_count})")

    def dsn(self) -> str:
        """Connection string with the credential fragment appended."""
        base = self.dsn_base if self.dsn_base is not None else DEFAULT_DSN[self.backend]
        return base + self.credential
