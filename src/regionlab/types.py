from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from regionlab.constants import REGION_ID_COL


@dataclass
class ExternalDataset:
    """
    A table to merge onto region attributes.

    `key` is the join column in `table`; `region_key` is the attribute
    column it matches on the region side (defaults to `key`).
    """
    name: str
    table: pd.DataFrame
    key: str
    region_key: Optional[str] = None


@dataclass
class ResolutionResult:
    """Resolved points plus the diagnostics of the batch."""
    resolutions: pd.DataFrame
    invalid_count: int = 0
    ambiguous_count: int = 0

    @property
    def valid_count(self):
        return len(self.resolutions)

    @property
    def matched_count(self):
        return int(self.resolutions[REGION_ID_COL].notna().sum())

    @property
    def unmatched_count(self):
        return self.valid_count - self.matched_count


@dataclass
class PipelineSummary:
    total_points: int
    valid_points: int
    invalid_points: int
    matched_points: int
    unmatched_points: int
    ambiguous_points: int
    datasets: list = field(default_factory=list)

    @classmethod
    def from_resolution(cls, result, datasets=()):
        return cls(
            total_points=result.valid_count + result.invalid_count,
            valid_points=result.valid_count,
            invalid_points=result.invalid_count,
            matched_points=result.matched_count,
            unmatched_points=result.unmatched_count,
            ambiguous_points=result.ambiguous_count,
            datasets=list(datasets),
        )
