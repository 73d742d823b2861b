from .__about__ import __version__
from .binder import bind
from .core import PipelineResult, RegionLab, run_pipeline
from .exceptions import (
    CardinalityError,
    DataSchemaError,
    DuplicateIdError,
    InvalidPointError,
    NonUniqueJoinKeyError,
    RegionLabError,
)
from .merge import merge, merge_many
from .metrics.aggregation import aggregate, aggregate_by_category
from .spatial.resolve import resolve, resolve_points
from .store import GeometryStore
from .types import ExternalDataset, PipelineSummary, ResolutionResult
