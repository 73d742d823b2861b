import logging
from dataclasses import dataclass

import pandas as pd

from regionlab.binder import bind
from regionlab.config import (
    DEFAULT_COUNT_COL, DEFAULT_ID_COL, DEFAULT_INVALID_POLICY, DEFAULT_LAT_COL, DEFAULT_LON_COL,
)
from regionlab.merge import merge, merge_many
from regionlab.metrics.aggregation import aggregate
from regionlab.spatial.resolve import resolve_points
from regionlab.store import GeometryStore
from regionlab.types import ExternalDataset, PipelineSummary, ResolutionResult

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    store: GeometryStore
    summary: PipelineSummary
    resolution: ResolutionResult


def run_pipeline(store, points, datasets=(), count_col=DEFAULT_COUNT_COL,
                 lat_col=DEFAULT_LAT_COL, lon_col=DEFAULT_LON_COL,
                 on_invalid=DEFAULT_INVALID_POLICY, max_workers=None):
    """
    Resolve points, count them per region, merge external datasets and bind.

    The input store is left untouched. Any structural error (non-unique join
    key, cardinality mismatch) propagates and no bound store is produced.

    Args:
        store (GeometryStore): Regions to aggregate over.
        points: Point records with latitude/longitude.
        datasets (iterable of ExternalDataset): Tables to merge after the counts.
        count_col (str): Name of the per-region count column.
        lat_col (str): Latitude column in `points`.
        lon_col (str): Longitude column in `points`.
        on_invalid (str): "skip" or "raise" for points with bad coordinates.
        max_workers (int, optional): Threads for point resolution.

    Returns:
        PipelineResult: The bound store, a diagnostic summary and the raw resolutions.
    """
    datasets = list(datasets)
    for dataset in datasets:
        if not isinstance(dataset, ExternalDataset):
            raise TypeError(f"Expected ExternalDataset, got {type(dataset).__name__}.")

    resolution = resolve_points(
        points, store, lat_col=lat_col, lon_col=lon_col,
        on_invalid=on_invalid, max_workers=max_workers,
    )
    counts = aggregate(resolution, store, count_col=count_col)

    merged = merge(store.attributes, counts, key=store.id_col)
    merged = merge_many(merged, datasets)
    bound = bind(store, merged)

    summary = PipelineSummary.from_resolution(resolution, datasets=[d.name for d in datasets])
    logger.info(
        "Pipeline bound %d regions: %d matched, %d unmatched, %d invalid point(s)",
        len(bound), summary.matched_points, summary.unmatched_points, summary.invalid_points,
    )
    return PipelineResult(store=bound, summary=summary, resolution=resolution)


class RegionLab:
    """
    Holds the current bound store for a set of regions.

    Every operation builds a new store and swaps it in as a whole; readers
    holding the previous store keep a consistent, fully aligned table.
    """

    def __init__(self, regions, id_col=DEFAULT_ID_COL, position_col=None, crs=None):
        """
        Load the region polygons.

        Args:
            regions (geopandas.GeoDataFrame or dict): Polygons or a decoded FeatureCollection.
            id_col (str): Unique region id column.
            position_col (str, optional): Stable ordinal column.
            crs (optional): CRS when the input carries none.
        """
        if isinstance(regions, GeometryStore):
            self.store = regions
        else:
            self.store = GeometryStore.load(regions, id_col=id_col, position_col=position_col, crs=crs)
        self.summary = None

    def ingest_points(self, points, count_col=DEFAULT_COUNT_COL, **kwargs):
        """
        Count points per region and bind the counts.

        Returns:
            GeometryStore: The newly bound store.
        """
        if count_col in self.store.attributes.columns:
            raise ValueError(f"Column '{count_col}' already bound. Choose another count_col.")

        result = run_pipeline(self.store, points, count_col=count_col, **kwargs)
        self.store = result.store
        self.summary = result.summary
        return self.store

    def attach(self, table, key=None, external_key=None, name=None):
        """
        Merge an external table onto the current attributes and bind it.

        Args:
            table (pandas.DataFrame): External rows.
            key (str, optional): Region attribute to join on. Defaults to the id column.
            external_key (str, optional): Join column in `table`. Defaults to `key`.
            name (str, optional): Dataset name for logging.

        Returns:
            GeometryStore: The newly bound store.
        """
        key = key or self.store.id_col
        dataset = ExternalDataset(name or "external", pd.DataFrame(table), external_key or key, region_key=key)
        merged = merge_many(self.store.attributes, [dataset])
        self.store = bind(self.store, merged)
        return self.store

    def to_geodataframe(self):
        return self.store.to_geodataframe()
