"""
Point-in-polygon resolution of points to store regions.

Containment uses the ``covered_by`` predicate, so a point on a region's
boundary belongs to that region. When a point is covered by more than one
region (a shared edge, or overlapping input polygons) it resolves to the
region with the lowest canonical position. This tie-break is
implementation-defined and reproducible; affected points are reported as
ambiguous.
"""

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import Point

from regionlab.config import DEFAULT_CHUNK_SIZE, DEFAULT_INVALID_POLICY, DEFAULT_LAT_COL, DEFAULT_LON_COL
from regionlab.constants import POINT_ID_COL, POSITION_COL, REGION_ID_COL
from regionlab.points import coerce_coordinate, validate_points
from regionlab.types import ResolutionResult

logger = logging.getLogger(__name__)


def resolve(point, store, lat_col=DEFAULT_LAT_COL, lon_col=DEFAULT_LON_COL):
    """
    Resolve a single point to the id of the region containing it.

    Args:
        point (mapping or tuple): {'latitude': .., 'longitude': ..} or a (latitude, longitude) pair.
        store (GeometryStore): Regions to test against.

    Returns:
        The region id, or None if the point lies outside every region.

    Raises:
        InvalidPointError: If a coordinate is missing or not a finite number.
    """
    if isinstance(point, (tuple, list)):
        lat, lon = point
    else:
        lat, lon = point.get(lat_col), point.get(lon_col)
    lat, lon = coerce_coordinate(lat), coerce_coordinate(lon)

    regions = store.regions()
    hits = regions.sindex.query(Point(lon, lat), predicate="covered_by")
    if len(hits) == 0:
        return None
    # tree order is position order
    return regions[store.id_col].iloc[int(np.min(hits))]


def _resolve_chunk(points, regions):
    """Return (first matching position per point id, number of ambiguous points)."""
    joined = gpd.sjoin(
        points[[POINT_ID_COL, points.geometry.name]],
        regions,
        how="left",
        predicate="covered_by",
    )
    matched = joined.dropna(subset=[POSITION_COL])
    ambiguous = int((matched.groupby(POINT_ID_COL).size() > 1).sum())

    first = (
        matched.sort_values([POINT_ID_COL, POSITION_COL], kind="stable")
        .drop_duplicates(POINT_ID_COL, keep="first")
    )
    return first.set_index(POINT_ID_COL)[POSITION_COL], ambiguous


def resolve_points(points, store, lat_col=DEFAULT_LAT_COL, lon_col=DEFAULT_LON_COL,
                   on_invalid=DEFAULT_INVALID_POLICY, max_workers=None, chunk_size=DEFAULT_CHUNK_SIZE):
    """
    Resolve a batch of points to their enclosing regions.

    Points are validated first (see `validate_points`). Valid points are
    resolved in chunks; with `max_workers` > 1 the chunks run on a thread
    pool. Every point resolves independently, so the result does not depend
    on how the batch is split.

    Args:
        points: Point records (DataFrame, list of mappings or (lat, lon) pairs).
        store (GeometryStore): Regions to resolve against.
        lat_col (str): Latitude column name.
        lon_col (str): Longitude column name.
        on_invalid (str): "skip" or "raise" for points with bad coordinates.
        max_workers (int, optional): Thread count for chunked resolution.
        chunk_size (int): Points per chunk.

    Returns:
        ResolutionResult: One row per valid point with a 'region_id' column
        (None when unmatched), plus invalid and ambiguous counts.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1.")

    valid, invalid_count = validate_points(
        points, lat_col=lat_col, lon_col=lon_col, on_invalid=on_invalid, crs=store.crs
    )
    regions = store.regions()

    chunks = [valid.iloc[i:i + chunk_size] for i in range(0, len(valid), chunk_size)]
    work = partial(_resolve_chunk, regions=regions)
    if max_workers and max_workers > 1 and len(chunks) > 1:
        logger.info("Resolving %d points in %d chunks on %d threads", len(valid), len(chunks), max_workers)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            parts = list(executor.map(work, chunks))
    else:
        parts = [work(chunk) for chunk in chunks]

    if parts:
        positions = pd.concat([p for p, _ in parts])
        ambiguous_count = sum(a for _, a in parts)
    else:
        positions = pd.Series(dtype=float)
        ambiguous_count = 0

    position = valid[POINT_ID_COL].map(positions)
    hit = position.notna().to_numpy()
    ids_by_position = regions[store.id_col].to_numpy()

    region_id = np.full(len(valid), None, dtype=object)
    region_id[hit] = ids_by_position[position[hit].astype(int).to_numpy()]

    resolutions = pd.DataFrame(valid.drop(columns=valid.geometry.name))
    # object dtype keeps None for unmatched points
    resolutions[REGION_ID_COL] = pd.Series(region_id, index=resolutions.index, dtype=object)

    if ambiguous_count:
        warnings.warn(
            f"{ambiguous_count} point(s) fall in more than one region; "
            "each was assigned to the region with the lowest position."
        )

    result = ResolutionResult(resolutions, invalid_count=invalid_count, ambiguous_count=ambiguous_count)
    logger.info(
        "Resolved %d point(s): %d matched, %d unmatched, %d invalid",
        result.valid_count, result.matched_count, result.unmatched_count, invalid_count,
    )
    return result
