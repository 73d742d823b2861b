import logging
import warnings
from collections.abc import Mapping

import numpy as np
import pandas as pd
import geopandas as gpd

from regionlab.config import DEFAULT_LAT_COL, DEFAULT_LON_COL, DEFAULT_INVALID_POLICY
from regionlab.constants import INVALID_POLICIES, POINT_ID_COL, REGION_ID_COL
from regionlab.exceptions import DataSchemaError, InvalidPointError

logger = logging.getLogger(__name__)


def check_policy(on_invalid):
    if on_invalid not in INVALID_POLICIES:
        raise ValueError(f"on_invalid must be one of {INVALID_POLICIES}, got '{on_invalid}'.")


def coerce_coordinate(value):
    """
    Coerce a single coordinate (number or text) to a finite float.

    Raises:
        InvalidPointError: If the value is missing, non-numeric or not finite.
    """
    coerced = pd.to_numeric(pd.Series([value]), errors="coerce").iloc[0]
    if pd.isna(coerced) or not np.isfinite(coerced):
        raise InvalidPointError(f"Coordinate {value!r} is not a finite number.")
    return float(coerced)


def _to_frame(points, lat_col, lon_col):
    if isinstance(points, gpd.GeoDataFrame):
        # coordinates come from the lat/lon columns, never the point geometry
        points = pd.DataFrame(points.drop(columns=points.geometry.name))
    if isinstance(points, pd.DataFrame):
        return points.reset_index(drop=True)

    points = list(points)
    if not points:
        return pd.DataFrame(columns=[lat_col, lon_col])
    if isinstance(points[0], Mapping):
        return pd.DataFrame(points)
    # (latitude, longitude) pairs
    return pd.DataFrame(points, columns=[lat_col, lon_col])


def validate_points(points, lat_col=DEFAULT_LAT_COL, lon_col=DEFAULT_LON_COL,
                    on_invalid=DEFAULT_INVALID_POLICY, crs=None):
    """
    Coerce raw point records to numeric coordinates and drop or reject bad rows.

    Args:
        points (pandas.DataFrame or iterable): Rows with latitude/longitude columns,
            a list of mappings, or a list of (latitude, longitude) pairs. Values may be text.
        lat_col (str): Latitude column name.
        lon_col (str): Longitude column name.
        on_invalid (str): "skip" to drop invalid rows with a warning, "raise" to abort.
        crs (optional): CRS to attach to the point geometries.

    Returns:
        tuple: (geopandas.GeoDataFrame of valid points with a 'point_id' column, int invalid count)

    Raises:
        DataSchemaError: If a coordinate column is missing or a reserved column is present.
        InvalidPointError: If on_invalid is "raise" and any row is invalid.
    """
    check_policy(on_invalid)
    frame = _to_frame(points, lat_col, lon_col)

    for col in (lat_col, lon_col):
        if col not in frame.columns:
            raise DataSchemaError(f"Point column '{col}' not found.")

    reserved = [c for c in (POINT_ID_COL, REGION_ID_COL) if c in frame.columns]
    if reserved:
        raise DataSchemaError(f"Point columns {reserved} are reserved. Rename them before resolving.")

    frame[POINT_ID_COL] = np.arange(len(frame))
    lat = pd.to_numeric(frame[lat_col], errors="coerce").astype(float)
    lon = pd.to_numeric(frame[lon_col], errors="coerce").astype(float)
    valid = np.isfinite(lat) & np.isfinite(lon)

    invalid_count = int((~valid).sum())
    if invalid_count:
        first = frame.loc[~valid].iloc[0]
        if on_invalid == "raise":
            raise InvalidPointError(
                f"Point {int(first[POINT_ID_COL])} has invalid coordinates "
                f"({first[lat_col]!r}, {first[lon_col]!r}); {invalid_count} invalid point(s) in batch."
            )
        warnings.warn(f"Skipping {invalid_count} point(s) with missing or non-numeric coordinates.")

    frame = frame.loc[valid].copy()
    frame[lat_col] = lat[valid]
    frame[lon_col] = lon[valid]
    logger.debug("Validated %d point(s), %d invalid", len(frame), invalid_count)

    gdf = gpd.GeoDataFrame(
        frame.reset_index(drop=True),
        geometry=gpd.points_from_xy(frame[lon_col], frame[lat_col]),
        crs=crs,
    )
    return gdf, invalid_count
