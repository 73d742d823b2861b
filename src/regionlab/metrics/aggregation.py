"""
Full-domain aggregation of resolved points to regions.

The output domain is always the store: every region appears exactly once,
with zero for regions no point resolved to.
"""

import logging

import pandas as pd

from regionlab.config import DEFAULT_COUNT_COL
from regionlab.constants import REGION_ID_COL
from regionlab.exceptions import CardinalityError
from regionlab.types import ResolutionResult

logger = logging.getLogger(__name__)


def _matched(resolutions, store):
    if isinstance(resolutions, ResolutionResult):
        resolutions = resolutions.resolutions
    if REGION_ID_COL not in resolutions.columns:
        raise ValueError(f"Resolutions need a '{REGION_ID_COL}' column.")

    matched = resolutions[resolutions[REGION_ID_COL].notna()]
    unknown = set(matched[REGION_ID_COL]) - store.region_ids()
    if unknown:
        raise CardinalityError(f"Resolutions reference {len(unknown)} region id(s) not in the store.")
    return matched


def _domain(store):
    return pd.DataFrame({store.id_col: store.attributes[store.id_col]})


def _check_complete(out, store):
    if len(out) != len(store) or set(out[store.id_col]) != store.region_ids():
        raise CardinalityError("Aggregate does not cover every region exactly once.")
    return out


def aggregate(resolutions, store, count_col=DEFAULT_COUNT_COL, weight_col=None):
    """
    Count resolved points per region over the complete region domain.

    Parameters
    ----------
    resolutions : ResolutionResult or DataFrame
        Resolved points with a 'region_id' column (None for unmatched points)
    store : GeometryStore
        Store whose regions define the output domain
    count_col : str, optional
        Name of the output column
    weight_col : str, optional
        If given, sum this column per region instead of counting points

    Returns
    -------
    DataFrame
        One row per store region: [id, count_col]. Row order is unspecified.
    """
    matched = _matched(resolutions, store)

    if weight_col is None:
        per_region = matched.groupby(REGION_ID_COL).size().rename(count_col)
    else:
        if weight_col not in matched.columns:
            raise ValueError(f"Weight column '{weight_col}' not found in resolutions.")
        weights = pd.to_numeric(matched[weight_col], errors="coerce").fillna(0.0)
        per_region = weights.groupby(matched[REGION_ID_COL]).sum().rename(count_col)

    per_region = per_region.rename_axis(store.id_col).reset_index()
    out = _domain(store).merge(per_region, on=store.id_col, how="left")
    if weight_col is None:
        out[count_col] = out[count_col].fillna(0).astype(int)
    else:
        out[count_col] = out[count_col].fillna(0.0).astype(float)

    logger.debug("Aggregated %d matched point(s) over %d regions", len(matched), len(out))
    return _check_complete(out, store)


def aggregate_by_category(resolutions, store, category_col, prefix="count_", total_col=DEFAULT_COUNT_COL):
    """
    Count resolved points per region and category.

    Parameters
    ----------
    resolutions : ResolutionResult or DataFrame
        Resolved points with a 'region_id' column and a category column
    store : GeometryStore
        Store whose regions define the output domain
    category_col : str
        Column holding the category of each point
    prefix : str, optional
        Prefix for the per-category count columns
    total_col : str, optional
        Name of the all-categories total column

    Returns
    -------
    DataFrame
        One row per store region with a zero-filled count column per category
        and a total column.
    """
    matched = _matched(resolutions, store)
    if category_col not in matched.columns:
        raise ValueError(f"Category column '{category_col}' not found in resolutions.")

    # points without a category still count towards the total
    categories = matched[category_col].fillna("unknown").astype(str)
    table = pd.crosstab(matched[REGION_ID_COL], categories)
    table.columns = [f"{prefix}{c}" for c in table.columns]
    table = table.rename_axis(store.id_col).reset_index()

    out = _domain(store).merge(table, on=store.id_col, how="left")
    count_cols = [c for c in out.columns if c != store.id_col]
    out[count_cols] = out[count_cols].fillna(0).astype(int)
    out[total_col] = out[count_cols].sum(axis=1).astype(int)
    return _check_complete(out, store)
