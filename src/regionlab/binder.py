"""
Position Binder: re-sorts any region table into canonical position order
and binds it to the store's geometry.
"""

import logging

import numpy as np

from regionlab.constants import POSITION_COL
from regionlab.exceptions import DataSchemaError

logger = logging.getLogger(__name__)


def bind(store, table):
    """
    Bind a merged or aggregated table to `store` by region id.

    Rows are ordered by `store.positions_of(ids)` before binding, so the
    input row order never matters. Any position column in `table` is
    discarded and re-stamped from the store.

    Args:
        store (GeometryStore): Store to bind to.
        table (pandas.DataFrame): One row per region, in any order.

    Returns:
        GeometryStore: New store whose attribute row i belongs to position i.

    Raises:
        DataSchemaError: If `table` has no id column.
        CardinalityError: If `table` is not exactly one row per region.
    """
    if store.id_col not in table.columns:
        raise DataSchemaError(f"Table has no '{store.id_col}' column; cannot restore position order.")

    ids = table[store.id_col]
    if ids.isna().any():
        # let the store report the full cardinality problem
        return store.bind_attributes(table.drop(columns=[POSITION_COL], errors="ignore"))

    order = np.argsort(store.positions_of(ids), kind="stable")
    ordered = table.iloc[order].drop(columns=[POSITION_COL], errors="ignore").reset_index(drop=True)

    bound = store.bind_attributes(ordered)
    logger.debug("Bound %d row(s) to %d regions", len(ordered), len(store))
    return bound
