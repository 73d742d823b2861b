"""
Key-based merge of external tables onto region attributes.

The join key must be 1:1 with rows on both sides; a key that is not (for
example a short name shared by two regions) fails the merge instead of
multiplying rows. The row order of a merge result is NOT meaningful: bind
it with :func:`regionlab.binder.bind` before attaching it to geometry.
"""

import logging
import warnings

import pandas as pd

from regionlab.constants import JOIN_HOWS
from regionlab.exceptions import DataSchemaError, NonUniqueJoinKeyError

logger = logging.getLogger(__name__)


def _check_unique(table, key, side):
    keys = table[key]
    duplicated = keys[keys.duplicated(keep=False)]
    if not duplicated.empty:
        values = sorted(set(duplicated.dropna()), key=str)[:5]
        nulls = int(duplicated.isna().sum())
        detail = ", ".join(repr(v) for v in values)
        if nulls:
            detail = f"{detail}, {nulls} null key(s)" if detail else f"{nulls} null key(s)"
        raise NonUniqueJoinKeyError(f"Join key '{key}' is not unique in the {side} table: {detail}")


def merge(base, external, key, external_key=None, how="left"):
    """
    Merge `external` onto `base` by a unique join key.

    Args:
        base (pandas.DataFrame): Region attribute table (all rows kept with how="left").
        external (pandas.DataFrame): Table to bring in.
        key (str): Join column in `base`.
        external_key (str, optional): Join column in `external`. Defaults to `key`.
        how (str): "left" (default) or "inner".

    Returns:
        pandas.DataFrame: Merged table. Row order is unspecified.

    Raises:
        DataSchemaError: If a key column is missing, non-key columns collide,
                         or the key dtypes cannot be compared.
        NonUniqueJoinKeyError: If the key repeats in either table.
    """
    if how not in JOIN_HOWS:
        raise ValueError(f"how must be one of {JOIN_HOWS}, got '{how}'.")

    external_key = external_key or key
    if key not in base.columns:
        raise DataSchemaError(f"Join key '{key}' not found in base table.")
    if external_key not in external.columns:
        raise DataSchemaError(f"Join key '{external_key}' not found in external table.")

    external = pd.DataFrame(external)
    if external_key != key:
        if key in external.columns:
            raise DataSchemaError(f"External table already has a '{key}' column.")
        external = external.rename(columns={external_key: key})

    null_keys = external[key].isna()
    if null_keys.any():
        warnings.warn(f"Dropping {int(null_keys.sum())} external row(s) without a '{key}' value.")
        external = external[~null_keys]

    _check_unique(base, key, "base")
    _check_unique(external, key, "external")

    overlap = (set(base.columns) & set(external.columns)) - {key}
    if overlap:
        raise DataSchemaError(f"Columns present in both tables: {sorted(overlap)}. Rename them before merging.")

    try:
        merged = pd.merge(base, external, on=key, how=how, validate="one_to_one")
    except ValueError as e:
        raise DataSchemaError(f"Cannot join on '{key}': {e}") from e

    if how == "left" and len(merged) != len(base):
        raise NonUniqueJoinKeyError(f"Merge on '{key}' changed the row count from {len(base)} to {len(merged)}.")

    unmatched = len(base) - int(base[key].isin(external[key]).sum())
    logger.debug("Merged %d external row(s) on '%s'; %d base row(s) unmatched", len(external), key, unmatched)
    return merged


def merge_many(base, datasets):
    """
    Merge several ExternalDataset tables onto `base` in turn.

    Any failing merge aborts the whole sequence; no partial table is returned.

    Args:
        base (pandas.DataFrame): Region attribute table.
        datasets (iterable of ExternalDataset): Tables with their join keys. Each joins
            on its `region_key`, or on its own `key` when no region key is given.

    Returns:
        pandas.DataFrame: The merged table (row order unspecified).
    """
    merged = base
    for dataset in datasets:
        base_key = dataset.region_key or dataset.key
        logger.info("Merging dataset '%s' on '%s'", dataset.name, base_key)
        merged = merge(merged, dataset.table, base_key, external_key=dataset.key)
    return merged
