"""
Geometry Store: the immutable, position-ordered set of region polygons
and the attribute table bound to them.

Row ``i`` of the attribute table always describes the region at
position ``i``. The only way to attach a new table is
:meth:`GeometryStore.bind_attributes`, which validates cardinality,
re-orders by position and returns a new store.
"""

import logging
import warnings

import numpy as np
import pandas as pd
import geopandas as gpd

from regionlab.config import DEFAULT_ID_COL
from regionlab.constants import POSITION_COL, POLYGON_TYPES
from regionlab.exceptions import CardinalityError, DataSchemaError, DuplicateIdError

logger = logging.getLogger(__name__)


def _frame_from_features(collection, crs=None):
    """Build a GeoDataFrame from a decoded GeoJSON FeatureCollection."""
    if collection.get("type") != "FeatureCollection":
        raise DataSchemaError("Expected a GeoJSON FeatureCollection.")

    features = []
    for feature in collection.get("features", []):
        properties = dict(feature.get("properties") or {})
        # GeoJSON allows the identifier at feature level
        if "id" in feature and "id" not in properties:
            properties["id"] = feature["id"]
        features.append({"type": "Feature", "properties": properties, "geometry": feature.get("geometry")})

    if not features:
        raise DataSchemaError("FeatureCollection has no features.")

    return gpd.GeoDataFrame.from_features(features, crs=crs)


def _describe(values, limit=5):
    values = sorted(values, key=str)
    shown = ", ".join(repr(v) for v in values[:limit])
    if len(values) > limit:
        shown += f", ... ({len(values)} total)"
    return shown


class GeometryStore:
    """
    Region polygons in canonical position order plus their bound attributes.

    Build one with :meth:`load`. Stores are values: nothing on an existing
    store is ever modified, binding a table returns a new store that shares
    the same geometry.
    """

    def __init__(self, geometry, attributes, id_col, positions):
        self._geometry = geometry
        self._attributes = attributes
        self._positions = positions
        self.id_col = id_col
        self._regions = None

    @classmethod
    def load(cls, regions, id_col=DEFAULT_ID_COL, position_col=None, crs=None):
        """
        Load region polygons into a new store.

        Args:
            regions (geopandas.GeoDataFrame or dict): Region polygons, either as a
                GeoDataFrame or a decoded GeoJSON FeatureCollection.
            id_col (str): Column holding the stable, unique region id.
            position_col (str, optional): Stable ordinal column. Positions are the
                rank of this column. Defaults to the input row order.
            crs (optional): CRS of the polygons when the input carries none.

        Returns:
            GeometryStore: The loaded store.

        Raises:
            DuplicateIdError: If two regions share an id.
            DataSchemaError: If ids, ordinals or geometries are missing or malformed.
        """
        if isinstance(regions, dict):
            frame = _frame_from_features(regions, crs=crs)
        elif isinstance(regions, gpd.GeoDataFrame):
            frame = regions.copy()
            if crs is not None:
                if frame.crs is None:
                    frame = frame.set_crs(crs)
                elif not frame.crs.equals(crs):
                    raise DataSchemaError(
                        f"Regions are in {frame.crs}, not {crs}. Reproject before loading."
                    )
        else:
            raise DataSchemaError("Regions must be a GeoDataFrame or a GeoJSON FeatureCollection.")

        if id_col not in frame.columns:
            raise DataSchemaError(f"Id column '{id_col}' not found in regions.")

        ids = frame[id_col]
        if ids.isna().any():
            raise DataSchemaError(f"{int(ids.isna().sum())} region(s) have no '{id_col}'.")

        duplicated = ids[ids.duplicated()]
        if not duplicated.empty:
            raise DuplicateIdError(f"Duplicate region ids: {_describe(set(duplicated))}")

        geometry = frame.geometry
        if geometry.isna().any() or geometry.is_empty.any():
            raise DataSchemaError("Every region needs a non-empty boundary.")

        bad_types = set(geometry.geom_type) - set(POLYGON_TYPES)
        if bad_types:
            raise DataSchemaError(f"Regions must be polygons, got {_describe(bad_types)}.")

        invalid = ~geometry.is_valid
        if invalid.any():
            # No repair here: containment on these regions may be unreliable
            warnings.warn(
                f"{int(invalid.sum())} region(s) have invalid polygons: {_describe(set(ids[invalid]))}"
            )

        if position_col != POSITION_COL and POSITION_COL in frame.columns:
            raise DataSchemaError(
                f"'{POSITION_COL}' is reserved. Pass position_col='{POSITION_COL}' to use it as the ordinal."
            )

        if position_col is not None:
            if position_col not in frame.columns:
                raise DataSchemaError(f"Position column '{position_col}' not found in regions.")
            ordinal = pd.to_numeric(frame[position_col], errors="coerce")
            if ordinal.isna().any():
                raise DataSchemaError(f"Position column '{position_col}' must be numeric for every region.")
            if ordinal.duplicated().any():
                raise DataSchemaError(f"Position column '{position_col}' must be unique.")
            order = np.argsort(ordinal.to_numpy(), kind="stable")
        else:
            order = np.arange(len(frame))

        frame = frame.iloc[order].reset_index(drop=True)
        frame[POSITION_COL] = np.arange(len(frame))

        geometry = frame.geometry
        attributes = pd.DataFrame(frame.drop(columns=geometry.name))
        leading = [id_col, POSITION_COL]
        attributes = attributes[leading + [c for c in attributes.columns if c not in leading]]

        positions = dict(zip(attributes[id_col], attributes[POSITION_COL]))
        logger.debug("Loaded %d regions keyed by '%s'", len(positions), id_col)

        store = cls(geometry.reset_index(drop=True), attributes, id_col, positions)
        store.regions()
        return store

    def __len__(self):
        return len(self._positions)

    def __repr__(self):
        return f"GeometryStore({len(self)} regions, id_col={self.id_col!r}, crs={self.crs})"

    @property
    def crs(self):
        return self._geometry.crs

    @property
    def geometry(self):
        """GeoSeries of region boundaries in position order."""
        return self._geometry.copy()

    @property
    def attributes(self):
        """Copy of the bound attribute table; row i belongs to position i."""
        return self._attributes.copy()

    def region_ids(self):
        return frozenset(self._positions)

    def position_of(self, region_id):
        return int(self._positions[region_id])

    def positions_of(self, ids):
        """
        Vectorized position lookup.

        Raises:
            CardinalityError: If any id is not a region of this store.
        """
        ids = pd.Series(ids)
        unknown = set(ids[~ids.isin(list(self._positions))])
        if unknown:
            raise CardinalityError(f"Rows reference unknown region ids: {_describe(unknown)}")
        return ids.map(self._positions).to_numpy(dtype=int)

    def regions(self):
        """
        GeoDataFrame of id, position and geometry with its spatial index built.

        Built by `load` and shared by every store bound from this one.
        """
        if self._regions is None:
            regions = gpd.GeoDataFrame(
                {
                    self.id_col: self._attributes[self.id_col].to_numpy(),
                    POSITION_COL: np.arange(len(self)),
                },
                geometry=self._geometry.to_numpy(),
                crs=self.crs,
            )
            # built before any worker thread queries it
            regions.sindex
            self._regions = regions
        return self._regions

    def bind_attributes(self, table):
        """
        Return a new store with `table` bound as its attribute table.

        Args:
            table (pandas.DataFrame): Exactly one row per region id, any order.

        Returns:
            GeometryStore: A store sharing this geometry, with `table` sorted by position.

        Raises:
            DataSchemaError: If the id column is missing.
            CardinalityError: If the table does not hold exactly one row per region.
        """
        if isinstance(table, gpd.GeoDataFrame):
            table = pd.DataFrame(table.drop(columns=table.geometry.name))

        if self.id_col not in table.columns:
            raise DataSchemaError(f"Table has no '{self.id_col}' column to bind on.")

        ids = table[self.id_col]
        problems = []
        if ids.isna().any():
            problems.append(f"{int(ids.isna().sum())} row(s) without an id")
        duplicated = set(ids[ids.duplicated() & ids.notna()])
        if duplicated:
            problems.append(f"duplicated ids {_describe(duplicated)}")
        seen = set(ids.dropna())
        missing = self.region_ids() - seen
        if missing:
            problems.append(f"missing ids {_describe(missing)}")
        unexpected = seen - self.region_ids()
        if unexpected:
            problems.append(f"unexpected ids {_describe(unexpected)}")
        if problems:
            raise CardinalityError(
                f"Cannot bind {len(table)} rows to {len(self)} regions: " + "; ".join(problems)
            )

        positions = ids.map(self._positions).to_numpy(dtype=int)
        bound = table.iloc[np.argsort(positions, kind="stable")].reset_index(drop=True)
        bound[POSITION_COL] = np.arange(len(bound))
        leading = [self.id_col, POSITION_COL]
        bound = bound[leading + [c for c in bound.columns if c not in leading]]

        store = GeometryStore(self._geometry, bound, self.id_col, self._positions)
        store._regions = self._regions
        return store

    def to_geodataframe(self):
        """Attributes joined to geometry by position, ready for rendering."""
        return gpd.GeoDataFrame(
            self._attributes.copy(),
            geometry=self._geometry.to_numpy(),
            crs=self.crs,
        )
