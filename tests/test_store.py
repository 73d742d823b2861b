import pytest
import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import Point, Polygon, box

from regionlab.store import GeometryStore
from regionlab.exceptions import CardinalityError, DataSchemaError, DuplicateIdError


@pytest.fixture
def regions_gdf():
    # Three unit squares along the x axis, listed out of ordinal order
    return gpd.GeoDataFrame(
        {
            'id': ['C', 'A', 'B'],
            'name': ['Gamma', 'Alpha', 'Beta'],
            'ordinal': [30, 10, 20],
        },
        geometry=[box(4, 0, 5, 1), box(0, 0, 1, 1), box(2, 0, 3, 1)],
        crs="EPSG:4326"
    )


def test_load_keeps_input_order(regions_gdf):
    store = GeometryStore.load(regions_gdf)

    assert len(store) == 3
    assert store.region_ids() == frozenset({'A', 'B', 'C'})
    assert store.position_of('C') == 0
    assert store.position_of('A') == 1
    assert list(store.attributes['position']) == [0, 1, 2]


def test_load_orders_by_position_column(regions_gdf):
    store = GeometryStore.load(regions_gdf, position_col='ordinal')

    assert [store.position_of(i) for i in ['A', 'B', 'C']] == [0, 1, 2]
    assert list(store.attributes['id']) == ['A', 'B', 'C']
    # Geometry follows the same order
    assert store.geometry.iloc[0].equals(box(0, 0, 1, 1))


def test_load_duplicate_ids(regions_gdf):
    regions_gdf.loc[2, 'id'] = 'A'
    with pytest.raises(DuplicateIdError):
        GeometryStore.load(regions_gdf)


def test_load_missing_id_column(regions_gdf):
    with pytest.raises(DataSchemaError):
        GeometryStore.load(regions_gdf, id_col='code')


def test_load_rejects_points():
    gdf = gpd.GeoDataFrame({'id': ['A']}, geometry=[Point(0, 0)], crs="EPSG:4326")
    with pytest.raises(DataSchemaError):
        GeometryStore.load(gdf)


def test_load_reserved_position_column(regions_gdf):
    regions_gdf['position'] = [2, 0, 1]
    with pytest.raises(DataSchemaError):
        GeometryStore.load(regions_gdf)

    store = GeometryStore.load(regions_gdf, position_col='position')
    assert list(store.attributes['id']) == ['A', 'B', 'C']


def test_load_duplicate_ordinal(regions_gdf):
    regions_gdf['ordinal'] = [1, 1, 2]
    with pytest.raises(DataSchemaError):
        GeometryStore.load(regions_gdf, position_col='ordinal')


def test_load_crs_mismatch(regions_gdf):
    with pytest.raises(DataSchemaError):
        GeometryStore.load(regions_gdf, crs="EPSG:3857")


def test_load_warns_on_invalid_polygon():
    bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1)])
    gdf = gpd.GeoDataFrame({'id': ['X']}, geometry=[bowtie], crs="EPSG:4326")

    with pytest.warns(UserWarning, match="invalid polygons"):
        store = GeometryStore.load(gdf)
    assert len(store) == 1


def test_load_feature_collection():
    collection = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "id": "north",
                "properties": {"short_name": "N"},
                "geometry": {"type": "Polygon", "coordinates": [[[0, 1], [1, 1], [1, 2], [0, 2], [0, 1]]]},
            },
            {
                "type": "Feature",
                "id": "south",
                "properties": {"short_name": "S"},
                "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]},
            },
        ],
    }

    store = GeometryStore.load(collection, crs="EPSG:4326")

    assert store.region_ids() == frozenset({'north', 'south'})
    assert store.position_of('south') == 1
    assert store.crs == "EPSG:4326"
    assert list(store.attributes['short_name']) == ['N', 'S']


def test_bind_attributes_reorders_and_returns_new_store(regions_gdf):
    store = GeometryStore.load(regions_gdf, position_col='ordinal')
    table = pd.DataFrame({'id': ['C', 'B', 'A'], 'value': [3, 2, 1]})

    bound = store.bind_attributes(table)

    assert bound is not store
    assert list(bound.attributes['id']) == ['A', 'B', 'C']
    assert list(bound.attributes['value']) == [1, 2, 3]
    assert list(bound.attributes['position']) == [0, 1, 2]
    # The source store is untouched
    assert 'value' not in store.attributes.columns


@pytest.mark.parametrize("ids", [
    ['A', 'B'],             # missing C
    ['A', 'B', 'C', 'D'],   # unexpected D
    ['A', 'B', 'B', 'C'],   # duplicated B
    ['A', 'B', None],       # row without id
])
def test_bind_attributes_cardinality(regions_gdf, ids):
    store = GeometryStore.load(regions_gdf)
    table = pd.DataFrame({'id': ids, 'value': range(len(ids))})

    with pytest.raises(CardinalityError):
        store.bind_attributes(table)


def test_bind_attributes_requires_id_column(regions_gdf):
    store = GeometryStore.load(regions_gdf)
    with pytest.raises(DataSchemaError):
        store.bind_attributes(pd.DataFrame({'code': ['A', 'B', 'C']}))


def test_positions_of_unknown_id(regions_gdf):
    store = GeometryStore.load(regions_gdf, position_col='ordinal')

    assert list(store.positions_of(['C', 'A'])) == [2, 0]
    with pytest.raises(CardinalityError):
        store.positions_of(['A', 'Z'])
    with pytest.raises(KeyError):
        store.position_of('Z')


def test_to_geodataframe_aligns_rows_with_geometry(regions_gdf):
    store = GeometryStore.load(regions_gdf, position_col='ordinal')
    gdf = store.to_geodataframe()

    assert isinstance(gdf, gpd.GeoDataFrame)
    assert gdf.crs == store.crs
    for _, row in gdf.iterrows():
        original = regions_gdf.loc[regions_gdf['id'] == row['id']].geometry.iloc[0]
        assert row.geometry.equals(original)


def test_regions_index_is_shared_after_bind(regions_gdf):
    store = GeometryStore.load(regions_gdf)
    regions = store.regions()
    bound = store.bind_attributes(store.attributes)

    assert bound.regions() is regions
    assert np.array_equal(regions['position'].to_numpy(), np.arange(3))


def test_load_builds_spatial_index(regions_gdf):
    store = GeometryStore.load(regions_gdf)

    assert store._regions is not None
    assert store._regions.has_sindex
    assert store.regions() is store._regions
