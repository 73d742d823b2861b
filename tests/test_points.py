import pytest
import numpy as np
import pandas as pd

from regionlab.points import coerce_coordinate, validate_points
from regionlab.exceptions import DataSchemaError, InvalidPointError


def test_text_coordinates_are_coerced():
    records = [
        {'latitude': '52.25', 'longitude': '6.85'},
        {'latitude': 52.30, 'longitude': 6.90},
    ]
    gdf, invalid = validate_points(records)

    assert invalid == 0
    assert len(gdf) == 2
    assert np.isclose(gdf['latitude'].iloc[0], 52.25)
    assert np.isclose(gdf.geometry.iloc[0].x, 6.85)
    assert np.isclose(gdf.geometry.iloc[0].y, 52.25)


def test_invalid_points_are_skipped_with_warning():
    df = pd.DataFrame({
        'latitude': ['1.0', 'n/a', None, '2.0', 'inf'],
        'longitude': ['1.0', '1.0', '1.0', 'abc', '1.0'],
    })

    with pytest.warns(UserWarning, match="Skipping 4"):
        gdf, invalid = validate_points(df)

    assert invalid == 4
    assert len(gdf) == 1
    # Point ids refer to the original row numbers
    assert list(gdf['point_id']) == [0]


def test_invalid_points_raise_when_requested():
    df = pd.DataFrame({'latitude': ['1.0', 'x'], 'longitude': ['1.0', '1.0']})
    with pytest.raises(InvalidPointError):
        validate_points(df, on_invalid="raise")


def test_unknown_policy():
    with pytest.raises(ValueError):
        validate_points([], on_invalid="ignore")


def test_missing_column():
    df = pd.DataFrame({'lat': [1.0], 'lon': [1.0]})
    with pytest.raises(DataSchemaError):
        validate_points(df)

    gdf, _ = validate_points(df, lat_col='lat', lon_col='lon')
    assert len(gdf) == 1


def test_coordinate_pairs_and_empty_input():
    gdf, invalid = validate_points([(0.5, 1.5)])
    assert invalid == 0
    assert gdf.geometry.iloc[0].x == 1.5

    gdf, invalid = validate_points([])
    assert invalid == 0
    assert gdf.empty


@pytest.mark.parametrize("value", [None, "", "north", float('nan'), float('inf')])
def test_coerce_coordinate_rejects(value):
    with pytest.raises(InvalidPointError):
        coerce_coordinate(value)


def test_coerce_coordinate_accepts_text():
    assert coerce_coordinate("12.5") == 12.5
    assert coerce_coordinate(7) == 7.0


@pytest.mark.parametrize("reserved", ['point_id', 'region_id'])
def test_reserved_point_columns(reserved):
    df = pd.DataFrame({'latitude': [1.0], 'longitude': [1.0], reserved: ['x']})
    with pytest.raises(DataSchemaError, match="reserved"):
        validate_points(df)
