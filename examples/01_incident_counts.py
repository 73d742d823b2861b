from regionlab import ExternalDataset, GeometryStore, run_pipeline
from regionlab.metrics.per_capita import calculate_rate_per_capita
import pandas as pd
import geopandas as gpd
from shapely.geometry import box


def main():
    print("=== regionlab: Incident Counts Example ===")

    # Four districts on a 2x2 grid, listed in their canonical map order
    districts = gpd.GeoDataFrame(
        {
            'id': ['D1', 'D2', 'D3', 'D4'],
            'short_name': ['Old Town', 'Harbour', 'Hillside', 'Riverside'],
        },
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1), box(0, 1, 1, 2), box(1, 1, 2, 2)],
        crs="EPSG:4326"
    )

    print("1. Loading districts...")
    store = GeometryStore.load(districts)
    print(f"   {store}")

    # Coordinates typically arrive as text from a remote query
    incidents = pd.DataFrame({
        'latitude': ['0.5', '0.4', '1.5', '0.2', 'n/a', '3.0'],
        'longitude': ['0.5', '1.6', '1.5', '0.8', '0.5', '3.0'],
    })

    population = pd.DataFrame({
        'name': ['Riverside', 'Old Town', 'Harbour', 'Hillside'],
        'population': [1200, 5400, 800, 0],
    })

    print("2. Resolving, counting and merging...")
    result = run_pipeline(
        store,
        incidents,
        datasets=[ExternalDataset('population', population, key='name', region_key='short_name')],
    )
    summary = result.summary
    print(f"   Valid points: {summary.valid_points} (invalid: {summary.invalid_points})")
    print(f"   Matched: {summary.matched_points}, outside every district: {summary.unmatched_points}")

    print("3. Rates per 1,000 residents...")
    table = calculate_rate_per_capita(result.store.attributes, 'count', 'population')
    print(table[['id', 'short_name', 'count', 'population', 'count_per_1000']].to_string(index=False))

    print("=== Analysis Complete ===")


if __name__ == "__main__":
    main()
