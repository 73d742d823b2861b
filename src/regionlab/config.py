# config.py
# Defaults for CRS, column names, invalid-point policy, resolver chunking

DEFAULT_CRS = "EPSG:4326"

DEFAULT_ID_COL = "id"
DEFAULT_LAT_COL = "latitude"
DEFAULT_LON_COL = "longitude"
DEFAULT_COUNT_COL = "count"

# "skip" drops invalid points and warns, "raise" aborts the batch
DEFAULT_INVALID_POLICY = "skip"

DEFAULT_CHUNK_SIZE = 50_000
