# constants.py

POSITION_COL = "position"
POINT_ID_COL = "point_id"
REGION_ID_COL = "region_id"

INVALID_POLICIES = ("skip", "raise")
JOIN_HOWS = ("left", "inner")

POLYGON_TYPES = ("Polygon", "MultiPolygon")
