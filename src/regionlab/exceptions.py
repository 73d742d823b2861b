class RegionLabError(Exception):
    """Base exception for regionlab"""
    pass

class DataSchemaError(RegionLabError):
    """Raised when data does not match expected schema"""
    pass

class InvalidPointError(RegionLabError):
    """Raised when a point has missing or non-finite coordinates"""
    pass

class DuplicateIdError(RegionLabError):
    """Raised when two regions share an id at load time"""
    pass

class NonUniqueJoinKeyError(RegionLabError):
    """Raised when a join key is not unique on one side of a merge"""
    pass

class CardinalityError(RegionLabError):
    """Raised when a table does not hold exactly one row per region"""
    pass
