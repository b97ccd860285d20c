"""Error taxonomy shared by the point store, the extrema tracker and series."""


class PointSeriesError(Exception):
    """Base class for all pointseries errors."""


class ConfigurationError(PointSeriesError, ValueError):
    """Raised when a structure is constructed or used with an invalid setup."""


class OrderingError(PointSeriesError, ValueError):
    """Raised when a timestamp would break the chronological order of a store."""


class OutOfRangeError(PointSeriesError, IndexError):
    """Raised for an ordinal outside the current store."""


class InteriorRemovalError(OutOfRangeError):
    """Raised when removal targets anything but the oldest point."""


class EmptyWindowError(PointSeriesError, LookupError):
    """Raised when min/max is requested from an empty window."""


class MissingValueError(PointSeriesError, ValueError):
    """Raised when a point lacks the value a series orders it by."""
