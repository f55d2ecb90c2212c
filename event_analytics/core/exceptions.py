class AnalyticsError(Exception):
    """Base class for errors raised by the analytics core."""


class StorageWriteError(AnalyticsError):
    """An insert or upsert failed (constraint violation, I/O, connection)."""


class StorageReadError(AnalyticsError):
    """A read query failed."""


class InvalidFilterError(AnalyticsError, ValueError):
    """A structured filter, grouping column or pagination value is malformed."""
