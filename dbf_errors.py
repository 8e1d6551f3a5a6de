"""
Exception types raised while opening dBase (.DBF) tables.
Only structural problems are raised; bad field values decode to None.
"""


class DBFError(Exception):
    """Base class for all DBF reader errors."""


class DBFHeaderError(DBFError):
    """The file header or descriptor block cannot be interpreted."""


class DBFEncodingError(DBFError, LookupError):
    """The requested text codec is not known to Python."""


class ColumnError(DBFError):
    """A column descriptor is invalid."""


class ColumnLengthError(ColumnError, ValueError):
    """Column length is not greater than zero."""


class ColumnNameError(ColumnError, ValueError):
    """Column name is empty after cleaning."""


__all__ = [
    'DBFError', 'DBFHeaderError', 'DBFEncodingError',
    'ColumnError', 'ColumnLengthError', 'ColumnNameError'
]
