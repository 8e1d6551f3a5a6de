"""
Function-style interface for reading dBase (.DBF) files.
Thin wrappers over DBFTable using the dbf_file_* naming.
"""

from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple, Union

from dbf_column import ColumnType, DBFColumn
from dbf_errors import (
    ColumnError, ColumnLengthError, ColumnNameError, DBFEncodingError, DBFError, DBFHeaderError
)
from dbf_memo import DBF_MEMO_BLOCK_SIZE, MemoFormat
from dbf_record import decode_record
from dbf_table import DBFHeader, DBFTable
from dbf_util import DBF_LANG_JAPAN, DBF_LANG_US, DBF_LANG_WESTERN_EUROPE


def dbf_file_open(data: Union[BinaryIO, bytes], memo: Union[BinaryIO, bytes, None] = None,
                  encoding: Optional[str] = None) -> DBFTable:
    """
    Open a DBF table from already opened streams.

    Args:
        data: The table stream (or its bytes)
        memo: The memo stream (or its bytes), if any
        encoding: Codec for character fields

    Returns:
        A DBFTable ready for reading
    """
    return DBFTable.open(data, memo, encoding=encoding)


def dbf_file_close(dbf: DBFTable) -> None:
    """Close a DBF table and its memo file."""
    if dbf:
        dbf.close()


def dbf_file_get_actual_row_count(dbf: DBFTable) -> int:
    """
    Get the row count declared in the header.

    Args:
        dbf: The DBF table

    Returns:
        Number of rows, including rows marked as deleted
    """
    if not dbf:
        return 0
    return dbf.record_count


def dbf_file_read_row(dbf: DBFTable, row_index: int) -> Tuple[bool, Dict[str, Any]]:
    """
    Read and decode a row, deleted or not.

    Args:
        dbf: The DBF table
        row_index: Zero-based row index

    Returns:
        Tuple of (deleted, values); (False, {}) if the row is past the end of the file
    """
    if row_index < 0 or row_index >= dbf.record_count:
        raise IndexError(f"row index {row_index} out of range")
    raw = dbf.read_raw(row_index)
    if len(raw) < dbf.record_size:
        return (False, {})
    return decode_record(raw, dbf.columns, dbf.memo, dbf.encoding)


def dbf_file_iter_rows(dbf: DBFTable, include_deleted: bool = False) -> Iterator[Dict[str, Any]]:
    """Iterate over decoded rows, skipping deleted rows unless asked not to."""
    return dbf.records(include_deleted=include_deleted)


def dbf_file_get_fields(dbf: DBFTable) -> List[DBFColumn]:
    """Get the field descriptors in file order."""
    return list(dbf.columns)


def dbf_file_get_date(dbf: DBFTable) -> Tuple[int, int, int]:
    """
    Get the last update date from a DBF file.

    Returns:
        A tuple of (year, month, day) where year is since 1900
    """
    if not dbf:
        return (0, 0, 0)
    return (dbf.header.year, dbf.header.month, dbf.header.day)


def dbf_file_get_language_driver(dbf: DBFTable) -> int:
    """
    Get the language driver ID from a DBF file.

    Returns:
        The language driver ID (0 for dBase III, 1 for US, etc.)
    """
    if not dbf:
        return 0
    return dbf.language_driver


def build_field_spec(field: DBFColumn) -> str:
    """
    Build a field specification string (e.g., 'C(30)' or 'N(10,2)').

    Args:
        field: The field column definition

    Returns:
        Field specification string
    """
    spec = f"{field.field_type}({field.length}"
    if field.decimals > 0:
        spec += f",{field.decimals}"
    spec += ")"
    return spec


# Export functions
__all__ = [
    'DBFColumn', 'DBFHeader', 'DBFTable', 'ColumnType', 'MemoFormat',
    'DBFError', 'DBFHeaderError', 'DBFEncodingError', 'ColumnError', 'ColumnLengthError', 'ColumnNameError',
    'DBF_LANG_US', 'DBF_LANG_WESTERN_EUROPE', 'DBF_LANG_JAPAN',
    'DBF_MEMO_BLOCK_SIZE',
    'dbf_file_open', 'dbf_file_close',
    'dbf_file_get_actual_row_count', 'dbf_file_read_row', 'dbf_file_iter_rows',
    'dbf_file_get_fields', 'dbf_file_get_date', 'dbf_file_get_language_driver',
    'build_field_spec'
]
