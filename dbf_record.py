"""
Record decoding for dBase (.DBF) tables.
Turns one fixed-width record into a dict of column name -> value.
"""

import struct
from typing import Any, Dict, List, Optional, Tuple

from dbf_column import DBFColumn
from dbf_memo import DBFMemo
from dbf_util import get_logger


DBF_DELETED_FLAG = ord('*')

# Errors a single bad field may raise while casting; anything else propagates
FIELD_DECODE_ERRORS = (ValueError, struct.error, OverflowError, UnicodeError)

logger = get_logger("record")


def memo_block_pointer(raw: bytes) -> int:
    """
    Read the memo block number stored in a memo field.

    dBase stores the number as right-aligned ASCII digits. Visual FoxPro
    uses a 4-byte little-endian integer instead.

    Returns:
        Block number, 0 when the field is blank or unreadable
    """
    text = raw.decode('ascii', errors='ignore').strip()
    if not raw.strip(b' '):
        return 0
    if text.isdigit():
        return int(text)
    if len(raw) == 4:
        return struct.unpack("<L", raw)[0]
    return 0


def decode_field(column: DBFColumn, raw: bytes, memo: Optional[DBFMemo] = None,
                 encoding: Optional[str] = None) -> Any:
    if column.is_memo:
        if memo is None:
            return None
        return memo.resolve(memo_block_pointer(raw))
    return column.cast(raw, encoding)


def decode_record(raw: bytes, columns: List[DBFColumn], memo: Optional[DBFMemo] = None,
                  encoding: Optional[str] = None) -> Tuple[bool, Dict[str, Any]]:
    """
    Decode one record.

    Args:
        raw: Record bytes; the first byte is the delete flag
        columns: Table schema in on-disk order
        memo: Memo reader for memo columns (memo values are None without one)
        encoding: Codec for character fields

    Returns:
        Tuple of (deleted, values) where values maps column name to value
    """
    deleted = bool(raw) and raw[0] == DBF_DELETED_FLAG
    values = {}

    offset = 1  # First byte is delete flag
    for column in columns:
        field_bytes = raw[offset:offset + column.length]
        offset += column.length
        try:
            values[column.name] = decode_field(column, field_bytes, memo, encoding)
        except FIELD_DECODE_ERRORS as e:
            logger.debug("could not decode field %s (%r): %s", column.name, field_bytes, e)
            values[column.name] = None

    return deleted, values


__all__ = ['DBF_DELETED_FLAG', 'decode_record', 'decode_field', 'memo_block_pointer']
