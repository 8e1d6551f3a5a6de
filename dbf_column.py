"""
Column descriptors for dBase (.DBF) tables.
Parses the descriptor block entries and casts raw field bytes to Python values.
"""

import datetime
import re
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from dbf_errors import ColumnLengthError, ColumnNameError, DBFHeaderError
from dbf_util import DEFAULT_ENCODING, underscore


# Descriptor layout: name(10) + reserved(1) + type(1) + reserved(4) + length(1) + decimals(1)
DBF_FIELD_NAME_SIZE = 10
DBF_FIELD_DESCRIPTOR_MIN_SIZE = 18
DBF_FIELD_DESCRIPTOR_SIZE = 32

# Julian day number of 0001-01-01 minus one, so JD - offset == proleptic ordinal
JULIAN_DAY_OFFSET = 1721425

_INTEGER_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_LOGICAL_TRUE_RE = re.compile(r"[yt]", re.IGNORECASE)


class ColumnType(Enum):
    """Column kinds understood by the reader, keyed by their type tag."""
    CHARACTER = 'C'
    NUMBER = 'N'
    FLOAT = 'F'
    DATE = 'D'
    DATETIME = 'T'
    LOGICAL = 'L'
    INTEGER = 'I'
    MEMO = 'M'

    @classmethod
    def from_tag(cls, tag: str) -> Optional['ColumnType']:
        """Return the column kind for a type tag, or None for unknown tags."""
        try:
            return cls(tag)
        except ValueError:
            return None


def clean_name(raw: bytes) -> str:
    """Truncate a field name at the first NUL and drop non-printable bytes."""
    first_null = raw.find(b'\x00')
    if first_null >= 0:
        raw = raw[:first_null]
    return ''.join(chr(b) for b in raw if 0x20 <= b <= 0x7E)


def _ascii(raw: bytes) -> str:
    return raw.decode('ascii', errors='ignore').strip()


def unpack_number(raw: bytes, decimals: int):
    """Numeric text to int (no decimals) or float; malformed text gives zero."""
    text = _ascii(raw)
    if decimals == 0:
        match = _INTEGER_RE.match(text)
        return int(match.group()) if match else 0
    return unpack_float(raw)


def unpack_float(raw: bytes) -> float:
    match = _FLOAT_RE.match(_ascii(raw))
    return float(match.group()) if match else 0.0


def unpack_unsigned_long(raw: bytes) -> int:
    return struct.unpack("<L", raw)[0]


def decode_date(raw: bytes) -> Optional[datetime.date]:
    """YYYYMMDD with spaces read as zeros; blank or invalid dates give None."""
    text = raw.decode('ascii', errors='ignore')
    if not text.strip():
        return None
    text = text.replace(' ', '0')
    if len(text) != 8 or not text.isdigit():
        return None
    try:
        return datetime.date(int(text[0:4]), int(text[4:6]), int(text[6:8]))
    except ValueError:
        return None


def decode_datetime(raw: bytes) -> Optional[datetime.datetime]:
    """Julian day + milliseconds since midnight; invalid combinations give None."""
    if len(raw) != 8:
        return None
    days, milliseconds = struct.unpack("<2l", raw)
    seconds = milliseconds // 1000
    try:
        day = datetime.date.fromordinal(days - JULIAN_DAY_OFFSET)
        return datetime.datetime(day.year, day.month, day.day,
                                 seconds // 3600, seconds // 60 % 60, seconds % 60)
    except (ValueError, OverflowError):
        return None


def decode_logical(raw: bytes) -> bool:
    return bool(_LOGICAL_TRUE_RE.fullmatch(_ascii(raw)))


def decode_string(raw: bytes, encoding: Optional[str] = None) -> str:
    """Decode character data and trim trailing blanks and NUL padding."""
    text = raw.decode(encoding or DEFAULT_ENCODING, errors='replace')
    return text.rstrip(' \t\r\n\x00')


@dataclass(frozen=True)
class DBFColumn:
    """Represents a column/field in a DBF file."""
    name: str  # Cleaned field name
    field_type: str  # 'C', 'N', 'L', etc.
    length: int  # Field length in bytes
    decimals: int = 0  # Number of decimal places (for numeric)

    def __post_init__(self):
        if self.length <= 0:
            raise ColumnLengthError("field length must be greater than 0")
        if not self.name:
            raise ColumnNameError("column name cannot be empty")

    @classmethod
    def parse(cls, data: bytes) -> Optional['DBFColumn']:
        """
        Build a column from one descriptor entry.

        Args:
            data: Descriptor bytes (32 on disk; only the first 18 are used)

        Returns:
            The column, or None for a zero-length descriptor that ends the block
        """
        if len(data) < DBF_FIELD_DESCRIPTOR_MIN_SIZE:
            raise DBFHeaderError(
                f"field descriptor truncated: {len(data)} of {DBF_FIELD_DESCRIPTOR_MIN_SIZE} bytes")
        length = data[16]
        if length == 0:
            return None
        name = clean_name(data[:DBF_FIELD_NAME_SIZE])
        return cls(
            name=name,
            field_type=chr(data[11]),
            length=length,
            decimals=data[17],
        )

    @property
    def kind(self) -> Optional[ColumnType]:
        return ColumnType.from_tag(self.field_type)

    @property
    def is_memo(self) -> bool:
        return self.field_type == ColumnType.MEMO.value

    @property
    def underscored_name(self) -> str:
        return underscore(self.name)

    def cast(self, raw: bytes, encoding: Optional[str] = None) -> Any:
        """
        Cast raw field bytes to a native value.

        Args:
            raw: Field bytes sliced from the record
            encoding: Source codec for character data

        Returns:
            int, float, date, datetime, bool, str or None
        """
        kind = self.kind
        if kind is ColumnType.NUMBER:
            return unpack_number(raw, self.decimals)
        if kind is ColumnType.INTEGER:
            return unpack_unsigned_long(raw)
        if kind is ColumnType.FLOAT:
            return unpack_float(raw)
        if kind is ColumnType.DATE:
            return decode_date(raw)
        if kind is ColumnType.DATETIME:
            return decode_datetime(raw)
        if kind is ColumnType.LOGICAL:
            return decode_logical(raw)
        return decode_string(raw, encoding)

    def schema_data_type(self) -> str:
        kind = self.kind
        if kind in (ColumnType.NUMBER, ColumnType.FLOAT):
            return ":float" if self.decimals > 0 else ":integer"
        if kind is ColumnType.INTEGER:
            return ":integer"
        if kind is ColumnType.DATE:
            return ":date"
        if kind is ColumnType.DATETIME:
            return ":datetime"
        if kind is ColumnType.LOGICAL:
            return ":boolean"
        if kind is ColumnType.MEMO:
            return ":text"
        return f":string, :limit => {self.length}"

    def schema_definition(self) -> str:
        """Column entry for a schema listing, e.g. '"first_name", :string, :limit => 20'."""
        return f'"{self.underscored_name}", {self.schema_data_type()}'


__all__ = [
    'ColumnType', 'DBFColumn',
    'DBF_FIELD_DESCRIPTOR_SIZE', 'DBF_FIELD_DESCRIPTOR_MIN_SIZE',
    'clean_name', 'decode_date', 'decode_datetime', 'decode_logical', 'decode_string',
    'unpack_number', 'unpack_float', 'unpack_unsigned_long'
]
