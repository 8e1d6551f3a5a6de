"""
Read-only access to dBase (.DBF) tables.

A table file is a 32-byte header, a block of 32-byte field descriptors
ended by 0x0D, and fixed-width records that each start with a delete
flag byte. Memo fields point into a companion memo file.
"""

import codecs
import datetime
import struct
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Union

from dbf_column import DBF_FIELD_DESCRIPTOR_MIN_SIZE, DBF_FIELD_DESCRIPTOR_SIZE, DBFColumn
from dbf_errors import DBFEncodingError, DBFHeaderError
from dbf_memo import DBFMemo, MemoFormat, open_memo
from dbf_record import decode_record
from dbf_util import (
    DEFAULT_ENCODING, StreamReader, encoding_for_language_driver, get_logger
)


# Constants
DBF_HEADER_SIZE = 32
DBF_HEADER_TERMINATOR = 0x0D

VERSIONS = {
    0x02: "FoxBase",
    0x03: "dBase III without memo file",
    0x04: "dBase IV without memo file",
    0x05: "dBase V without memo file",
    0x07: "Visual Objects 1.x",
    0x30: "Visual FoxPro",
    0x31: "Visual FoxPro with AutoIncrement field",
    0x32: "Visual FoxPro with field type Varchar or Varbinary",
    0x43: "dBASE IV SQL table files, no memo",
    0x63: "dBASE IV SQL system files, no memo",
    0x7B: "dBase IV with memo file",
    0x83: "dBase III with memo file",
    0x87: "Visual Objects 1.x with memo file",
    0x8B: "dBase IV with memo file",
    0x8E: "dBase IV with SQL table",
    0xCB: "dBASE IV SQL table files, with memo",
    0xF5: "FoxPro with memo file",
    0xFB: "FoxPro without memo file",
}

logger = get_logger("table")


@dataclass
class DBFHeader:
    """Represents the header of a DBF file."""
    version: int = 0  # dBase version, e.g., 0x03 for dBase III
    year: int = 0  # Last update year (since 1900)
    month: int = 0  # Last update month
    day: int = 0  # Last update day
    record_count: int = 0  # Number of records
    header_size: int = 0  # Header size in bytes
    record_size: int = 0  # Record size in bytes
    language_driver: int = 0  # dBase IV language driver id
    fields: List[DBFColumn] = field(default_factory=list)  # Field descriptors

    @property
    def field_count(self) -> int:
        return len(self.fields)


def read_dbf_header(reader: StreamReader) -> DBFHeader:
    """
    Read the file header and the field descriptor block.

    Raises:
        DBFHeaderError: if the header is short or its sizes are inconsistent
    """
    buf = reader.read_at(0, DBF_HEADER_SIZE)
    if len(buf) < DBF_HEADER_SIZE:
        raise DBFHeaderError(f"file header truncated: {len(buf)} of {DBF_HEADER_SIZE} bytes")

    header = DBFHeader(
        version=buf[0],
        year=buf[1],
        month=buf[2],
        day=buf[3],
        record_count=struct.unpack("<L", buf[4:8])[0],
        header_size=struct.unpack("<H", buf[8:10])[0],
        record_size=struct.unpack("<H", buf[10:12])[0],
        language_driver=buf[29],
    )

    if header.record_size <= 0:
        raise DBFHeaderError("record length must be greater than 0")
    if header.header_size < DBF_HEADER_SIZE:
        raise DBFHeaderError(f"header length {header.header_size} is smaller than {DBF_HEADER_SIZE}")

    if not reader.forward_only and reader.size < header.header_size:
        raise DBFHeaderError(
            f"file is {reader.size} bytes but declares a {header.header_size}-byte header")

    # Read field descriptors until 0x0D or a zero-length descriptor
    offset = DBF_HEADER_SIZE
    while offset < header.header_size:
        wanted = min(DBF_FIELD_DESCRIPTOR_SIZE, header.header_size - offset)
        field_buf = reader.read_at(offset, wanted)
        if len(field_buf) < wanted:
            raise DBFHeaderError(
                f"file ends at byte {offset + len(field_buf)}, inside the declared "
                f"{header.header_size}-byte header")
        # Bytes left over after the last descriptor are padding
        if field_buf[0] == DBF_HEADER_TERMINATOR or wanted < DBF_FIELD_DESCRIPTOR_MIN_SIZE:
            break
        column = DBFColumn.parse(field_buf)
        if column is None:
            break
        header.fields.append(column)
        offset += DBF_FIELD_DESCRIPTOR_SIZE

    names = [column.name for column in header.fields]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        logger.warning("duplicate column names %s; later columns hide earlier ones in records",
                       ", ".join(duplicates))

    # First byte of each record is the delete flag
    schema_size = 1 + sum(column.length for column in header.fields)
    if schema_size > header.record_size:
        raise DBFHeaderError(
            f"columns need {schema_size} bytes but records are {header.record_size} bytes")

    return header


class DBFTable:
    """
    A dBase table opened for reading.

    Args:
        data: Table stream or bytes
        memo: Memo file stream or bytes, if the table has one
        encoding: Codec for character fields and text memos; defaults to the
            code page named by the language driver, then utf-8
        memo_format: Force the memo layout instead of deriving it from the version
        memo_block_size: Force the memo block size
    """

    def __init__(self, data: Union[BinaryIO, bytes], memo: Union[BinaryIO, bytes, None] = None,
                 encoding: Optional[str] = None, memo_format: Optional[MemoFormat] = None,
                 memo_block_size: Optional[int] = None):
        self.reader = StreamReader(data)
        self.header = read_dbf_header(self.reader)
        self.encoding = (encoding
                         or encoding_for_language_driver(self.header.language_driver)
                         or DEFAULT_ENCODING)
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise DBFEncodingError(f"unknown encoding: {self.encoding}") from None
        self.memo = self._open_memo(memo, memo_format, memo_block_size)

        logger.info("opened %s table: %d records, %d columns",
                    self.version_description, self.record_count, len(self.columns))

    @classmethod
    def open(cls, data: Union[BinaryIO, bytes], memo: Union[BinaryIO, bytes, None] = None,
             encoding: Optional[str] = None, memo_format: Optional[MemoFormat] = None,
             memo_block_size: Optional[int] = None) -> 'DBFTable':
        return cls(data, memo, encoding=encoding, memo_format=memo_format,
                   memo_block_size=memo_block_size)

    def _open_memo(self, memo, memo_format, memo_block_size) -> Optional[DBFMemo]:
        if not any(column.is_memo for column in self.columns):
            return None
        if memo is None:
            logger.warning("table has memo columns but no memo file; memo values will be None")
            return None
        return open_memo(memo, self.header.version, encoding=self.encoding,
                         memo_format=memo_format, block_size=memo_block_size)

    @property
    def columns(self) -> List[DBFColumn]:
        return self.header.fields

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def record_count(self) -> int:
        """Record count declared in the header, deleted records included."""
        return self.header.record_count

    @property
    def record_size(self) -> int:
        return self.header.record_size

    @property
    def version(self) -> int:
        return self.header.version

    @property
    def version_description(self) -> str:
        return VERSIONS.get(self.header.version, f"unknown version 0x{self.header.version:02X}")

    @property
    def language_driver(self) -> int:
        return self.header.language_driver

    @property
    def has_memo_file(self) -> bool:
        return self.memo is not None

    @property
    def last_updated(self) -> Optional[datetime.date]:
        """Last update date from the header, None if the stored date is invalid."""
        try:
            return datetime.date(1900 + self.header.year, self.header.month, self.header.day)
        except ValueError:
            return None

    def read_raw(self, index: int) -> bytes:
        """Raw record bytes at a zero-based index; short or empty past the end of the file."""
        position = self.header.header_size + index * self.header.record_size
        return self.reader.read_at(position, self.header.record_size)

    def records(self, include_deleted: bool = False) -> Iterator[Dict[str, Any]]:
        """
        Iterate over decoded records in file order.

        Args:
            include_deleted: Also yield records flagged as deleted

        Yields:
            Dict of column name -> value for each record
        """
        for index in range(self.record_count):
            raw = self.read_raw(index)
            if len(raw) < self.header.record_size:
                logger.warning("record %d is truncated; file holds %d of %d declared records",
                               index, index, self.record_count)
                return
            deleted, values = decode_record(raw, self.columns, self.memo, self.encoding)
            if deleted and not include_deleted:
                continue
            yield values

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return self.records()

    def record(self, index: int) -> Optional[Dict[str, Any]]:
        """
        Decode the record at a zero-based index.

        Returns:
            The record values, or None if the record is deleted or missing from the file

        Raises:
            IndexError: if index is outside the declared record count
        """
        if index < 0 or index >= self.record_count:
            raise IndexError(f"record index {index} out of range")
        raw = self.read_raw(index)
        if len(raw) < self.header.record_size:
            return None
        deleted, values = decode_record(raw, self.columns, self.memo, self.encoding)
        return None if deleted else values

    def _matches(self, values: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
        for key, expected in conditions.items():
            name = self._column_key(key)
            if name is None or values.get(name) != expected:
                return False
        return True

    def _column_key(self, key: str) -> Optional[str]:
        for column in self.columns:
            if key == column.name or key == column.underscored_name:
                return column.name
        return None

    def find_all(self, **conditions) -> List[Dict[str, Any]]:
        """
        Return every live record whose values equal the given conditions.

        Condition keys may be column names or their underscored form:
        ``table.find_all(first_name='Keith')``.
        """
        return [values for values in self.records() if self._matches(values, conditions)]

    def find_first(self, **conditions) -> Optional[Dict[str, Any]]:
        """Return the first live record matching the conditions, or None."""
        for values in self.records():
            if self._matches(values, conditions):
                return values
        return None

    def close(self) -> None:
        self.reader.close()
        if self.memo is not None:
            self.memo.close()

    def __enter__(self) -> 'DBFTable':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    'DBFHeader', 'DBFTable', 'read_dbf_header',
    'DBF_HEADER_SIZE', 'DBF_HEADER_TERMINATOR', 'VERSIONS'
]
