"""
Memo file readers for dBase (.DBT) and FoxPro (.FPT) companion files.

Memo fields in a table record hold a block number. The memo file is split
into fixed-size blocks and the content starts at ``block * block_size``:

- dBase III: raw text ended by 0x1A, block size always 512
- dBase IV: 8-byte block header, block size stored in the file header
- FoxPro: 8-byte big-endian block header, block size at offset 6
"""

import struct
from enum import Enum
from typing import BinaryIO, Optional, Union

from dbf_util import DEFAULT_ENCODING, StreamReader, get_logger


DBF_MEMO_BLOCK_SIZE = 512
FPT_DEFAULT_BLOCK_SIZE = 64
DBF_MEMO_TERMINATOR = b'\x1A'
DBF_MEMO_BLOCK_HEADER_SIZE = 8
DBF_MAX_MEMO_SIZE = 1048576  # 1MB

DBASE4_MEMO_SIGNATURE = b'\xFF\xFF\x08\x00'

MEMO_TYPE_PICTURE = 0
MEMO_TYPE_TEXT = 1
MEMO_TYPE_BINARY = 2

DBASE3_VERSIONS = {0x03, 0x83}
DBASE4_VERSIONS = {0x04, 0x05, 0x7B, 0x8B, 0x8E, 0xCB}
FOXPRO_VERSIONS = {0x30, 0x31, 0x32, 0xF5, 0xFB}

logger = get_logger("memo")


class MemoFormat(Enum):
    DBASE3 = 'dbase3'
    DBASE4 = 'dbase4'
    FOXPRO = 'foxpro'


def memo_format_for_version(version: int) -> MemoFormat:
    """Pick the memo layout implied by the table version byte."""
    if version in FOXPRO_VERSIONS:
        return MemoFormat.FOXPRO
    if version in DBASE4_VERSIONS:
        return MemoFormat.DBASE4
    return MemoFormat.DBASE3


class DBFMemo:
    """
    Base memo reader.

    Subclasses set the block size and implement ``_read_block``.
    ``resolve`` never raises for bad pointers or damaged blocks; it
    returns None so a corrupt memo cannot stop a table scan.
    """

    format = None

    def __init__(self, source: Union[BinaryIO, bytes, StreamReader],
                 encoding: Optional[str] = None, block_size: Optional[int] = None):
        self.reader = (source if isinstance(source, StreamReader)
                       else StreamReader(source, random_access=True))
        self.encoding = encoding or DEFAULT_ENCODING
        self.block_size = block_size or self._read_block_size()

    def _read_block_size(self) -> int:
        return DBF_MEMO_BLOCK_SIZE

    def _read_block(self, offset: int) -> Optional[Union[str, bytes]]:
        raise NotImplementedError

    def decode_text(self, data: bytes) -> str:
        return data.decode(self.encoding, errors='replace')

    def resolve(self, block: int) -> Optional[Union[str, bytes]]:
        """
        Read the memo stored at a block.

        Args:
            block: Block number taken from the record's memo field

        Returns:
            str for text memos, bytes for binary memos, None if not found
        """
        if block <= 0:
            return None
        offset = block * self.block_size
        if offset >= self.reader.size:
            logger.debug("memo block %d is past the end of the memo file", block)
            return None
        return self._read_block(offset)

    def close(self) -> None:
        self.reader.close()


class DBase3Memo(DBFMemo):
    """dBase III memo: text runs from the block start up to the 0x1A marker."""

    format = MemoFormat.DBASE3

    def _read_block(self, offset: int) -> Optional[str]:
        data = b''
        position = offset
        while len(data) < DBF_MAX_MEMO_SIZE:
            chunk = self.reader.read_at(position, self.block_size)
            if not chunk:
                break
            data += chunk
            terminator_pos = data.find(DBF_MEMO_TERMINATOR)
            if terminator_pos >= 0:
                return self.decode_text(data[:terminator_pos])
            position += len(chunk)
        logger.debug("memo at offset %d has no terminator", offset)
        return None


class DBase4Memo(DBFMemo):
    """
    dBase IV memo with an 8-byte header per entry.

    Entries written by dBase IV start with FF FF 08 00 and a length that
    includes the header. Other writers store the memo type (1 text,
    2 binary) and the payload length instead.
    """

    format = MemoFormat.DBASE4

    def _read_block_size(self) -> int:
        header = self.reader.read_at(0, 22)
        for start in (4, 20):
            if len(header) >= start + 2:
                size = struct.unpack("<H", header[start:start + 2])[0]
                if size:
                    return size
        return DBF_MEMO_BLOCK_SIZE

    def _read_block(self, offset: int) -> Optional[Union[str, bytes]]:
        header = self.reader.read_at(offset, DBF_MEMO_BLOCK_HEADER_SIZE)
        if len(header) < DBF_MEMO_BLOCK_HEADER_SIZE:
            logger.debug("memo header at offset %d is truncated", offset)
            return None

        if header[:4] == DBASE4_MEMO_SIGNATURE:
            memo_type = MEMO_TYPE_TEXT
            memo_len = struct.unpack("<L", header[4:8])[0] - DBF_MEMO_BLOCK_HEADER_SIZE
        else:
            memo_type, memo_len = struct.unpack("<2L", header)
            if memo_type not in (MEMO_TYPE_TEXT, MEMO_TYPE_BINARY):
                logger.debug("unknown memo type %d at offset %d", memo_type, offset)
                return None

        data = _read_payload(self.reader, offset, memo_len)
        if data is None:
            return None
        return self.decode_text(data) if memo_type == MEMO_TYPE_TEXT else data


class FoxProMemo(DBFMemo):
    """FoxPro memo: big-endian block size at offset 6, big-endian type and length per entry."""

    format = MemoFormat.FOXPRO

    def _read_block_size(self) -> int:
        header = self.reader.read_at(6, 2)
        if len(header) == 2:
            size = struct.unpack(">H", header)[0]
            if size:
                return size
        return FPT_DEFAULT_BLOCK_SIZE

    def _read_block(self, offset: int) -> Optional[Union[str, bytes]]:
        header = self.reader.read_at(offset, DBF_MEMO_BLOCK_HEADER_SIZE)
        if len(header) < DBF_MEMO_BLOCK_HEADER_SIZE:
            logger.debug("memo header at offset %d is truncated", offset)
            return None
        memo_type, memo_len = struct.unpack(">2L", header)
        data = _read_payload(self.reader, offset, memo_len)
        if data is None:
            return None
        return self.decode_text(data) if memo_type == MEMO_TYPE_TEXT else data


def _read_payload(reader: StreamReader, offset: int, memo_len: int) -> Optional[bytes]:
    if memo_len < 0 or memo_len > DBF_MAX_MEMO_SIZE:
        logger.debug("memo at offset %d has invalid length %d", offset, memo_len)
        return None
    data = reader.read_at(offset + DBF_MEMO_BLOCK_HEADER_SIZE, memo_len)
    if len(data) < memo_len:
        logger.debug("memo at offset %d is truncated: %d of %d bytes", offset, len(data), memo_len)
        return None
    return data


MEMO_CLASSES = {
    MemoFormat.DBASE3: DBase3Memo,
    MemoFormat.DBASE4: DBase4Memo,
    MemoFormat.FOXPRO: FoxProMemo,
}


def open_memo(source: Union[BinaryIO, bytes], version: int = 0x83,
              encoding: Optional[str] = None,
              memo_format: Optional[MemoFormat] = None,
              block_size: Optional[int] = None) -> DBFMemo:
    """
    Create the memo reader matching a table.

    Args:
        source: Memo file stream or bytes
        version: Version byte of the owning table
        encoding: Codec for text memos
        memo_format: Force a layout instead of deriving it from ``version``
        block_size: Force a block size instead of reading it from the memo header

    Returns:
        A DBFMemo subclass instance
    """
    memo_format = memo_format or memo_format_for_version(version)
    return MEMO_CLASSES[memo_format](source, encoding=encoding, block_size=block_size)


__all__ = [
    'MemoFormat', 'DBFMemo', 'DBase3Memo', 'DBase4Memo', 'FoxProMemo',
    'open_memo', 'memo_format_for_version',
    'DBF_MEMO_BLOCK_SIZE', 'FPT_DEFAULT_BLOCK_SIZE', 'DBF_MAX_MEMO_SIZE',
    'MEMO_TYPE_PICTURE', 'MEMO_TYPE_TEXT', 'MEMO_TYPE_BINARY'
]
