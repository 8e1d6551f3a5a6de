"""
Shared helpers for the DBF reader: logging, name conversion,
positioned reads over binary streams and code page lookup.
"""

import io
import logging
import re
import sys
import threading
from typing import BinaryIO, Optional, Union


LOGGER_NAMESPACE = "dbf"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

DEFAULT_ENCODING = "utf-8"

# Language driver byte (header offset 29) -> Python codec
DBF_LANG_US = 0x01
DBF_LANG_WESTERN_EUROPE = 0x02
DBF_LANG_JAPAN = 0x7B

CODE_PAGES = {
    0x01: 'cp437',   # U.S. MS-DOS
    0x02: 'cp850',   # International MS-DOS
    0x03: 'cp1252',  # Windows ANSI
    0x04: 'mac_roman',
    0x08: 'cp865',   # Danish OEM
    0x09: 'cp437',   # Dutch OEM
    0x0A: 'cp850',   # Dutch OEM (secondary)
    0x0B: 'cp437',   # Finnish OEM
    0x0D: 'cp437',   # French OEM
    0x0E: 'cp850',   # French OEM (secondary)
    0x0F: 'cp437',   # German OEM
    0x10: 'cp850',   # German OEM (secondary)
    0x13: 'cp932',   # Japanese Shift-JIS
    0x1F: 'cp852',   # Czech OEM
    0x26: 'cp866',   # Russian OEM
    0x4D: 'cp936',   # Chinese GBK (PRC)
    0x4E: 'cp949',   # Korean
    0x4F: 'cp950',   # Chinese Big 5 (Taiwan)
    0x50: 'cp874',   # Thai
    0x57: 'cp1252',  # ANSI
    0x58: 'cp1252',  # Western European ANSI
    0x59: 'cp1252',  # Spanish ANSI
    0x64: 'cp852',   # Eastern European MS-DOS
    0x65: 'cp866',   # Russian MS-DOS
    0x7B: 'cp932',   # Japanese (dBase)
    0x7C: 'cp874',   # Thai (dBase)
    0xC8: 'cp1250',  # Eastern European Windows
    0xC9: 'cp1251',  # Russian Windows
    0xCA: 'cp1254',  # Turkish Windows
    0xCB: 'cp1253',  # Greek Windows
}


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``dbf`` namespace, e.g. ``dbf.table``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_logging(level: int = logging.INFO, stream=None) -> logging.Logger:
    """
    Attach a stream handler to the ``dbf`` logger.

    Calling it more than once keeps the first handler and only updates the level.
    """
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger


def encoding_for_language_driver(language_driver: int) -> Optional[str]:
    """Map a header language driver id to a codec name (None if unknown or unset)."""
    return CODE_PAGES.get(language_driver)


def underscore(name: str) -> str:
    """
    Convert a column name to lower snake case.

    'FirstName' -> 'first_name', 'CUSTID' -> 'custid', 'ZIP-CODE' -> 'zip_code'
    """
    word = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    word = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", word)
    return word.replace("-", "_").lower()


def _is_seekable(stream) -> bool:
    seekable = getattr(stream, "seekable", None)
    if seekable is not None:
        return seekable()
    return hasattr(stream, "seek")


class StreamReader:
    """
    Positioned reads over a binary stream.

    Every read seeks first, so callers never depend on the current
    position. Seek and read happen under one lock, which makes a single
    reader safe to share between threads.

    A stream that cannot seek (a pipe, a socket, ``sys.stdin.buffer``) is
    read forward only: gaps are skipped by reading, and asking for an
    offset behind the current position raises ``io.UnsupportedOperation``.
    With ``random_access=True`` such a stream is loaded into memory instead.
    """

    SKIP_CHUNK_SIZE = 64 * 1024

    def __init__(self, source: Union[BinaryIO, bytes, bytearray], random_access: bool = False):
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        elif random_access and not _is_seekable(source):
            source = io.BytesIO(source.read())
        self.stream = source
        self.forward_only = not _is_seekable(source)
        self._position = 0
        self._lock = threading.Lock()
        self._size = None

    @property
    def size(self) -> int:
        """Total stream length in bytes."""
        if self.forward_only:
            raise io.UnsupportedOperation("length of a forward-only stream is unknown")
        if self._size is None:
            with self._lock:
                self._size = self.stream.seek(0, io.SEEK_END)
        return self._size

    def read_at(self, offset: int, size: int) -> bytes:
        """Read up to ``size`` bytes at ``offset``; shorter at end of stream."""
        if offset < 0 or size <= 0:
            return b''
        with self._lock:
            if not self.forward_only:
                self.stream.seek(offset)
                return self.stream.read(size)
            if offset < self._position:
                raise io.UnsupportedOperation(
                    f"cannot go back to offset {offset} in a forward-only stream "
                    f"(already at {self._position})")
            gap = offset - self._position
            if self._read_forward(gap) < gap:
                return b''
            data = b''
            while len(data) < size:
                chunk = self.stream.read(size - len(data))
                if not chunk:
                    break
                data += chunk
            self._position += len(data)
            return data

    def _read_forward(self, count: int) -> int:
        skipped = 0
        while skipped < count:
            chunk = self.stream.read(min(count - skipped, self.SKIP_CHUNK_SIZE))
            if not chunk:
                break
            skipped += len(chunk)
        self._position += skipped
        return skipped

    def close(self) -> None:
        self.stream.close()


__all__ = [
    'DEFAULT_ENCODING', 'CODE_PAGES',
    'DBF_LANG_US', 'DBF_LANG_WESTERN_EUROPE', 'DBF_LANG_JAPAN',
    'get_logger', 'configure_logging', 'encoding_for_language_driver',
    'underscore', 'StreamReader'
]
