"""Binary snapshot format for the AVL store.

    [entry_count : u64]
    entry_count times, ascending key order:
        [key_length : u16][key_bytes : key_length][value : u64]

Every integer is little-endian. Keys are UTF-8 without a terminator.
There is no header, version tag or checksum.
"""
from __future__ import annotations
from typing import BinaryIO, Iterable, Iterator, Tuple
import struct

_COUNT = struct.Struct('<Q')
_KEY_LEN = struct.Struct('<H')
_VALUE = struct.Struct('<Q')

KEY_ENCODING = 'utf-8'
MAX_KEY_BYTES = 0xFFFF
MAX_VALUE = 2**64 - 1


class StoreError(Exception):
    pass


class StoreIOError(StoreError):
    """The snapshot file could not be opened, read or written."""


class FormatError(StoreError):
    """The byte stream does not hold the declared number of entries."""


def encode_key(key: str) -> bytes:
    b = key.encode(KEY_ENCODING)
    if len(b) > MAX_KEY_BYTES:
        raise ValueError(f"Key is {len(b)} bytes, at most {MAX_KEY_BYTES} are storable")
    return b

def check_value(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Value must be an integer, got {type(value).__name__}")
    if not 0 <= value <= MAX_VALUE:
        raise ValueError(f"Value {value} is outside the unsigned 64-bit range")
    return value


# ----------------------------- Writing ---------------------------------------

def _write(fh: BinaryIO, b: bytes) -> int:
    try:
        fh.write(b)
    except OSError as e:
        raise StoreIOError(f"write failure: {e}") from e
    return len(b)

def write_entries(fh: BinaryIO, count: int, entries: Iterable[Tuple[str, int]]) -> int:
    """Write ``count`` followed by ``entries``; return the number of bytes written.

    The caller guarantees ``count`` matches ``entries``.
    """
    written = _write(fh, _COUNT.pack(count))
    for key, value in entries:
        kb = encode_key(key)
        written += _write(fh, _KEY_LEN.pack(len(kb)) + kb + _VALUE.pack(value))
    return written


# ----------------------------- Reading ---------------------------------------

def _read_exact(fh: BinaryIO, n: int, what: str) -> bytes:
    try:
        b = fh.read(n)
    except OSError as e:
        raise StoreIOError(f"read failure: {e}") from e
    if len(b) != n:
        raise FormatError(f"invalid format: truncated {what} ({len(b)} of {n} bytes)")
    return b

def read_count(fh: BinaryIO) -> int:
    (count,) = _COUNT.unpack(_read_exact(fh, _COUNT.size, "entry count"))
    return count

def read_entries(fh: BinaryIO) -> Iterator[Tuple[str, int]]:
    """Yield ``(key, value)`` pairs; raises FormatError on a short stream."""
    count = read_count(fh)
    for i in range(count):
        (klen,) = _KEY_LEN.unpack(_read_exact(fh, _KEY_LEN.size, f"key length of entry {i}"))
        kb = _read_exact(fh, klen, f"key of entry {i}")
        (value,) = _VALUE.unpack(_read_exact(fh, _VALUE.size, f"value of entry {i}"))
        try:
            key = kb.decode(KEY_ENCODING)
        except UnicodeDecodeError as e:
            raise FormatError(f"invalid format: key of entry {i} is not {KEY_ENCODING}") from e
        yield key, value
