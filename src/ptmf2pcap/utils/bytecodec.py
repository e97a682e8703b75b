"""
Primitive byte operations used by the PTMF decoder and the PCAP builder.

PTMF header fields are fixed-width and mostly big-endian, PCAP headers are
little-endian and reconstructed network headers use network byte order,
so every integer conversion takes an explicit width and byte order.
"""
from typing import Iterable, List

from ..exceptions import OutOfBoundsError

_MAX_INT_WIDTH = 8


def subrange(data: bytes, start: int, length: int) -> bytes:
    """Return ``length`` bytes of ``data`` starting at ``start``.

    Raises:
        OutOfBoundsError: If the range does not fit inside ``data``.
    """
    if start < 0 or length < 0 or start + length > len(data):
        raise OutOfBoundsError(start, length, len(data))
    return bytes(data[start:start + length])


def concat(chunks: Iterable[bytes]) -> bytes:
    """Concatenate byte chunks in order."""
    return b"".join(chunks)


def find_pattern(data: bytes, offset: int, pattern: bytes) -> bool:
    """True if ``pattern`` matches ``data`` exactly at ``offset``."""
    if offset < 0 or len(data) - offset < len(pattern):
        return False
    return data[offset:offset + len(pattern)] == pattern


def split_on_delimiter(data: bytes, delimiter: bytes) -> List[bytes]:
    """
    Split ``data`` on every non-overlapping occurrence of ``delimiter``.

    Matches are scanned left to right. With no match the whole input is
    returned as a single slice. A leading slice (before the first match) and
    a trailing slice (after the last match) are only included when non-empty;
    empty slices between two consecutive matches are kept.
    """
    if not delimiter:
        raise ValueError("delimiter must not be empty")

    matches = []
    index = data.find(delimiter)
    while index != -1:
        matches.append(index)
        index = data.find(delimiter, index + len(delimiter))

    if not matches:
        return [bytes(data)]

    slices = []
    if matches[0] > 0:
        slices.append(bytes(data[:matches[0]]))
    for current, following in zip(matches, matches[1:]):
        slices.append(bytes(data[current + len(delimiter):following]))
    tail_start = matches[-1] + len(delimiter)
    if tail_start < len(data):
        slices.append(bytes(data[tail_start:]))
    return slices


def int_to_bytes(value: int, width: int, little_endian: bool = False) -> bytes:
    """Encode an unsigned integer into exactly ``width`` bytes."""
    if not 0 < width <= _MAX_INT_WIDTH:
        raise ValueError(f"width must be between 1 and {_MAX_INT_WIDTH}, got {width}")
    return value.to_bytes(width, "little" if little_endian else "big", signed=False)


def bytes_to_int(data: bytes, little_endian: bool = False) -> int:
    """Decode an unsigned integer from up to 8 bytes."""
    if len(data) > _MAX_INT_WIDTH:
        raise ValueError(f"cannot decode {len(data)} bytes into an integer")
    return int.from_bytes(data, "little" if little_endian else "big", signed=False)


def hex_encode(data: bytes) -> str:
    """Uppercase hex representation, e.g. ``b'\\x2c\\x01'`` -> ``'2C01'``."""
    return bytes(data).hex().upper()


def hex_decode(text: str) -> bytes:
    return bytes.fromhex(text)
