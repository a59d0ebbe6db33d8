"""
Binary record codec for the XG game data format.

Everything in the format is little-endian. Records are decoded from a
ByteCursor, an explicit read position over an in-memory buffer, so that
decoding never depends on the hidden position of an open file.
"""

import datetime
import struct
import uuid
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional, Sequence

import numpy as np

from .errors import TruncatedInput


DELPHI_EPOCH = datetime.datetime(1899, 12, 30, tzinfo=datetime.timezone.utc)
DEFAULT_BLOCK_SIZE = 32768


def utf16_bytes_to_str(data: bytes) -> str:
    """Decode a fixed-capacity little-endian UTF-16 buffer."""
    if len(data) < 2:
        return ''
    units = np.frombuffer(data, dtype='<u2', count=len(data) // 2)
    nul = np.flatnonzero(units == 0)
    if len(nul):
        units = units[:nul[0]]
    return units.tobytes().decode('utf-16-le', errors='replace')


def delphi_short_str(byte_array: Sequence[int]) -> str:
    """Convert Delphi short string to Python string."""
    length = byte_array[0]
    return bytes(byte_array[1:length + 1]).decode('latin-1')


def delphi_datetime(delphi_dt: float) -> datetime.datetime:
    """Convert Delphi datetime (days since 1899-12-30) to a UTC datetime."""
    days = int(delphi_dt)
    seconds = int((delphi_dt - days) * 86400)
    return DELPHI_EPOCH + datetime.timedelta(days=days, seconds=seconds)


def format_guid(packed: bytes) -> str:
    """Render a 16 byte packed GUID (mixed-endian wire layout)."""
    if len(packed) != 16:
        raise TruncatedInput(f"GUID needs 16 bytes, got {len(packed)}")
    return str(uuid.UUID(bytes_le=bytes(packed)))


class ByteCursor:
    """Read cursor over a byte buffer with explicit position."""

    def __init__(self, data: bytes, pos: int = 0):
        self.data = bytes(data)
        self.pos = pos

    def __len__(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return max(len(self.data) - self.pos, 0)

    def tell(self) -> int:
        return self.pos

    def seek(self, pos: int) -> None:
        if pos < 0 or pos > len(self.data):
            raise TruncatedInput(f"Seek to {pos} outside buffer of {len(self.data)} bytes")
        self.pos = pos

    def skip(self, count: int) -> None:
        self.read(count)

    def read(self, count: int) -> bytes:
        """Consume exactly `count` bytes."""
        if count < 0 or count > self.remaining:
            raise TruncatedInput(
                f"Need {count} bytes at offset {self.pos}, {self.remaining} remain"
            )
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def sub(self, count: int) -> 'ByteCursor':
        """Split off the next `count` bytes as an independent cursor."""
        return ByteCursor(self.read(count))

    def unpack(self, fmt: str) -> tuple:
        """Unpack a little-endian struct format at the cursor."""
        fmt = '<' + fmt.lstrip('<>=!@')
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))

    def int8(self) -> int:
        return self.unpack('b')[0]

    def uint8(self) -> int:
        return self.unpack('B')[0]

    def int16(self) -> int:
        return self.unpack('h')[0]

    def uint16(self) -> int:
        return self.unpack('H')[0]

    def int32(self) -> int:
        return self.unpack('i')[0]

    def uint32(self) -> int:
        return self.unpack('I')[0]

    def int64(self) -> int:
        return self.unpack('q')[0]

    def uint64(self) -> int:
        return self.unpack('Q')[0]

    def float32(self) -> float:
        return self.unpack('f')[0]

    def float64(self) -> float:
        return self.unpack('d')[0]

    def boolean(self, width: int = 1) -> bool:
        return any(self.read(width))

    def int8_array(self, count: int) -> tuple:
        return self.unpack(f'{count}b')

    def int32_array(self, count: int) -> tuple:
        return self.unpack(f'{count}i')

    def float32_array(self, count: int) -> tuple:
        return self.unpack(f'{count}f')

    def utf16_fixed(self, nbytes: int) -> str:
        """Fixed-capacity UTF-16 text field of `nbytes` bytes."""
        return utf16_bytes_to_str(self.read(nbytes))

    def short_string(self, capacity: int) -> str:
        """Delphi string[capacity]: one length byte plus `capacity` bytes."""
        return delphi_short_str(self.read(capacity + 1))

    def delphi_datetime(self) -> datetime.datetime:
        return delphi_datetime(self.float64())

    def guid(self) -> str:
        return format_guid(self.read(16))


def read_exact(stream: BinaryIO, count: int, what: str = "record") -> bytes:
    """Read exactly `count` bytes from a stream or raise TruncatedInput."""
    data = stream.read(count)
    if len(data) != count:
        raise TruncatedInput(f"Short read of {what}: wanted {count} bytes, got {len(data)}")
    return data


@contextmanager
def preserve_position(stream: BinaryIO) -> Iterator[BinaryIO]:
    """Restore the stream position when the block exits."""
    saved = stream.tell()
    try:
        yield stream
    finally:
        stream.seek(saved)


class ChecksumAccumulator:
    """
    Running 32-bit integrity tag used by the archive.

    Each little-endian 32-bit word of input is XORed into the value. Words
    are aligned to the first byte ever fed in; a trailing partial word is
    zero padded when the digest is taken.
    """

    def __init__(self, value: int = 0):
        self.value = value & 0xFFFFFFFF
        self._tail = b''

    def update(self, data: bytes) -> None:
        data = self._tail + bytes(data)
        usable = len(data) - len(data) % 4
        self._tail = data[usable:]
        if usable:
            words = np.frombuffer(data, dtype='<u4', count=usable // 4)
            self.value ^= int(np.bitwise_xor.reduce(words))

    def digest(self) -> int:
        value = self.value
        if self._tail:
            value ^= int.from_bytes(self._tail.ljust(4, b'\0'), 'little')
        return value


def stream_checksum(
    stream: BinaryIO,
    num_bytes: int = 0,
    start_pos: Optional[int] = None,
    block_size: int = DEFAULT_BLOCK_SIZE
) -> int:
    """
    Checksum a region of a seekable stream.

    Args:
        stream: Binary stream to read from
        num_bytes: Bytes to consume, or 0 to read to end of stream
        start_pos: Absolute start offset (defaults to current position)
        block_size: Read size per iteration

    Returns:
        32-bit checksum; the stream position is left unchanged
    """
    acc = ChecksumAccumulator()
    with preserve_position(stream):
        if start_pos is not None:
            stream.seek(start_pos)

        if num_bytes <= 0:
            while True:
                block = stream.read(block_size)
                if not block:
                    break
                acc.update(block)
        else:
            left = num_bytes
            while left > 0:
                block = stream.read(min(block_size, left))
                if not block:
                    raise TruncatedInput(f"Checksum region ended {left} bytes early")
                acc.update(block)
                left -= len(block)

    return acc.digest()
