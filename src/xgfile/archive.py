"""
Zlib archive reader.

The tail of an XG file is a small archive: payload data, then a registry of
file records, then a fixed-size trailer. Only the trailer has a known
position (the last 36 bytes of the file), so everything else is found by
working backwards from it:

    registry start     = trailer start - registry size
    archive data start = registry start - archive size
"""

import io
import os
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .codec import (
    DEFAULT_BLOCK_SIZE,
    ByteCursor,
    preserve_position,
    read_exact,
    stream_checksum,
)
from .errors import FormatInconsistency, TruncatedInput


TRAILER_SIZE = 36
FILE_RECORD_SIZE = 532
NAME_FIELD_SIZE = 256
TEMP_PREFIX = "tmpXGI"


def _trim_name(raw: bytes) -> str:
    """NUL-trim a 256 byte name field, dropping a short-string length prefix."""
    trimmed = raw.strip(b'\x00')
    if trimmed and trimmed[0] == len(trimmed) - 1:
        trimmed = trimmed[1:]
    return trimmed.decode('latin-1')


@dataclass
class ArchiveRecord:
    """Trailer record at the very end of the file."""
    crc: int
    file_count: int
    version: int
    registry_size: int
    archive_size: int
    compressed_registry: bool
    reserved: bytes = b''

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> 'ArchiveRecord':
        crc, file_count, version, registry_size, archive_size, compressed, reserved = \
            cursor.unpack('IiiiiI12s')
        return cls(
            crc=crc,
            file_count=file_count,
            version=version,
            registry_size=registry_size,
            archive_size=archive_size,
            compressed_registry=bool(compressed),
            reserved=reserved
        )


@dataclass
class FileRecord:
    """One registry row describing an archived file."""
    name: str
    path: str
    osize: int
    csize: int
    start: int
    crc: int
    compressed: bool
    compression_level: int = 0

    @property
    def stored_size(self) -> int:
        """Bytes this entry occupies in the archive data region, for either kind."""
        return self.csize

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> 'FileRecord':
        name = _trim_name(cursor.read(NAME_FIELD_SIZE))
        path = _trim_name(cursor.read(NAME_FIELD_SIZE))
        osize, csize, start, crc, compressed, level = cursor.unpack('iiiIBB2x')
        return cls(
            name=name,
            path=path,
            osize=osize,
            csize=csize,
            start=start,
            crc=crc,
            compressed=bool(compressed),
            compression_level=level
        )


class ZlibArchive:
    """Reader for the archive embedded at the end of an XG file."""

    def __init__(
        self,
        filename: str,
        block_size: int = DEFAULT_BLOCK_SIZE,
        temp_dir: Optional[str] = None,
        temp_prefix: str = TEMP_PREFIX
    ):
        self.filename = str(filename)
        self.set_block_size(block_size)
        self.temp_dir = temp_dir
        self.temp_prefix = temp_prefix

        self.arc_rec: Optional[ArchiveRecord] = None
        self.arc_registry: list[FileRecord] = []
        self.start_of_arc_data = 0
        self.end_of_arc_data = 0

        self.stream: BinaryIO = open(self.filename, 'rb')
        try:
            self._get_archive_index()
        except Exception:
            self.stream.close()
            raise

    def __enter__(self) -> 'ZlibArchive':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self.arc_registry)

    def __len__(self) -> int:
        return len(self.arc_registry)

    def close(self) -> None:
        self.stream.close()

    def set_block_size(self, block_size: int) -> None:
        if block_size <= 0:
            raise ValueError(f"Block size must be positive, got {block_size}")
        self.block_size = block_size

    def _get_archive_index(self) -> None:
        """Parse the trailer and registry, leaving the stream where it was."""
        with preserve_position(self.stream):
            file_size = self.stream.seek(0, os.SEEK_END)
            if file_size < TRAILER_SIZE:
                raise TruncatedInput("File too small to hold an archive trailer", self.filename)

            self.end_of_arc_data = self.stream.seek(file_size - TRAILER_SIZE)
            trailer = read_exact(self.stream, TRAILER_SIZE, "archive trailer")
            self.arc_rec = ArchiveRecord.from_cursor(ByteCursor(trailer))
            rec = self.arc_rec

            if rec.file_count < 0 or rec.registry_size < 0 or rec.archive_size < 0:
                raise FormatInconsistency("Negative size in archive trailer", self.filename)

            registry_start = self.end_of_arc_data - rec.registry_size
            self.start_of_arc_data = registry_start - rec.archive_size
            if self.start_of_arc_data < 0:
                raise FormatInconsistency(
                    "Archive trailer points before the start of the file", self.filename
                )

            self.stream.seek(registry_start)
            registry = self._read_registry(rec)

        cursor = ByteCursor(registry)
        for index in range(rec.file_count):
            if cursor.remaining < FILE_RECORD_SIZE:
                raise TruncatedInput(
                    f"Registry holds {index} of {rec.file_count} records", self.filename
                )
            filerec = FileRecord.from_cursor(cursor)
            if filerec.start < 0 or filerec.start + filerec.stored_size > rec.archive_size:
                raise FormatInconsistency(
                    f"Entry {filerec.name!r} extends past the archive data region",
                    self.filename
                )
            self.arc_registry.append(filerec)

    def _read_registry(self, rec: ArchiveRecord) -> bytes:
        if rec.compressed_registry:
            sink = io.BytesIO()
            self._inflate(sink)
            return sink.getvalue()
        return read_exact(self.stream, rec.registry_size, "archive registry")

    def _inflate(self, sink) -> None:
        """Decompress a zlib stream from the current position into `sink`."""
        decomp = zlib.decompressobj()
        try:
            while not decomp.eof:
                block = self.stream.read(self.block_size)
                if not block:
                    raise TruncatedInput(
                        "Compressed data ended before its end-of-stream marker",
                        self.filename
                    )
                sink.write(decomp.decompress(block))
            sink.write(decomp.flush())
        except zlib.error as e:
            raise FormatInconsistency(f"Corrupt zlib stream ({e})", self.filename) from e

    def _copy(self, sink, num_bytes: int) -> None:
        left = num_bytes
        while left > 0:
            block = self.stream.read(min(self.block_size, left))
            if not block:
                raise TruncatedInput(
                    f"Archive data ended {left} bytes early", self.filename
                )
            sink.write(block)
            left -= len(block)

    def extract_segment(self, is_compressed: bool, num_bytes: int = 0) -> str:
        """
        Materialize data at the current stream position into a temp file.

        Args:
            is_compressed: Inflate a zlib stream instead of copying raw bytes
            num_bytes: Raw byte count, required when not compressed

        Returns:
            Path of the fully written temporary file
        """
        if not is_compressed and num_bytes <= 0:
            raise FormatInconsistency(
                f"Invalid number of bytes for uncompressed segment: {num_bytes}",
                self.filename
            )

        fd, tmp_name = tempfile.mkstemp(prefix=self.temp_prefix, dir=self.temp_dir)
        try:
            with os.fdopen(fd, 'wb') as tmp_file:
                if is_compressed:
                    self._inflate(tmp_file)
                else:
                    self._copy(tmp_file, num_bytes)
        except BaseException:
            os.remove(tmp_name)
            raise
        return tmp_name

    def get_archive_file(self, filerec: FileRecord) -> tuple[BinaryIO, str]:
        """
        Extract one registry entry.

        Returns:
            (open read handle, temp file path); the caller owns both
        """
        self.stream.seek(self.start_of_arc_data + filerec.start)
        tmp_name = self.extract_segment(filerec.compressed, filerec.csize)
        try:
            return open(tmp_name, 'rb'), tmp_name
        except OSError:
            os.remove(tmp_name)
            raise

    def compute_checksum(self, filerec: FileRecord) -> int:
        """Checksum of the entry's stored bytes, as found in the archive."""
        return stream_checksum(
            self.stream,
            num_bytes=filerec.csize,
            start_pos=self.start_of_arc_data + filerec.start,
            block_size=self.block_size
        )



if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        with ZlibArchive(sys.argv[1]) as archive:
            for rec in archive:
                kind = "zlib" if rec.compressed else "raw"
                print(f"{Path(rec.name).name:<16} {rec.osize:>10} {rec.csize:>10} {kind}")
    else:
        print("Usage: python -m src.xgfile.archive <xg_file>")
