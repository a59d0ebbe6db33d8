"""
Extracted file segments.

A segment is one region of an XG file materialized into its own temporary
file. Header and thumbnail segments own their temp file and delete it when
closed; archive segments leave the file for the caller to remove.
"""

import os
import shutil
import tempfile
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional


class SegmentKind(Enum):
    """Kind of an extracted segment, with the suffix used when exporting."""
    HEADER_RECORD = "_gdh.bin"
    THUMBNAIL_IMAGE = ".jpg"
    GAME_HEADER_FILE = "_gamehdr.bin"
    GAME_DATA_FILE = "_gamefile.bin"
    ROLLOUTS_FILE = "_rollouts.bin"
    COMMENTS_FILE = "_comments.bin"
    ARCHIVE_INDEX = "_idx.bin"
    UNKNOWN = ""

    @property
    def extension(self) -> str:
        return self.value


# Archive entry base names
XG_FILEMAP = {
    "temp.xgi": SegmentKind.GAME_HEADER_FILE,
    "temp.xgr": SegmentKind.ROLLOUTS_FILE,
    "temp.xgc": SegmentKind.COMMENTS_FILE,
    "temp.xg": SegmentKind.GAME_DATA_FILE,
}


def classify_entry(name: str) -> SegmentKind:
    """Map an archive entry name to its segment kind."""
    base = name.replace('\\', '/').rsplit('/', 1)[-1]
    return XG_FILEMAP.get(base, SegmentKind.UNKNOWN)


class Segment:
    """An extracted region backed by a file on disk."""

    def __init__(self, filename: str, file: BinaryIO, kind: SegmentKind):
        self.filename = filename
        self.file = file
        self.kind = kind

    def __enter__(self) -> 'Segment':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.name}, {self.filename!r})"

    @property
    def closed(self) -> bool:
        return self.file.closed

    def read(self) -> bytes:
        """Return the full contents, rewinding first."""
        self.file.seek(0)
        return self.file.read()

    def size(self) -> int:
        return os.path.getsize(self.filename)

    def copy_to(self, dest: str) -> Path:
        """Copy the backing file to `dest`."""
        dest = Path(dest)
        shutil.copyfile(self.filename, dest)
        return dest

    def close(self) -> None:
        if not self.file.closed:
            self.file.close()


class OwnedSegment(Segment):
    """Segment that deletes its backing file when closed."""

    @classmethod
    def from_bytes(
        cls,
        kind: SegmentKind,
        data: bytes,
        temp_dir: Optional[str] = None,
        temp_prefix: str = "tmpXGI"
    ) -> 'OwnedSegment':
        """Write `data` to a new temp file and return it opened for reading."""
        fd, filename = tempfile.mkstemp(prefix=temp_prefix, dir=temp_dir)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            return cls(filename, open(filename, 'rb'), kind)
        except BaseException:
            os.remove(filename)
            raise

    def close(self) -> None:
        super().close()
        if os.path.exists(self.filename):
            os.remove(self.filename)


class ArchiveSegment(Segment):
    """Segment extracted from the archive; the caller removes its file."""

    def __init__(self, filename: str, file: BinaryIO, kind: SegmentKind, entry_name: str = ""):
        super().__init__(filename, file, kind)
        self.entry_name = entry_name

    def remove(self) -> None:
        """Close and delete the backing file."""
        self.close()
        if os.path.exists(self.filename):
            os.remove(self.filename)
