"""
XG Import - splits an XG file into its component segments.

Extraction order is fixed: the Game Data Format header, the thumbnail (when
present), then every archive entry in registry order.
"""

from pathlib import Path
from typing import Optional

from .archive import ZlibArchive
from .codec import read_exact
from .config import ExtractConfig
from .errors import FormatInconsistency, InvalidGameFile
from .header import GameDataFormatHeader
from .segments import (
    ArchiveSegment,
    OwnedSegment,
    Segment,
    SegmentKind,
    classify_entry,
)


GAME_HEADER_LEN = 556
GAME_FILE_MAGIC = b'DMLI'


class XGImport:
    """Extracts the segments of a single XG file."""

    def __init__(self, filename: str, config: Optional[ExtractConfig] = None):
        self.filename = str(filename)
        self.config = config or ExtractConfig()
        self.header: Optional[GameDataFormatHeader] = None
        # Every segment created so far, including ones from a failed run
        self.created_segments: list[Segment] = []

    def __enter__(self) -> 'XGImport':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _new_segment(self, kind: SegmentKind, data: bytes) -> OwnedSegment:
        segment = OwnedSegment.from_bytes(
            kind,
            data,
            temp_dir=self.config.temp_dir,
            temp_prefix=self.config.temp_prefix
        )
        self.created_segments.append(segment)
        return segment

    def get_file_segments(self) -> list[Segment]:
        """
        Extract all segments.

        Returns:
            Segments in discovery order

        Raises:
            NotAGameDataFormatFile: header magic or version mismatch
            InvalidGameFile: the game data entry lacks its magic marker
            XGFileError: any other structural problem
            OSError: underlying file access failure

        Segments created before a failure stay in `created_segments`;
        call `release()` to clean them up.
        """
        segments: list[Segment] = []

        with open(self.filename, 'rb') as xginfile:
            header = GameDataFormatHeader.from_stream(xginfile, self.filename)
            self.header = header

            if header.header_size <= 0:
                raise FormatInconsistency(
                    f"Invalid header size {header.header_size}", self.filename
                )
            xginfile.seek(0)
            block = read_exact(xginfile, header.header_size, "header")
            segments.append(self._new_segment(SegmentKind.HEADER_RECORD, block))

            if header.thumbnail_size > 0:
                if header.thumbnail_offset < 0:
                    raise FormatInconsistency(
                        f"Invalid thumbnail offset {header.thumbnail_offset}", self.filename
                    )
                xginfile.seek(header.thumbnail_offset)
                imgbuf = read_exact(xginfile, header.thumbnail_size, "thumbnail")
                segments.append(self._new_segment(SegmentKind.THUMBNAIL_IMAGE, imgbuf))

        with ZlibArchive(
            self.filename,
            block_size=self.config.block_size,
            temp_dir=self.config.temp_dir,
            temp_prefix=self.config.temp_prefix
        ) as archive:
            for filerec in archive:
                segment_file, seg_filename = archive.get_archive_file(filerec)
                segment = ArchiveSegment(
                    seg_filename,
                    segment_file,
                    classify_entry(filerec.name),
                    entry_name=filerec.name
                )
                self.created_segments.append(segment)

                if segment.kind is SegmentKind.GAME_DATA_FILE:
                    self._check_game_file(segment)

                segments.append(segment)

        if self.config.verbose:
            for segment in segments:
                print(f"Extracted: {segment.filename} ({segment.kind.name})")

        return segments

    def _check_game_file(self, segment: Segment) -> None:
        segment.file.seek(GAME_HEADER_LEN)
        magic = segment.file.read(len(GAME_FILE_MAGIC))
        if magic != GAME_FILE_MAGIC:
            raise InvalidGameFile("Not a valid XG gamefile", self.filename)
        segment.file.seek(0)

    def export(self, segments: list[Segment], output_dir: Optional[str] = None) -> list[Path]:
        """
        Copy segments into a directory as <stem><kind extension>.

        Args:
            segments: Segments returned by get_file_segments
            output_dir: Target directory (defaults to config.output_dir)

        Returns:
            Paths of the written files
        """
        target = output_dir or self.config.output_dir
        if not target:
            raise ValueError("No output directory given")
        target = Path(target)
        target.mkdir(parents=True, exist_ok=True)

        stem = Path(self.filename).stem
        written = []
        for segment in segments:
            suffix = segment.kind.extension
            if segment.kind is SegmentKind.UNKNOWN:
                entry_name = getattr(segment, 'entry_name', '') or Path(segment.filename).name
                suffix = f"_{Path(entry_name).name}"
            written.append(segment.copy_to(str(target / f"{stem}{suffix}")))
            if self.config.verbose:
                print(f"Saved: {written[-1]}")
        return written

    def release(self, remove_archive_files: bool = True) -> None:
        """Close every created segment and delete its temporary storage."""
        for segment in self.created_segments:
            if remove_archive_files and isinstance(segment, ArchiveSegment):
                segment.remove()
            else:
                segment.close()
        self.created_segments = []


def extract_segments(filename: str, config: Optional[ExtractConfig] = None) -> list[Segment]:
    """Extract segments; on failure everything created is cleaned up."""
    importer = XGImport(filename, config)
    try:
        return importer.get_file_segments()
    except BaseException:
        importer.release()
        raise
