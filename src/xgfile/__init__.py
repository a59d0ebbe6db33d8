from .errors import (
    XGFileError,
    NotAGameDataFormatFile,
    TruncatedInput,
    FormatInconsistency,
    InvalidGameFile,
)
from .header import GameDataFormatHeader, validate_xg_file
from .archive import ZlibArchive, ArchiveRecord, FileRecord
from .segments import Segment, OwnedSegment, ArchiveSegment, SegmentKind
from .xg_import import XGImport, extract_segments
from .xg_reader import XGReader, XGMatch, XGGame, XGMove

__all__ = [
    'XGFileError', 'NotAGameDataFormatFile', 'TruncatedInput',
    'FormatInconsistency', 'InvalidGameFile',
    'GameDataFormatHeader', 'validate_xg_file',
    'ZlibArchive', 'ArchiveRecord', 'FileRecord',
    'Segment', 'OwnedSegment', 'ArchiveSegment', 'SegmentKind',
    'XGImport', 'extract_segments',
    'XGReader', 'XGMatch', 'XGGame', 'XGMove',
]
