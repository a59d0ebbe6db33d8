"""
Game Data Format header - the fixed 8232 byte block at the start of every
XG file, carrying file metadata and the location of the thumbnail image.
"""

from dataclasses import dataclass
from typing import BinaryIO

from .codec import ByteCursor
from .errors import NotAGameDataFormatFile, TruncatedInput


HEADER_SIZE = 8232
MAGIC_NUMBER = b'HMGR'
HEADER_VERSION = 1

# Fixed-capacity UTF-16 fields: (start, end) byte ranges
GAME_NAME_FIELD = (40, 2064)
SAVE_NAME_FIELD = (2064, 4088)
LEVEL_NAME_FIELD = (4088, 6112)
COMMENTS_FIELD = (6112, 8136)


@dataclass
class GameDataFormatHeader:
    """Decoded top-level file header."""
    magic: str
    version: int
    header_size: int
    thumbnail_offset: int
    thumbnail_size: int
    game_guid: str
    game_name: str = ""
    save_name: str = ""
    level_name: str = ""
    comments: str = ""

    @classmethod
    def from_bytes(cls, data: bytes, filename: str = "") -> 'GameDataFormatHeader':
        """
        Decode a header span.

        Magic and version are checked before any other field is looked at,
        so a foreign file is always rejected with NotAGameDataFormatFile,
        even when it is shorter than a full header.
        """
        if len(data) < 8 or data[0:4] != MAGIC_NUMBER:
            raise NotAGameDataFormatFile("Not a game data format file", filename)

        cursor = ByteCursor(data)
        magic = cursor.read(4)
        version = cursor.int32()
        if version != HEADER_VERSION:
            raise NotAGameDataFormatFile(
                f"Unsupported header version {version}", filename
            )

        if len(data) < HEADER_SIZE:
            raise TruncatedInput(
                f"Header is {len(data)} bytes, expected {HEADER_SIZE}", filename
            )

        header_size = cursor.int32()
        thumbnail_offset = cursor.int64()
        thumbnail_size = cursor.int32()
        game_guid = cursor.guid()

        fields = {}
        for name, (start, end) in (
            ("game_name", GAME_NAME_FIELD),
            ("save_name", SAVE_NAME_FIELD),
            ("level_name", LEVEL_NAME_FIELD),
            ("comments", COMMENTS_FIELD),
        ):
            cursor.seek(start)
            fields[name] = cursor.utf16_fixed(end - start)

        return cls(
            magic=magic.decode('ascii'),
            version=version,
            header_size=header_size,
            thumbnail_offset=thumbnail_offset,
            thumbnail_size=thumbnail_size,
            game_guid=game_guid,
            **fields
        )

    @classmethod
    def from_stream(cls, stream: BinaryIO, filename: str = "") -> 'GameDataFormatHeader':
        """Read and decode the header at the current stream position."""
        return cls.from_bytes(stream.read(HEADER_SIZE), filename)

    def to_dict(self) -> dict:
        return {
            'magic': self.magic,
            'version': self.version,
            'header_size': self.header_size,
            'thumbnail_offset': self.thumbnail_offset,
            'thumbnail_size': self.thumbnail_size,
            'game_guid': self.game_guid,
            'game_name': self.game_name,
            'save_name': self.save_name,
            'level_name': self.level_name,
            'comments': self.comments
        }


def validate_xg_file(filepath: str) -> bool:
    """Check if a file starts with a valid Game Data Format header."""
    try:
        with open(filepath, 'rb') as f:
            data = f.read(8)
    except OSError:
        return False
    return (
        len(data) == 8
        and data[0:4] == MAGIC_NUMBER
        and int.from_bytes(data[4:8], 'little', signed=True) == HEADER_VERSION
    )
