"""Builders for synthetic XG files used across the tests."""

import struct
import zlib

HEADER_SIZE = 8232
RECORD_SIZE = 2560


def build_header(
    magic: bytes = b'HMGR',
    version: int = 1,
    header_size: int = HEADER_SIZE,
    thumbnail_offset: int = 0,
    thumbnail_size: int = 0,
    guid: bytes = bytes(range(16)),
    game_name: str = "",
    save_name: str = "",
    level_name: str = "",
    comments: str = ""
) -> bytes:
    buf = bytearray(HEADER_SIZE)
    struct.pack_into('<4siiqi', buf, 0, magic, version, header_size,
                     thumbnail_offset, thumbnail_size)
    buf[24:40] = guid
    for text, start in ((game_name, 40), (save_name, 2064),
                        (level_name, 4088), (comments, 6112)):
        encoded = text.encode('utf-16-le')
        buf[start:start + len(encoded)] = encoded
    return bytes(buf)


def build_file_record(
    name: bytes,
    osize: int,
    csize: int,
    start: int,
    compressed: bool = True,
    crc: int = 0,
    level: int = 6,
    path: bytes = b''
) -> bytes:
    return (
        name.ljust(256, b'\0')
        + path.ljust(256, b'\0')
        + struct.pack('<iiiIBB2x', osize, csize, start, crc, int(compressed), level)
    )


def build_archive(entries, compress_registry: bool = True) -> bytes:
    """
    Build archive data + registry + trailer.

    entries: list of (name, payload, compressed) tuples
    """
    archive_data = bytearray()
    records = []
    for name, payload, compressed in entries:
        if isinstance(name, str):
            name = name.encode('latin-1')
        stored = zlib.compress(payload) if compressed else payload
        records.append(build_file_record(
            name, len(payload), len(stored), len(archive_data), compressed=compressed
        ))
        archive_data += stored

    registry = b''.join(records)
    if compress_registry:
        registry = zlib.compress(registry)

    trailer = struct.pack('<IiiiiI12s', 0, len(entries), 1, len(registry),
                          len(archive_data), int(compress_registry), b'')
    return bytes(archive_data) + registry + trailer


def build_xg_file(entries, thumbnail: bytes = b'', compress_registry: bool = True,
                  **header_kwargs) -> bytes:
    if thumbnail:
        header_kwargs.setdefault('thumbnail_offset', HEADER_SIZE)
        header_kwargs.setdefault('thumbnail_size', len(thumbnail))
    header = build_header(**header_kwargs)
    return header + thumbnail + build_archive(entries, compress_registry)


def short_str(text: str, capacity: int) -> bytes:
    """Delphi string[capacity]."""
    raw = text.encode('latin-1')
    return bytes([len(raw)]) + raw.ljust(capacity, b'\0')


def build_record(entry_type: int, fields: dict, name: str = "") -> bytes:
    """A 2560 byte game file record with raw bytes placed at offsets."""
    buf = bytearray(RECORD_SIZE)
    buf[0:8] = short_str(name, 7)
    buf[8] = entry_type
    for offset, data in fields.items():
        buf[offset:offset + len(data)] = data
    return bytes(buf)


def header_match_record(player1: str = "Alice", player2: str = "Bob",
                        match_length: int = 7, magic: bytes = b'DMLI') -> bytes:
    return build_record(0, {
        9: short_str(player1, 40),
        50: short_str(player2, 40),
        92: struct.pack('<ii', match_length, 0),
        100: bytes([1, 0, 0, 0]),
        104: struct.pack('<ddii', 1500.0, 1450.5, 120, 80),
        128: struct.pack('<d', 36526.5),
        136: short_str("Club Night", 128),
        283: short_str("Berlin", 128),
        417: short_str("Final", 128),
        552: struct.pack('<i', 30),
        556: magic,
    })


def header_game_record(game_number: int = 1, score=(0, 0)) -> bytes:
    pos = bytes(range(26))
    return build_record(1, {
        12: struct.pack('<iiB', score[0], score[1], 0),
        21: pos,
        48: struct.pack('<i', game_number),
    })


def move_record(dice=(3, 1), player: int = 1) -> bytes:
    return build_record(3, {
        9: struct.pack('<26b', *([0] * 25 + [2])),
        35: struct.pack('<26b', *([1] * 26)),
        64: struct.pack('<i8i2i', player, 8, 5, 6, 5, -1, -1, -1, -1, *dice),
        2312: struct.pack('<dd', -0.125, 0.25),
    })


def cube_record(double: int = 1, take: int = 0) -> bytes:
    return build_record(2, {
        12: struct.pack('<6i', -1, double, take, 0, 0, 1),
        208: struct.pack('<d', 0.05),
        224: struct.pack('<d', 0.0),
    })


def footer_game_record(winner: int = 1, points: int = 2, termination: int = 2) -> bytes:
    return build_record(4, {
        12: struct.pack('<iiB3xiii', 2, 0, 0, winner, points, termination),
    })


def footer_match_record() -> bytes:
    return build_record(5, {
        12: struct.pack('<iiiddii', 7, 3, 1, 1510.0, 1440.0, 127, 87),
        48: struct.pack('<d', 36527.0),
    })


def game_data(magic: bytes = b'DMLI') -> bytes:
    """A minimal temp.xg payload: one match with one game."""
    return b''.join([
        header_match_record(magic=magic),
        header_game_record(),
        move_record(),
        cube_record(),
        footer_game_record(),
        footer_match_record(),
    ])
