"""
Game file records.

The game data entry (temp.xg) is a sequence of fixed 2560 byte records.
Each record starts with a short-string name (8 bytes) followed by its entry
type byte at offset 8. Decoders are looked up by entry type in a registry,
so new record shapes can be added with @register_entry without touching
the archive code.

Offsets below are absolute within a record.
"""

import datetime
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Iterator, Optional

from .codec import ByteCursor, delphi_datetime


RECORD_SIZE = 2560
ENTRY_TYPE_OFFSET = 8


class EntryType(IntEnum):
    HEADER_MATCH = 0
    HEADER_GAME = 1
    CUBE = 2
    MOVE = 3
    FOOTER_GAME = 4
    FOOTER_MATCH = 5
    MISSING = 6


_DECODERS: dict[int, Callable[[ByteCursor], object]] = {}


def register_entry(entry_type: int):
    """Register a decoder for a record entry type."""
    def decorator(func):
        _DECODERS[int(entry_type)] = func
        return func
    return decorator


def _optional_datetime(cursor: ByteCursor) -> Optional[datetime.datetime]:
    value = cursor.float64()
    if value <= 0:
        return None
    return delphi_datetime(value)


def termination_name(code: int) -> str:
    """Describe a game termination code."""
    term_map = {0: "drop", 1: "single", 2: "gammon", 3: "backgammon"}
    if code >= 1000:
        return "settle_" + term_map.get(code - 1000, "unknown")
    if code >= 100:
        return "resign_" + term_map.get(code - 100, "unknown")
    return term_map.get(code, "unknown")


# Sub-records embedded in game records

@dataclass
class EvalLevelRecord:
    level: int
    is_double: bool

    SIZE = 4

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> 'EvalLevelRecord':
        level, is_double = cursor.unpack('hBx')
        return cls(level, bool(is_double))


@dataclass
class EngineStructDoubleAction:
    pos: tuple
    level: int
    score: tuple
    cube: int
    cube_pos: int
    jacoby: int
    crawford: int
    met: int
    flag_double: int
    is_beaver: int
    eval: tuple
    equ_b: float
    equ_double: float
    equ_drop: float
    level_request: int
    double_choice3: int
    eval_double: tuple

    SIZE = 144

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> 'EngineStructDoubleAction':
        pos = cursor.int8_array(26)
        cursor.skip(2)
        level = cursor.int32()
        score = cursor.int32_array(2)
        cube, cube_pos, jacoby, crawford, met, flag_double, is_beaver = cursor.int32_array(7)
        evals = cursor.float32_array(7)
        equ_b, equ_double, equ_drop = cursor.float32_array(3)
        level_request, double_choice3 = cursor.int32_array(2)
        eval_double = cursor.float32_array(7)
        return cls(
            pos=pos, level=level, score=score, cube=cube, cube_pos=cube_pos,
            jacoby=jacoby, crawford=crawford, met=met, flag_double=flag_double,
            is_beaver=is_beaver, eval=evals, equ_b=equ_b, equ_double=equ_double,
            equ_drop=equ_drop, level_request=level_request,
            double_choice3=double_choice3, eval_double=eval_double
        )


@dataclass
class EngineStructBestMoveRecord:
    pos: tuple
    dice: tuple
    level: int
    score: tuple
    cube: int
    cube_pos: int
    crawford: int
    jacoby: int
    n_moves: int
    pos_played: list = field(default_factory=list)
    moves: list = field(default_factory=list)
    eval_level: list = field(default_factory=list)
    eval: list = field(default_factory=list)
    unused: int = 0
    met: int = 0
    choice0: int = 0
    choice3: int = 0

    SIZE = 68 + 32 * 26 + 32 * 8 + 32 * 4 + 32 * 28 + 4

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> 'EngineStructBestMoveRecord':
        head = cursor.sub(68)
        pos = head.int8_array(26)
        dice = head.int8_array(2)
        level = head.int32()
        score = head.int32_array(2)
        cube, cube_pos, crawford, jacoby, n_moves = head.int32_array(5)

        pos_played = [cursor.int8_array(26) for _ in range(32)]
        moves = [cursor.int8_array(8) for _ in range(32)]
        eval_level = [EvalLevelRecord.from_cursor(cursor) for _ in range(32)]
        evals = [cursor.float32_array(7) for _ in range(32)]
        unused, met, choice0, choice3 = cursor.int8_array(4)

        return cls(
            pos=pos, dice=dice, level=level, score=score, cube=cube,
            cube_pos=cube_pos, crawford=crawford, jacoby=jacoby, n_moves=n_moves,
            pos_played=pos_played, moves=moves, eval_level=eval_level,
            eval=evals, unused=unused, met=met, choice0=choice0, choice3=choice3
        )


# Game file entries

@dataclass
class HeaderMatchEntry:
    player1: str
    player2: str
    match_length: int
    variation: int
    crawford: bool
    jacoby: bool
    beaver: bool
    auto_double: bool
    elo1: float
    elo2: float
    exp1: int
    exp2: int
    date: Optional[datetime.datetime]
    event: str
    game_id: int
    comp_level1: int
    comp_level2: int
    count_for_elo: bool
    add_to_profile1: bool
    add_to_profile2: bool
    location: str
    game_mode: int
    imported: bool
    round: str
    invert: int
    version: int
    magic: bytes


@register_entry(EntryType.HEADER_MATCH)
def decode_header_match(cursor: ByteCursor) -> HeaderMatchEntry:
    cursor.seek(9)
    player1 = cursor.short_string(40)
    player2 = cursor.short_string(40)
    cursor.skip(1)
    match_length, variation = cursor.int32_array(2)
    crawford, jacoby, beaver, auto_double = cursor.unpack('4B')
    elo1 = cursor.float64()
    elo2 = cursor.float64()
    exp1, exp2 = cursor.int32_array(2)
    date = _optional_datetime(cursor)
    event = cursor.short_string(128)
    cursor.skip(3)
    game_id, comp_level1, comp_level2 = cursor.int32_array(3)
    count_for_elo, add_to_profile1, add_to_profile2 = cursor.unpack('3B')
    location = cursor.short_string(128)
    game_mode = cursor.int32()
    imported = cursor.boolean()
    round_name = cursor.short_string(128)
    cursor.skip(2)
    invert, version = cursor.int32_array(2)
    magic = cursor.read(4)

    return HeaderMatchEntry(
        player1=player1, player2=player2, match_length=match_length,
        variation=variation, crawford=bool(crawford), jacoby=bool(jacoby),
        beaver=bool(beaver), auto_double=bool(auto_double), elo1=elo1,
        elo2=elo2, exp1=exp1, exp2=exp2, date=date, event=event,
        game_id=game_id, comp_level1=comp_level1, comp_level2=comp_level2,
        count_for_elo=bool(count_for_elo), add_to_profile1=bool(add_to_profile1),
        add_to_profile2=bool(add_to_profile2), location=location,
        game_mode=game_mode, imported=imported, round=round_name,
        invert=invert, version=version, magic=magic
    )


@dataclass
class HeaderGameEntry:
    score1: int
    score2: int
    crawford_apply: bool
    pos_init: tuple
    game_number: int
    in_progress: bool
    comment_header_game: int
    comment_footer_game: int
    number_of_auto_doubles: int


@register_entry(EntryType.HEADER_GAME)
def decode_header_game(cursor: ByteCursor) -> HeaderGameEntry:
    cursor.seek(12)
    score1, score2, crawford, *pos, game_number, in_progress = cursor.unpack('iiB26bxiB3x')
    comment_header, comment_footer, auto_doubles = cursor.int32_array(3)
    return HeaderGameEntry(
        score1=score1,
        score2=score2,
        crawford_apply=bool(crawford),
        pos_init=tuple(pos),
        game_number=game_number,
        in_progress=bool(in_progress),
        comment_header_game=comment_header,
        comment_footer_game=comment_footer,
        number_of_auto_doubles=auto_doubles
    )


@dataclass
class CubeEntry:
    active_player: int
    double: int
    take: int
    beaver_r: int
    raccoon_r: int
    cube_b: int
    position: tuple
    doubled: EngineStructDoubleAction
    err_cube: float
    dice_rolled: str
    err_take: float


@register_entry(EntryType.CUBE)
def decode_cube(cursor: ByteCursor) -> CubeEntry:
    cursor.seek(12)
    active_player, double, take, beaver_r, raccoon_r, cube_b = cursor.int32_array(6)
    position = cursor.int8_array(26)
    cursor.skip(2)
    doubled = EngineStructDoubleAction.from_cursor(cursor)
    err_cube = cursor.float64()
    dice_rolled = cursor.short_string(2)
    cursor.skip(5)
    err_take = cursor.float64()
    return CubeEntry(
        active_player=active_player, double=double, take=take,
        beaver_r=beaver_r, raccoon_r=raccoon_r, cube_b=cube_b,
        position=position, doubled=doubled, err_cube=err_cube,
        dice_rolled=dice_rolled, err_take=err_take
    )


@dataclass
class MoveEntry:
    position_i: tuple
    position_end: tuple
    active_player: int
    moves: tuple
    dice: tuple
    cube_a: int
    error_m: int
    n_move_eval: int
    data_moves: EngineStructBestMoveRecord
    played: bool
    err_move: float
    err_luck: float


@register_entry(EntryType.MOVE)
def decode_move(cursor: ByteCursor) -> MoveEntry:
    cursor.seek(9)
    position_i = cursor.int8_array(26)
    position_end = cursor.int8_array(26)
    cursor.skip(3)
    active_player = cursor.int32()
    moves = cursor.int32_array(8)
    dice = cursor.int32_array(2)
    cube_a, error_m, n_move_eval = cursor.int32_array(3)
    data_moves = EngineStructBestMoveRecord.from_cursor(cursor)
    played = cursor.boolean()
    cursor.skip(7)
    err_move = cursor.float64()
    err_luck = cursor.float64()
    return MoveEntry(
        position_i=position_i, position_end=position_end,
        active_player=active_player, moves=moves, dice=dice, cube_a=cube_a,
        error_m=error_m, n_move_eval=n_move_eval, data_moves=data_moves,
        played=played, err_move=err_move, err_luck=err_luck
    )


@dataclass
class FooterGameEntry:
    score1g: int
    score2g: int
    crawford_applyg: bool
    winner: int
    points_won: int
    termination: int
    err_resign: float
    err_take_resign: float
    eval: tuple
    eval_level: int

    @property
    def termination_name(self) -> str:
        return termination_name(self.termination)


@register_entry(EntryType.FOOTER_GAME)
def decode_footer_game(cursor: ByteCursor) -> FooterGameEntry:
    cursor.seek(12)
    score1g, score2g, crawford, winner, points_won, termination = cursor.unpack('iiB3xiii')
    cursor.skip(4)
    err_resign = cursor.float64()
    err_take_resign = cursor.float64()
    evals = cursor.float32_array(7)
    eval_level = cursor.int32()
    return FooterGameEntry(
        score1g=score1g, score2g=score2g, crawford_applyg=bool(crawford),
        winner=winner, points_won=points_won, termination=termination,
        err_resign=err_resign, err_take_resign=err_take_resign,
        eval=evals, eval_level=eval_level
    )


@dataclass
class FooterMatchEntry:
    score1m: int
    score2m: int
    winner_m: int
    elo1m: float
    elo2m: float
    exp1m: int
    exp2m: int
    date_m: Optional[datetime.datetime]


@register_entry(EntryType.FOOTER_MATCH)
def decode_footer_match(cursor: ByteCursor) -> FooterMatchEntry:
    cursor.seek(12)
    score1m, score2m, winner_m = cursor.int32_array(3)
    elo1m = cursor.float64()
    elo2m = cursor.float64()
    exp1m, exp2m = cursor.int32_array(2)
    date_m = _optional_datetime(cursor)
    return FooterMatchEntry(
        score1m=score1m, score2m=score2m, winner_m=winner_m, elo1m=elo1m,
        elo2m=elo2m, exp1m=exp1m, exp2m=exp2m, date_m=date_m
    )


@dataclass
class MissingEntry:
    missing_err_luck: float
    missing_winner: int
    missing_points: int


@register_entry(EntryType.MISSING)
def decode_missing(cursor: ByteCursor) -> MissingEntry:
    cursor.seek(16)
    err_luck = cursor.float64()
    winner, points = cursor.int32_array(2)
    return MissingEntry(err_luck, winner, points)


@dataclass
class UnimplementedEntry:
    """Record with no registered decoder; keeps the raw bytes."""
    data: bytes


@dataclass
class RolloutFileRecord:
    """Contents of the rollouts entry (temp.xgr); rollout contexts are not decoded."""
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class GameFileRecord:
    name: str
    entry_type: int
    record: object


def decode_record(cursor: ByteCursor) -> GameFileRecord:
    """Decode the next 2560 byte game file record at the cursor."""
    raw = cursor.sub(RECORD_SIZE)
    name = raw.short_string(ENTRY_TYPE_OFFSET - 1)
    entry_type = raw.uint8()

    decoder = _DECODERS.get(entry_type)
    if decoder is None:
        return GameFileRecord(name, entry_type, UnimplementedEntry(raw.data))

    raw.seek(0)
    return GameFileRecord(name, entry_type, decoder(raw))


def iter_game_records(data: bytes, start: int = 0) -> Iterator[GameFileRecord]:
    """Yield every complete record; a trailing partial record is ignored."""
    cursor = ByteCursor(data, start)
    while cursor.remaining >= RECORD_SIZE:
        yield decode_record(cursor)
