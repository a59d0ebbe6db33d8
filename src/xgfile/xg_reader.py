"""
XG File Reader - builds a match summary from an eXtreme Gammon file.

The file is split into segments by XGImport; the game data segment is then
walked record by record through the entry decoder registry.
"""

import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import ExtractConfig
from .records import (
    CubeEntry,
    FooterGameEntry,
    FooterMatchEntry,
    HeaderGameEntry,
    HeaderMatchEntry,
    MoveEntry,
    RolloutFileRecord,
    iter_game_records,
)
from .segments import SegmentKind
from .xg_import import XGImport


@dataclass
class XGPosition:
    """Backgammon board position."""
    board: tuple  # 26 values: 0-25 points from player's perspective

    def to_array(self) -> list[int]:
        """Convert to list of checker counts per point."""
        return list(self.board)

    def __repr__(self) -> str:
        return f"XGPosition({self.board})"


@dataclass
class XGMove:
    """A single move in a backgammon game."""
    player: int  # 1 or -1
    dice: tuple[int, int]
    position_before: XGPosition
    position_after: XGPosition
    moves: tuple  # Move sequence (from, to, from, to, ...)
    error: float = 0.0  # Error in equity
    luck: float = 0.0
    analysis_level: int = 0


@dataclass
class XGCubeAction:
    """A cube decision in a backgammon game."""
    player: int
    doubled: bool
    take: bool  # True if take, False if drop
    position: XGPosition
    error_double: float = 0.0
    error_take: float = 0.0


@dataclass
class XGGame:
    """A single game within a match."""
    game_number: int
    initial_score: tuple[int, int]
    crawford: bool
    initial_position: XGPosition
    moves: list = field(default_factory=list)
    cube_actions: list = field(default_factory=list)
    winner: int = 0  # 1 or -1 (player 1 or 2)
    points_won: int = 0
    termination: str = ""


@dataclass
class XGMatch:
    """Complete backgammon match data."""
    player1: str
    player2: str
    match_length: int
    event: str = ""
    location: str = ""
    date: Optional[datetime.datetime] = None
    games: list[XGGame] = field(default_factory=list)
    crawford: bool = True
    jacoby: bool = False
    version: int = 0
    rollouts: Optional[RolloutFileRecord] = None


class XGReader:
    """Reader for XG (eXtreme Gammon) match files."""

    def __init__(self, filepath: str, config: Optional[ExtractConfig] = None):
        self.filepath = Path(filepath)
        self.config = config
        self.match: Optional[XGMatch] = None

    def read(self) -> XGMatch:
        """Read and parse the XG file."""
        with XGImport(str(self.filepath), self.config) as importer:
            segments = importer.get_file_segments()
            game_data = b''
            rollouts = None
            for segment in segments:
                if segment.kind is SegmentKind.GAME_DATA_FILE:
                    game_data = segment.read()
                elif segment.kind is SegmentKind.ROLLOUTS_FILE:
                    rollouts = RolloutFileRecord(segment.read())

        self.match = self._parse_game_records(game_data)
        self.match.rollouts = rollouts
        return self.match

    def _parse_game_records(self, data: bytes) -> XGMatch:
        """Assemble the match from decoded game file records."""
        match = XGMatch(player1="Unknown", player2="Unknown", match_length=0)
        current_game: Optional[XGGame] = None

        for rec in iter_game_records(data):
            entry = rec.record

            if isinstance(entry, HeaderMatchEntry):
                match = XGMatch(
                    player1=entry.player1,
                    player2=entry.player2,
                    match_length=entry.match_length,
                    event=entry.event,
                    location=entry.location,
                    date=entry.date,
                    crawford=entry.crawford,
                    jacoby=entry.jacoby,
                    version=entry.version
                )

            elif isinstance(entry, HeaderGameEntry):
                current_game = XGGame(
                    game_number=entry.game_number,
                    initial_score=(entry.score1, entry.score2),
                    crawford=entry.crawford_apply,
                    initial_position=XGPosition(board=entry.pos_init)
                )

            elif isinstance(entry, MoveEntry) and current_game:
                current_game.moves.append(XGMove(
                    player=entry.active_player,
                    dice=(entry.dice[0], entry.dice[1]),
                    position_before=XGPosition(board=entry.position_i),
                    position_after=XGPosition(board=entry.position_end),
                    moves=entry.moves,
                    error=entry.err_move,
                    luck=entry.err_luck,
                    analysis_level=entry.data_moves.level
                ))

            elif isinstance(entry, CubeEntry) and current_game:
                current_game.cube_actions.append(XGCubeAction(
                    player=entry.active_player,
                    doubled=bool(entry.double),
                    take=bool(entry.take),
                    position=XGPosition(board=entry.position),
                    error_double=entry.err_cube,
                    error_take=entry.err_take
                ))

            elif isinstance(entry, FooterGameEntry) and current_game:
                current_game.winner = entry.winner
                current_game.points_won = entry.points_won
                current_game.termination = entry.termination_name
                match.games.append(current_game)
                current_game = None

            elif isinstance(entry, FooterMatchEntry):
                break

        return match

    def to_dict(self) -> dict:
        """Convert match to dictionary format."""
        if not self.match:
            return {}

        return {
            'player1': self.match.player1,
            'player2': self.match.player2,
            'match_length': self.match.match_length,
            'event': self.match.event,
            'location': self.match.location,
            'date': str(self.match.date) if self.match.date else None,
            'crawford': self.match.crawford,
            'jacoby': self.match.jacoby,
            'rollouts_size': self.match.rollouts.size if self.match.rollouts else 0,
            'games': [
                {
                    'game_number': g.game_number,
                    'initial_score': g.initial_score,
                    'crawford': g.crawford,
                    'winner': g.winner,
                    'points_won': g.points_won,
                    'termination': g.termination,
                    'num_moves': len(g.moves),
                    'num_cube_actions': len(g.cube_actions)
                }
                for g in self.match.games
            ]
        }


if __name__ == "__main__":
    import sys
    import json

    if len(sys.argv) > 1:
        reader = XGReader(sys.argv[1])
        match = reader.read()
        print(json.dumps(reader.to_dict(), indent=2))
    else:
        print("Usage: python -m src.xgfile.xg_reader <xg_file>")
