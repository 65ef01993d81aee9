"""Minimal falling-block host for self-play.

No gravity, no animation: the active piece sits at its spawn position until
the player moves it, and a hard drop locks it immediately. Pieces are the
seven tetrominoes in a 7-bag order, each painted with a random color from
the palette. Full rows are removed after every lock.

Usage:
    sim = StormSim(seed=1)
    while not sim.game_over:
        for move in moves:
            dispatch(move, sim.handlers())
"""

from __future__ import annotations

import random

from ..ai.controller import Move
from ..ai.state import SkillLevel
from .board import Board
from .pieces import PALETTE, Piece, PieceType

BOARD_ROWS = 20
BOARD_COLS = 10

# Visible upcoming pieces
PREVIEW_SIZE = 4

# Scoring: lines cleared -> points
LINE_REWARDS = {0: 0, 1: 1, 2: 3, 3: 5, 4: 8}

# Fewer colors make runs and blobs easier to build.
COLORS_BY_SKILL = {
    SkillLevel.BREEZE: 4,
    SkillLevel.TEMPEST: 5,
    SkillLevel.MAELSTROM: 6,
    SkillLevel.HURRICANE: 6,
}


class StormSim:
    """Standalone colored-block game used to drive the decision pipeline."""

    def __init__(self, seed: int | None = None, cols: int = BOARD_COLS, rows: int = BOARD_ROWS,
                 skill_level: SkillLevel = SkillLevel.TEMPEST):
        self._rng = random.Random(seed)
        self.cols = cols
        self.rows = rows
        self.colors = PALETTE[: COLORS_BY_SKILL[skill_level]]
        self.board = Board.empty(cols, rows)
        self.current: Piece | None = None
        self.next_pieces: list[Piece] = []
        self.score = 0
        self.lines_cleared = 0
        self.pieces_placed = 0
        self.game_over = False
        self.cause: str | None = None
        self._bag: list[PieceType] = []
        self.reset()

    def reset(self) -> None:
        self.board = Board.empty(self.cols, self.rows)
        self.score = 0
        self.lines_cleared = 0
        self.pieces_placed = 0
        self.game_over = False
        self.cause = None
        self._bag = []
        self.next_pieces = [self._draw_piece() for _ in range(PREVIEW_SIZE)]
        self._spawn()

    # ── Host controls ───────────────────────────────────────────────────────

    def handlers(self) -> dict:
        """Move handlers for `controller.dispatch`."""
        return {
            Move.ROTATE: self.rotate,
            Move.LEFT: self.move_left,
            Move.RIGHT: self.move_right,
            Move.DROP: self.hard_drop,
            Move.DOWN: self.soft_drop,
        }

    def rotate(self) -> bool:
        return self._try(self.current.rotated())

    def move_left(self) -> bool:
        return self._try(self.current.moved(self.current.x - 1, self.current.y))

    def move_right(self) -> bool:
        return self._try(self.current.moved(self.current.x + 1, self.current.y))

    def soft_drop(self) -> bool:
        return self._try(self.current.moved(self.current.x, self.current.y + 1))

    def hard_drop(self) -> int:
        """Drop and lock the active piece. Returns the number of lines cleared."""
        if self.game_over:
            return 0
        piece = self.current
        y = self.board.drop_row(piece.shape, piece.x, piece.y)
        if y < 0:
            self._end("topped_out")
            return 0

        board, lines = self.board.place(piece.shape, piece.x, y, piece.color).clear_lines()
        self.board = board
        self.pieces_placed += 1
        self.lines_cleared += lines
        self.score += LINE_REWARDS.get(lines, lines * 2)
        self._spawn()
        return lines

    # ── Internals ───────────────────────────────────────────────────────────

    def _try(self, piece: Piece) -> bool:
        if self.game_over or not self.board.is_valid_position(piece.shape, piece.x, piece.y):
            return False
        self.current = piece
        return True

    def _draw_piece(self) -> Piece:
        """Draw from the 7-bag randomizer and paint a random color."""
        if not self._bag:
            self._bag = list(PieceType)
            self._rng.shuffle(self._bag)
        return Piece.from_type(self._bag.pop(), self._rng.choice(self.colors))

    def _spawn(self) -> None:
        piece = self.next_pieces.pop(0)
        self.next_pieces.append(self._draw_piece())
        x = (self.cols - piece.width) // 2
        self.current = piece.moved(x, 0)
        if not self.board.is_valid_position(piece.shape, x, 0):
            self._end("blocked")

    def _end(self, cause: str) -> None:
        self.game_over = True
        self.cause = cause

    def render(self) -> str:
        """ASCII rendering with the active piece overlaid."""
        board = self.board
        if self.current is not None and not self.game_over:
            board = board.place(self.current.shape, self.current.x, self.current.y, "@")
        header = (f"Piece: {self.current.color if self.current else '-'}  "
                  f"Next: {','.join(str(p.color) for p in self.next_pieces)}  "
                  f"Score: {self.score}  Lines: {self.lines_cleared}  "
                  f"Placed: {self.pieces_placed}")
        return header + "\n" + board.to_ascii()
