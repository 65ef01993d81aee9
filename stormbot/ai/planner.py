"""Placement generator: enumerates every legal drop of a piece.

For each rotation and column, the piece descends until the next step down
would be illegal; the last legal row is the landing row. Each resulting
board is scored by the heuristic.

Two column spans are used:
  - root (current piece): x in [-2, cols+1] with descent from above the
    board. A piece that can only come to rest with its top row above the
    board is kept as a game-ending placement with a fixed score, so it can
    still be chosen when nothing survives.
  - strict (queued pieces): x in [0, cols-width], descent from row 0.
    Placements that can not enter the board are skipped, so the result may
    be empty.

Iteration order is rotation-major, then left to right. Callers rely on it
for first-seen-wins tie breaking.

The lookahead kernels repeat the strict span over the encoded grid; this
version remains the reference they are tested against.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ..game.grid import drop_row, fits, place, shape_mask
from ..game.pieces import Piece, Shape
from .heuristic import (
    N_FEATURES,
    EvalContext,
    HeuristicEvaluator,
    PreparedBoard,
    ScoreBreakdown,
    decode_breakdown,
)

if TYPE_CHECKING:
    from ..game.board import Board

GAME_OVER_SCORE = -10000.0

# Extra columns tried past each wall by the root generator.
ROOT_SPAN_MARGIN = 2


@dataclass
class Placement:
    """A specific placement of a piece on the board."""

    x: int                 # leftmost column of the rotated shape
    y: int                 # landing row of the shape's top row
    rotation_index: int    # index into the piece's rotation set
    shape: Shape
    score: float           # immediate heuristic score
    breakdown: ScoreBreakdown | None = None
    combined_score: float | None = None   # set when lookahead ran
    game_over: bool = False

    @property
    def final_score(self) -> float:
        """Score used for the final choice."""
        return self.combined_score if self.combined_score is not None else self.score

    def to_record(self) -> dict:
        """Compact form stored in recordings."""
        return {"x": self.x, "y": self.y, "r": self.rotation_index, "s": round(self.score, 2)}


def generate_placements(
    board: Board,
    piece: Piece,
    evaluator: HeuristicEvaluator,
    context: EvalContext,
    strict: bool = False,
    capture_breakdown: bool = False,
    game_over_score: float = GAME_OVER_SCORE,
    prepared: PreparedBoard | None = None,
) -> list[Placement]:
    """Generate every legal placement of `piece` and evaluate each.

    `prepared` is the encoded form of `board`; it is built here when the
    caller has not already done so.
    """
    if prepared is None:
        prepared = evaluator.prepare(board, context, (piece.color,))
    grid = prepared.grid
    color = prepared.codes.code(piece.color)
    out = np.zeros(N_FEATURES)
    placements = []
    cols = board.cols

    for rotation_index, shape in enumerate(piece.rotations):
        if not shape:
            continue
        mask = shape_mask(shape)
        height, width = mask.shape

        if strict:
            columns = range(0, cols - width + 1)
            start_y = 0
        else:
            columns = range(-ROOT_SPAN_MARGIN, cols + ROOT_SPAN_MARGIN)
            start_y = -height

        for x in columns:
            if not fits(grid, mask, height, width, x, start_y):
                continue
            y = drop_row(grid, mask, height, width, x, start_y)

            if y < 0:
                # Can not come to rest inside the board
                placements.append(Placement(x, y, rotation_index, shape, game_over_score,
                                            game_over=True))
                continue

            after = place(grid, mask, height, width, x, y, color)
            score = evaluator.score(prepared, after, mask, x, y, color, out)
            placements.append(Placement(
                x, y, rotation_index, shape, float(score),
                breakdown=decode_breakdown(out, prepared.codes) if capture_breakdown else None,
            ))

    return placements


def rank_by_score(placements: list[Placement], limit: int | None = None) -> list[Placement]:
    """Sort by immediate score, best first; generation order breaks ties."""
    ranked = sorted(placements, key=lambda p: -p.score)
    return ranked if limit is None else ranked[:limit]
