"""Multi-ply lookahead over the known piece queue.

Greedy search with discounting, not minimax: the queue is fixed and known,
so every level only maximizes. Each level keeps the top-K placements of
its piece by immediate score (beam pruning) and adds the discounted best
continuation of the next level.

With the default configuration and a full queue of three:

  combined = score + 0.5 * best(next + 0.35 * best(third + 0.25 * best(fourth)))

over the top 5 next placements, the top 4 third placements and the single
best fourth placement.

A queued piece that can not be placed anywhere costs the root placement a
flat `unplaceable_penalty`, whatever its depth: the penalty is scaled up by
the discounts it is about to pass through, so a fourth piece with no room
still subtracts 100 from the combined score, not 100 * 0.5 * 0.35.

Root placements are generated in Python (they carry breakdowns and feed
the recorder). Everything below the root runs in numba kernels over the
encoded grid, one kernel per remaining depth. Boards are scored with
completed rows still present; clearing them is up to the host.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from numba import njit

from ..game.board import Board
from ..game.grid import ColorCodes, drop_row, fits, place, shape_mask
from ..game.pieces import Piece, get_height, get_width
from .heuristic import N_FEATURES, EvalContext, HeuristicEvaluator, score_placement
from .planner import GAME_OVER_SCORE, Placement, generate_placements

# Deepest queue the kernels search (next, third and fourth piece).
MAX_DEPTH = 3


@dataclass(frozen=True)
class SearchConfig:
    """Beam widths and discounts per queued piece (next, third, fourth)."""

    beam_widths: tuple[int, ...] = (5, 4, 1)
    discounts: tuple[float, ...] = (0.5, 0.35, 0.25)
    unplaceable_penalty: float = 100.0
    game_over_score: float = GAME_OVER_SCORE

    @property
    def max_queue(self) -> int:
        return min(len(self.beam_widths), len(self.discounts), MAX_DEPTH)

    def level_penalties(self) -> np.ndarray:
        """Unplaceable penalty per level, pre-scaled so it reaches the root undiscounted."""
        penalties = np.zeros(self.max_queue)
        reach = 1.0
        for level in range(self.max_queue):
            penalties[level] = self.unplaceable_penalty / reach if reach > 0 else 0.0
            reach *= self.discounts[level]
        return penalties


DEFAULT_SEARCH = SearchConfig()


@dataclass
class SearchResult:
    best: Placement | None
    placements: list[Placement] = field(default_factory=list)
    depth: int = 1     # plies considered, the current piece included


@dataclass
class QueueStack:
    """Queued pieces packed for the kernels.

    masks[level, rotation] is the rotation's mask padded to a common size,
    dims[level, rotation] its real (height, width).
    """

    masks: np.ndarray
    dims: np.ndarray
    rotations: np.ndarray
    colors: np.ndarray

    @classmethod
    def build(cls, pieces: Sequence[Piece], codes: ColorCodes) -> QueueStack:
        shapes = [shape for piece in pieces for shape in piece.rotations]
        n_rot = max(len(piece.rotations) for piece in pieces)
        max_h = max(get_height(shape) for shape in shapes)
        max_w = max(get_width(shape) for shape in shapes)

        masks = np.zeros((len(pieces), n_rot, max_h, max_w), dtype=np.uint8)
        dims = np.zeros((len(pieces), n_rot, 2), dtype=np.int64)
        for level, piece in enumerate(pieces):
            for r, shape in enumerate(piece.rotations):
                mask = shape_mask(shape)
                h, w = mask.shape
                masks[level, r, :h, :w] = mask
                dims[level, r] = (h, w)
        rotations = np.array([len(p.rotations) for p in pieces], dtype=np.int64)
        colors = np.array([codes.code(p.color) for p in pieces], dtype=np.int64)
        return cls(masks, dims, rotations, colors)

    @property
    def depth(self) -> int:
        return len(self.colors)

    def kernel_args(self) -> tuple:
        return self.masks, self.dims, self.rotations, self.colors


class LookaheadSearch:
    """Selects the placement with the highest combined score."""

    def __init__(self, evaluator: HeuristicEvaluator, config: SearchConfig | None = None):
        self.evaluator = evaluator
        self.config = config or DEFAULT_SEARCH
        self._beams = np.array(self.config.beam_widths[: self.config.max_queue], dtype=np.int64)
        self._discounts = np.array(self.config.discounts[: self.config.max_queue], dtype=np.float64)
        self._penalties = self.config.level_penalties()

    def search(
        self,
        board: Board,
        piece: Piece,
        queue: Sequence[Piece | None],
        context: EvalContext,
        capture_breakdown: bool = False,
    ) -> SearchResult:
        """Score every root placement and pick the best.

        `queue` holds the upcoming pieces in order; only the first
        `config.max_queue` are searched, stopping at an empty slot, but the
        evaluator context keeps every queued color.
        """
        lookahead = []
        for queued in queue[: self.config.max_queue]:
            if queued is None:
                break
            lookahead.append(queued)

        prepared = self.evaluator.prepare(board, context,
                                          [piece.color] + [p.color for p in lookahead])
        placements = generate_placements(
            board, piece, self.evaluator, context,
            capture_breakdown=capture_breakdown,
            game_over_score=self.config.game_over_score,
            prepared=prepared,
        )
        if not placements:
            return SearchResult(None, [], 0)

        if lookahead:
            stack = QueueStack.build(lookahead, prepared.codes)
            term = _TERMS[stack.depth - 1]
            args = (*stack.kernel_args(), self._beams, self._discounts, self._penalties,
                    *prepared.kernel_context(), self.evaluator.kernel_weights,
                    self.evaluator.bands)
            color = prepared.codes.code(piece.color)
            for placement in placements:
                if placement.game_over:
                    placement.combined_score = placement.score
                    continue
                mask = shape_mask(placement.shape)
                h, w = mask.shape
                after = place(prepared.grid, mask, h, w, placement.x, placement.y, color)
                placement.combined_score = placement.score + float(term(after, 0, *args))

        best = placements[0]
        for placement in placements[1:]:
            if placement.final_score > best.final_score:
                best = placement

        return SearchResult(best, placements, 1 + len(lookahead))


# ── Search kernels ──────────────────────────────────────────────────────────
#
# _term_N(grid, level, ...) is the discounted contribution of queue[level]
# when N queued pieces remain, counting queue[level] itself. The kernels do
# not recurse; each depth calls the next shallower one.


@njit(cache=True)
def _candidates(grid, level, masks, dims, rotations, colors, queue_counts, specials,
                ufo_active, survival, wt, bands):
    """Strict placements of queue[level] as (xs, ys, rots, scores, count).

    Rotation-major, then left to right, matching generate_placements.
    """
    cols = grid.shape[1]
    capacity = rotations[level] * (cols + 1)
    xs = np.empty(capacity, dtype=np.int64)
    ys = np.empty(capacity, dtype=np.int64)
    rots = np.empty(capacity, dtype=np.int64)
    scores = np.empty(capacity, dtype=np.float64)
    out = np.empty(N_FEATURES, dtype=np.float64)
    color = colors[level]
    n = 0
    for r in range(rotations[level]):
        h = dims[level, r, 0]
        w = dims[level, r, 1]
        if h == 0:
            continue
        mask = masks[level, r]
        for x in range(0, cols - w + 1):
            if not fits(grid, mask, h, w, x, 0):
                continue
            y = drop_row(grid, mask, h, w, x, 0)
            after = place(grid, mask, h, w, x, y, color)
            scores[n] = score_placement(after, mask, h, w, x, y, color, queue_counts, specials,
                                        ufo_active, survival, wt, bands, out)
            xs[n] = x
            ys[n] = y
            rots[n] = r
            n += 1
    return xs, ys, rots, scores, n


@njit(cache=True)
def _term_1(grid, level, masks, dims, rotations, colors, beams, discounts, penalties,
            queue_counts, specials, ufo_active, survival, wt, bands):
    xs, ys, rots, scores, n = _candidates(grid, level, masks, dims, rotations, colors,
                                          queue_counts, specials, ufo_active, survival, wt, bands)
    if n == 0:
        return -penalties[level]
    best = -np.inf
    order = np.argsort(-scores[:n], kind="mergesort")
    for j in range(min(beams[level], n)):
        if scores[order[j]] > best:
            best = scores[order[j]]
    return best * discounts[level]


@njit(cache=True)
def _term_2(grid, level, masks, dims, rotations, colors, beams, discounts, penalties,
            queue_counts, specials, ufo_active, survival, wt, bands):
    xs, ys, rots, scores, n = _candidates(grid, level, masks, dims, rotations, colors,
                                          queue_counts, specials, ufo_active, survival, wt, bands)
    if n == 0:
        return -penalties[level]
    best = -np.inf
    order = np.argsort(-scores[:n], kind="mergesort")
    for j in range(min(beams[level], n)):
        i = order[j]
        r = rots[i]
        after = place(grid, masks[level, r], dims[level, r, 0], dims[level, r, 1],
                      xs[i], ys[i], colors[level])
        value = scores[i] + _term_1(after, level + 1, masks, dims, rotations, colors, beams,
                                    discounts, penalties, queue_counts, specials, ufo_active,
                                    survival, wt, bands)
        if value > best:
            best = value
    return best * discounts[level]


@njit(cache=True)
def _term_3(grid, level, masks, dims, rotations, colors, beams, discounts, penalties,
            queue_counts, specials, ufo_active, survival, wt, bands):
    xs, ys, rots, scores, n = _candidates(grid, level, masks, dims, rotations, colors,
                                          queue_counts, specials, ufo_active, survival, wt, bands)
    if n == 0:
        return -penalties[level]
    best = -np.inf
    order = np.argsort(-scores[:n], kind="mergesort")
    for j in range(min(beams[level], n)):
        i = order[j]
        r = rots[i]
        after = place(grid, masks[level, r], dims[level, r, 0], dims[level, r, 1],
                      xs[i], ys[i], colors[level])
        value = scores[i] + _term_2(after, level + 1, masks, dims, rotations, colors, beams,
                                    discounts, penalties, queue_counts, specials, ufo_active,
                                    survival, wt, bands)
        if value > best:
            best = value
    return best * discounts[level]


_TERMS = (_term_1, _term_2, _term_3)
