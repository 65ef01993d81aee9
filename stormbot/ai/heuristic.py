"""Heuristic evaluation function for board positions.

Scores the board left behind by a placement using a weighted sum of
features. Higher scores are better. Besides the usual stacking features
(holes, height, bumpiness, wells) the evaluator looks for the game's
special events and grooms the board toward them:

  - Tsunami: a same-color horizontal run spanning the full width
  - Volcano: a floor- and wall-anchored blob enclosed by other colors

Holes are tolerated while a special event is being built, since cascades
after the event refill them. Line clears are penalized while a wide run is
in progress because a clear destroys the run.

All scoring happens in one numba kernel, `score_placement`, which always
itemizes every term into a feature vector. The lookahead calls it directly
on encoded grids; `evaluate_with_breakdown` decodes the vector into a
ScoreBreakdown, so the plain and instrumented scores can not drift apart.
"""

from __future__ import annotations

from collections import namedtuple
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Sequence

import numpy as np
from numba import njit

from ..game.grid import EMPTY, MAX_COLORS, ColorCodes, shape_mask
from ..game.pieces import Color, Shape
from ..game.specials import (
    MIN_RUN_WIDTH,
    RUN_COLOR,
    RUN_END,
    RUN_ROW,
    RUN_START,
    row_runs,
    volcano_potential,
)
from .state import Mode, SkillLevel

if TYPE_CHECKING:
    from ..game.board import Board


class Classification(str, Enum):
    NEUTRAL = "neutral"
    OFFENSIVE = "offensive"
    DEFENSIVE = "defensive"
    OPPORTUNISTIC = "opportunistic"
    SURVIVAL = "survival"


@dataclass
class Weights:
    """Tunable weights for the heuristic evaluation.

    Values were tuned by hand against live play; keep their relative
    magnitudes unless a regression baseline says otherwise.
    """

    # Holes (penalty tiers, cascade aware)
    holes_building: float = 1.0
    holes_potential: float = 3.0
    holes_few: float = 5.0
    holes_few_limit: int = 3
    holes_some_base: float = 15.0
    holes_some: float = 6.0
    holes_some_limit: int = 6
    holes_many_base: float = 33.0
    holes_many: float = 10.0

    # Stack height and surface
    height: float = 1.0
    height_building: float = 0.6
    height_building_limit: int = 17
    bumpiness: float = 0.8
    bumpiness_building: float = 0.3

    # Deep wells
    well_depth_limit: int = 3
    well_depth: float = 3.0

    # Critical height bands: (min height, penalty), checked top-down
    critical_bands: tuple[tuple[int, float], ...] = ((19, 200.0), (17, 60.0), (15, 15.0))

    # Line clears, by context
    clears_emergency_height: int = 18
    clears_emergency: float = 150.0
    clears_danger_height: int = 16
    clears_danger: float = 50.0
    clears_ufo: float = -50.0
    clears_tsunami_near: float = -80.0
    clears_tsunami_achievable: float = -50.0
    clears_tsunami_potential: float = -25.0
    clears_volcano: float = -40.0
    clears_default: float = 3.0

    # Tsunami detection: run width needed with 0 / 1 / 2+ matching queue pieces
    tsunami_thresholds: tuple[int, int, int] = (7, 6, 5)

    # Tsunami building bonus (piece matches the best run color)
    tsunami_base: float = 15.0
    tsunami_width9: float = 50.0
    tsunami_per_extra_width: float = 30.0
    tsunami_width8: float = 25.0
    tsunami_width7: float = 10.0
    tsunami_per_queue_match: float = 8.0

    # Volcano
    volcano_ready_base: float = 100.0
    volcano_ready_per_cell: float = 10.0
    volcano_progress_floor: float = 0.3
    volcano_progress: float = 30.0
    volcano_min_partial_size: int = 4

    # Blob building is allowed up to this stack height
    blob_height_limit: int = 17

    # Adjacency of the placed piece to same-colored cells
    adjacency_horizontal: float = 8.0
    adjacency_vertical: float = 2.0
    simple_adjacency: float = 5.0
    simple_run_min_width: int = 3
    simple_run: float = 3.0

    # Horizontal run bonuses
    run_min_width: int = 4
    run_per_width: float = 3.0
    run_edge_per_width: float = 2.0
    run_full_span: float = 400.0
    run_full_span_per_width: float = 15.0
    run_same_color_factor: float = 1.5
    run_width10_per_extra: float = 40.0
    run_width9: float = 30.0
    run_width8: float = 15.0

    # Extending our own runs
    run_edge_extension_per_width: float = 5.0
    best_run_min_width: int = 5
    toward_missing_edge_base: float = 25.0
    toward_missing_edge_per_width: float = 3.0
    floating_run_extension_base: float = 15.0

    # Queue support for our best run, by matching piece count (1, 2, 3+)
    queue_per_width: tuple[float, float, float] = (2.0, 4.0, 6.0)

    # Piece touching the floor and a side wall
    corner: float = 10.0
    corner_volcano: float = 15.0
    corner_volcano_progress: float = 0.2

    # Classification cutoffs
    offensive_blob: float = 20.0
    offensive_runs: float = 30.0
    defensive_holes: float = 20.0
    defensive_height: float = 15.0


DEFAULT_WEIGHTS = Weights()


@dataclass(frozen=True)
class EvalContext:
    """Per-decision inputs that are not part of the board."""

    skill_level: SkillLevel = SkillLevel.TEMPEST
    queue_colors: tuple[Color, ...] = ()
    ufo_active: bool = False
    mode: Mode = Mode.COLOR_BUILDING


@dataclass
class TsunamiStatus:
    potential: bool = False
    achievable: bool = False
    near_completion: bool = False
    width: int = 0
    color: Color | None = None
    bonus: float = 0.0


@dataclass
class VolcanoStatus:
    potential: bool = False
    progress: float = 0.0
    inner_size: int = 0
    bonus: float = 0.0


@dataclass
class ScoreBreakdown:
    """Itemized scoring components of one placement."""

    holes: int = 0
    holes_penalty: float = 0.0
    height: int = 0
    height_penalty: float = 0.0
    bumpiness: int = 0
    bumpiness_penalty: float = 0.0
    wells: int = 0
    wells_penalty: float = 0.0
    critical_height_penalty: float = 0.0
    line_clears: int = 0
    line_clear_bonus: float = 0.0
    tsunami: TsunamiStatus = field(default_factory=TsunamiStatus)
    volcano: VolcanoStatus = field(default_factory=VolcanoStatus)
    horizontal_adj: int = 0
    vertical_adj: int = 0
    blob_bonus: float = 0.0
    runs_bonus: float = 0.0
    edge_bonus: float = 0.0
    queue_matches: int = 0
    queue_bonus: float = 0.0
    corner_bonus: float = 0.0
    classification: Classification = Classification.NEUTRAL

    def total(self) -> float:
        return (
            -self.holes_penalty
            - self.height_penalty
            - self.bumpiness_penalty
            - self.wells_penalty
            - self.critical_height_penalty
            + self.line_clear_bonus
            + self.tsunami.bonus
            + self.volcano.bonus
            + self.blob_bonus
            + self.runs_bonus
            + self.edge_bonus
            + self.queue_bonus
            + self.corner_bonus
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["classification"] = self.classification.value
        return data


@dataclass(frozen=True)
class Evaluation:
    score: float
    breakdown: ScoreBreakdown


@dataclass
class PreparedBoard:
    """A board encoded for the scoring kernel, with the decision's context."""

    grid: np.ndarray
    codes: ColorCodes
    queue_counts: np.ndarray    # queued pieces per color code
    specials: bool
    ufo_active: bool
    survival: bool

    def kernel_context(self) -> tuple:
        return self.queue_counts, self.specials, self.ufo_active, self.survival


def _flat_weights(weights: Weights) -> dict[str, float]:
    """Scalar view of the weights; tuple fields become name_0, name_1, ..."""
    values = {}
    for f in fields(weights):
        if f.name == "critical_bands":
            continue
        value = getattr(weights, f.name)
        if isinstance(value, tuple):
            for i, item in enumerate(value):
                values[f"{f.name}_{i}"] = float(item)
        else:
            values[f.name] = float(value)
    return values


KernelWeights = namedtuple("KernelWeights", list(_flat_weights(DEFAULT_WEIGHTS)))


def pack_weights(weights: Weights) -> tuple[KernelWeights, np.ndarray]:
    """Weights as the kernel takes them: a float namedtuple plus the band table."""
    bands = np.array(weights.critical_bands, dtype=np.float64).reshape(-1, 2)
    return KernelWeights(**_flat_weights(weights)), bands


# Slots of the feature vector written by score_placement.
(F_HOLES, F_HOLES_PENALTY, F_HEIGHT, F_HEIGHT_PENALTY, F_BUMPINESS, F_BUMPINESS_PENALTY,
 F_WELLS, F_WELLS_PENALTY, F_CRITICAL_PENALTY, F_LINE_CLEARS, F_LINE_CLEAR_BONUS,
 F_TSUNAMI_POTENTIAL, F_TSUNAMI_ACHIEVABLE, F_TSUNAMI_NEAR, F_TSUNAMI_WIDTH, F_TSUNAMI_COLOR,
 F_TSUNAMI_BONUS, F_VOLCANO_POTENTIAL, F_VOLCANO_PROGRESS, F_VOLCANO_SIZE, F_VOLCANO_BONUS,
 F_HORIZONTAL_ADJ, F_VERTICAL_ADJ, F_BLOB_BONUS, F_RUNS_BONUS, F_EDGE_BONUS, F_QUEUE_MATCHES,
 F_QUEUE_BONUS, F_CORNER_BONUS, F_CLASSIFICATION) = range(30)
N_FEATURES = 30

CLASSIFICATIONS = tuple(Classification)
C_NEUTRAL, C_OFFENSIVE, C_DEFENSIVE, C_OPPORTUNISTIC, C_SURVIVAL = range(5)


class HeuristicEvaluator:
    """Scores board positions using weighted features."""

    def __init__(self, weights: Weights | None = None):
        self.weights = weights or DEFAULT_WEIGHTS
        self.kernel_weights, self.bands = pack_weights(self.weights)

    def prepare(self, board: Board, context: EvalContext,
                colors: Sequence[Color] = ()) -> PreparedBoard:
        """Encode `board` once per decision.

        `colors` registers the piece colors that will be placed on it.
        """
        codes = ColorCodes()
        grid = board.encode(codes)
        for color in colors:
            codes.code(color)
        queue_counts = np.zeros(MAX_COLORS, dtype=np.int64)
        for color in context.queue_colors:
            queue_counts[codes.code(color)] += 1
        return PreparedBoard(
            grid, codes, queue_counts,
            specials=context.skill_level.special_events,
            ufo_active=context.ufo_active,
            survival=context.mode == Mode.SURVIVAL,
        )

    def score(self, prepared: PreparedBoard, grid: np.ndarray, mask: np.ndarray,
              x: int, y: int, color: int, out: np.ndarray) -> float:
        """Score an encoded board the piece was just placed on; fills `out`."""
        h, w = mask.shape
        return score_placement(grid, mask, h, w, x, y, color, *prepared.kernel_context(),
                               self.kernel_weights, self.bands, out)

    def evaluate(self, board: Board, shape: Shape, x: int, y: int, color: Color,
                 context: EvalContext) -> float:
        """Score a board the piece was just placed on. Higher is better."""
        return self.evaluate_with_breakdown(board, shape, x, y, color, context).score

    def evaluate_with_breakdown(self, board: Board, shape: Shape, x: int, y: int,
                                color: Color, context: EvalContext) -> Evaluation:
        prepared = self.prepare(board, context, (color,))
        out = np.zeros(N_FEATURES)
        score = self.score(prepared, prepared.grid, shape_mask(shape), x, y,
                           prepared.codes.code(color), out)
        return Evaluation(float(score), decode_breakdown(out, prepared.codes))


def decode_breakdown(out: np.ndarray, codes: ColorCodes) -> ScoreBreakdown:
    """Rebuild a ScoreBreakdown from the kernel's feature vector."""
    f = out.tolist()
    return ScoreBreakdown(
        holes=int(f[F_HOLES]),
        holes_penalty=f[F_HOLES_PENALTY],
        height=int(f[F_HEIGHT]),
        height_penalty=f[F_HEIGHT_PENALTY],
        bumpiness=int(f[F_BUMPINESS]),
        bumpiness_penalty=f[F_BUMPINESS_PENALTY],
        wells=int(f[F_WELLS]),
        wells_penalty=f[F_WELLS_PENALTY],
        critical_height_penalty=f[F_CRITICAL_PENALTY],
        line_clears=int(f[F_LINE_CLEARS]),
        line_clear_bonus=f[F_LINE_CLEAR_BONUS],
        tsunami=TsunamiStatus(
            potential=bool(f[F_TSUNAMI_POTENTIAL]),
            achievable=bool(f[F_TSUNAMI_ACHIEVABLE]),
            near_completion=bool(f[F_TSUNAMI_NEAR]),
            width=int(f[F_TSUNAMI_WIDTH]),
            color=codes.color(int(f[F_TSUNAMI_COLOR])),
            bonus=f[F_TSUNAMI_BONUS],
        ),
        volcano=VolcanoStatus(
            potential=bool(f[F_VOLCANO_POTENTIAL]),
            progress=f[F_VOLCANO_PROGRESS],
            inner_size=int(f[F_VOLCANO_SIZE]),
            bonus=f[F_VOLCANO_BONUS],
        ),
        horizontal_adj=int(f[F_HORIZONTAL_ADJ]),
        vertical_adj=int(f[F_VERTICAL_ADJ]),
        blob_bonus=f[F_BLOB_BONUS],
        runs_bonus=f[F_RUNS_BONUS],
        edge_bonus=f[F_EDGE_BONUS],
        queue_matches=int(f[F_QUEUE_MATCHES]),
        queue_bonus=f[F_QUEUE_BONUS],
        corner_bonus=f[F_CORNER_BONUS],
        classification=CLASSIFICATIONS[int(f[F_CLASSIFICATION])],
    )


# ── Scoring kernel ──────────────────────────────────────────────────────────


@njit(cache=True)
def _run_rank(runs, i, last_col):
    width = runs[i, RUN_END] - runs[i, RUN_START] + 1
    rank = width * 10
    if runs[i, RUN_START] == 0:
        rank += 5
    if runs[i, RUN_END] == last_col:
        rank += 5
    return rank


@njit(cache=True)
def _adjacency(grid, mask, h, w, x, y, color):
    """(horizontal, vertical) same-color neighbors of the placed cells.

    Neighbors that belong to the piece itself are not counted.
    """
    rows, cols = grid.shape
    horizontal = 0
    vertical = 0
    for py in range(h):
        for px in range(w):
            if not mask[py, px]:
                continue
            bx = x + px
            by = y + py
            if by < 0 or by >= rows or bx < 0 or bx >= cols:
                continue
            own_left = px > 0 and mask[py, px - 1] != 0
            own_right = px < w - 1 and mask[py, px + 1] != 0
            own_above = py > 0 and mask[py - 1, px] != 0
            own_below = py < h - 1 and mask[py + 1, px] != 0
            if bx > 0 and grid[by, bx - 1] == color and not own_left:
                horizontal += 1
            if bx < cols - 1 and grid[by, bx + 1] == color and not own_right:
                horizontal += 1
            if by > 0 and grid[by - 1, bx] == color and not own_above:
                vertical += 1
            if by < rows - 1 and grid[by + 1, bx] == color and not own_below:
                vertical += 1
    return horizontal, vertical


@njit(cache=True)
def _touches_run_end(mask, h, w, x, y, row, start, end):
    for py in range(h):
        for px in range(w):
            if mask[py, px] != 0 and y + py == row and (x + px == start or x + px == end):
                return True
    return False


@njit(cache=True)
def score_placement(grid, mask, h, w, x, y, color, queue_counts, specials, ufo_active,
                    survival, wt, bands, out):
    """Score the grid left by placing `mask` at (x, y); return the total.

    Every itemized term is written to `out` (see the F_* slots). The total
    adds the terms in ScoreBreakdown.total() order.
    """
    rows, cols = grid.shape
    last_col = cols - 1

    # Surface
    heights = np.zeros(cols, dtype=np.int64)
    holes = 0
    top = rows
    for c in range(cols):
        seen = False
        for r in range(rows):
            if grid[r, c] != EMPTY:
                if not seen:
                    heights[c] = rows - r
                    seen = True
                if r < top:
                    top = r
            elif seen:
                holes += 1
    height = rows - top
    bumpiness = 0
    for c in range(cols - 1):
        bumpiness += abs(heights[c] - heights[c + 1])

    # Runs and the best run of each color, colors in first-seen order
    runs = np.empty((rows * (cols // MIN_RUN_WIDTH + 1), 4), dtype=np.int64)
    n_runs = row_runs(grid, runs)
    best_run = np.full(MAX_COLORS, -1, dtype=np.int64)
    color_order = np.empty(MAX_COLORS, dtype=np.int64)
    n_colors = 0
    for i in range(n_runs):
        rc = runs[i, RUN_COLOR]
        if best_run[rc] < 0:
            best_run[rc] = i
            color_order[n_colors] = rc
            n_colors += 1
        elif _run_rank(runs, i, last_col) > _run_rank(runs, best_run[rc], last_col):
            best_run[rc] = i

    # Tsunami detection
    ts_potential = False
    ts_achievable = False
    ts_near = False
    ts_width = 0
    ts_color = -1
    if specials:
        for k in range(n_colors):
            rc = color_order[k]
            i = best_run[rc]
            width = runs[i, RUN_END] - runs[i, RUN_START] + 1
            matches = queue_counts[rc]
            if matches >= 2:
                threshold = wt.tsunami_thresholds_2
            elif matches >= 1:
                threshold = wt.tsunami_thresholds_1
            else:
                threshold = wt.tsunami_thresholds_0
            if width >= threshold:
                ts_potential = True
                if width > ts_width:
                    ts_width = width
                    ts_color = rc
            if width >= 9 or (width >= 8 and matches >= 1) or (width >= 7 and matches >= 2):
                ts_achievable = True
            if width >= 9 or (width >= 8 and matches >= 2):
                ts_near = True

    # Volcano detection
    vo_potential = False
    vo_progress = 0.0
    vo_size = 0
    if specials:
        vo_potential, vo_progress, vo_size, _edge = volcano_potential(
            grid, int(wt.volcano_min_partial_size))

    building = ts_achievable or vo_potential
    classification = C_NEUTRAL

    # Holes
    if building:
        holes_penalty = holes * wt.holes_building
    elif ts_potential or vo_progress > wt.volcano_progress_floor:
        holes_penalty = holes * wt.holes_potential
    elif holes <= wt.holes_few_limit:
        holes_penalty = holes * wt.holes_few
    elif holes <= wt.holes_some_limit:
        holes_penalty = wt.holes_some_base + (holes - wt.holes_few_limit) * wt.holes_some
    else:
        holes_penalty = wt.holes_many_base + (holes - wt.holes_some_limit) * wt.holes_many

    # Height and surface
    if building and height < wt.height_building_limit:
        height_penalty = height * wt.height_building
    else:
        height_penalty = height * wt.height
    if building:
        bumpiness_penalty = bumpiness * wt.bumpiness_building
    else:
        bumpiness_penalty = bumpiness * wt.bumpiness

    # Deep wells; a wall counts as the column's own height
    wells = 0
    wells_penalty = 0.0
    for c in range(cols):
        left = heights[c - 1] if c > 0 else heights[c]
        right = heights[c + 1] if c < cols - 1 else heights[c]
        depth = min(left, right) - heights[c]
        if depth > wt.well_depth_limit:
            wells += 1
            wells_penalty += (depth - wt.well_depth_limit) * wt.well_depth

    # Critical height, bands checked top-down
    critical_penalty = 0.0
    for band in range(bands.shape[0]):
        if height >= bands[band, 0]:
            critical_penalty = bands[band, 1]
            if band == 0:
                classification = C_SURVIVAL
            elif band == 1:
                classification = C_DEFENSIVE
            break

    # Line clears
    line_clears = 0
    for r in range(rows):
        full = True
        for c in range(cols):
            if grid[r, c] == EMPTY:
                full = False
                break
        if full:
            line_clears += 1
    line_clear_bonus = 0.0
    if line_clears > 0:
        if height >= wt.clears_emergency_height:
            classification = C_SURVIVAL
            rate = wt.clears_emergency
        elif height >= wt.clears_danger_height:
            rate = wt.clears_danger
        elif ufo_active:
            rate = wt.clears_ufo
        elif ts_near:
            rate = wt.clears_tsunami_near
        elif ts_achievable:
            rate = wt.clears_tsunami_achievable
        elif ts_potential:
            rate = wt.clears_tsunami_potential
        elif vo_potential:
            rate = wt.clears_volcano
        else:
            rate = wt.clears_default
        line_clear_bonus = line_clears * rate

    # Tsunami building
    ts_bonus = 0.0
    if specials and ts_potential and color == ts_color:
        ts_bonus = wt.tsunami_base
        if ts_width >= 9:
            ts_bonus += wt.tsunami_width9 + (ts_width - 9) * wt.tsunami_per_extra_width
        elif ts_width >= 8:
            ts_bonus += wt.tsunami_width8
        elif ts_width >= 7:
            ts_bonus += wt.tsunami_width7
        ts_bonus = ts_bonus + queue_counts[ts_color] * wt.tsunami_per_queue_match
        if classification == C_NEUTRAL:
            classification = C_OFFENSIVE

    # Volcano building
    vo_bonus = 0.0
    if specials and vo_potential:
        vo_bonus = wt.volcano_ready_base + vo_size * wt.volcano_ready_per_cell
        classification = C_OFFENSIVE
    elif specials and vo_progress > wt.volcano_progress_floor:
        vo_bonus = vo_progress * wt.volcano_progress

    # Blob building; no grooming in imminent danger
    if survival:
        can_build_blobs = building
    else:
        can_build_blobs = height <= wt.blob_height_limit or building

    horizontal_adj = 0
    vertical_adj = 0
    blob_bonus = 0.0
    runs_bonus = 0.0
    edge_bonus = 0.0
    queue_matches = 0
    queue_bonus = 0.0
    corner_bonus = 0.0
    if can_build_blobs:
        horizontal_adj, vertical_adj = _adjacency(grid, mask, h, w, x, y, color)
        if specials:
            blob_bonus = (horizontal_adj * wt.adjacency_horizontal
                          + vertical_adj * wt.adjacency_vertical)

            for i in range(n_runs):
                start = runs[i, RUN_START]
                end = runs[i, RUN_END]
                width = end - start + 1
                if width < wt.run_min_width:
                    continue
                bonus = width * wt.run_per_width
                if start == 0:
                    bonus += width * wt.run_edge_per_width
                if end == last_col:
                    bonus += width * wt.run_edge_per_width
                if start == 0 and end == last_col:
                    bonus += wt.run_full_span + width * wt.run_full_span_per_width
                    classification = C_OPPORTUNISTIC
                if runs[i, RUN_COLOR] == color:
                    bonus *= wt.run_same_color_factor
                if width >= 10:
                    bonus += (width - 9) * wt.run_width10_per_extra
                elif width >= 9:
                    bonus += wt.run_width9
                elif width >= 8:
                    bonus += wt.run_width8
                runs_bonus += bonus

            for i in range(n_runs):
                start = runs[i, RUN_START]
                end = runs[i, RUN_END]
                width = end - start + 1
                if runs[i, RUN_COLOR] != color or width < wt.run_min_width:
                    continue
                if _touches_run_end(mask, h, w, x, y, runs[i, RUN_ROW], start, end):
                    edge_bonus += width * wt.run_edge_extension_per_width

            piece_min_x = x
            piece_max_x = x + max(w - 1, 0)
            best = best_run[color]
            if best >= 0:
                start = runs[best, RUN_START]
                end = runs[best, RUN_END]
                width = end - start + 1
                if width >= wt.best_run_min_width:
                    touches_left = start == 0
                    touches_right = end == last_col
                    toward_edge = (wt.toward_missing_edge_base
                                   + width * wt.toward_missing_edge_per_width)
                    if touches_left and not touches_right and piece_max_x >= end:
                        edge_bonus += toward_edge
                    elif touches_right and not touches_left and piece_min_x <= start:
                        edge_bonus += toward_edge
                    elif not touches_left and not touches_right:
                        if piece_min_x <= start or piece_max_x >= end:
                            edge_bonus += wt.floating_run_extension_base + width

                    queue_matches = queue_counts[color]
                    if queue_matches >= 3:
                        queue_bonus = width * wt.queue_per_width_2
                    elif queue_matches == 2:
                        queue_bonus = width * wt.queue_per_width_1
                    elif queue_matches == 1:
                        queue_bonus = width * wt.queue_per_width_0

            # Piece resting on the floor against a side wall
            if y + h - 1 == rows - 1 and (x == 0 or piece_max_x == last_col):
                corner_bonus = wt.corner
                if vo_progress > wt.corner_volcano_progress:
                    corner_bonus += wt.corner_volcano
        else:
            blob_bonus = (horizontal_adj + vertical_adj) * wt.simple_adjacency
            for i in range(n_runs):
                width = runs[i, RUN_END] - runs[i, RUN_START] + 1
                if width >= wt.simple_run_min_width and runs[i, RUN_COLOR] == color:
                    blob_bonus += width * wt.simple_run

    if classification == C_NEUTRAL:
        if (blob_bonus > wt.offensive_blob or runs_bonus > wt.offensive_runs
                or vo_bonus > 0):
            classification = C_OFFENSIVE
        elif holes_penalty > wt.defensive_holes or height_penalty > wt.defensive_height:
            classification = C_DEFENSIVE

    out[F_HOLES] = holes
    out[F_HOLES_PENALTY] = holes_penalty
    out[F_HEIGHT] = height
    out[F_HEIGHT_PENALTY] = height_penalty
    out[F_BUMPINESS] = bumpiness
    out[F_BUMPINESS_PENALTY] = bumpiness_penalty
    out[F_WELLS] = wells
    out[F_WELLS_PENALTY] = wells_penalty
    out[F_CRITICAL_PENALTY] = critical_penalty
    out[F_LINE_CLEARS] = line_clears
    out[F_LINE_CLEAR_BONUS] = line_clear_bonus
    out[F_TSUNAMI_POTENTIAL] = 1.0 if ts_potential else 0.0
    out[F_TSUNAMI_ACHIEVABLE] = 1.0 if ts_achievable else 0.0
    out[F_TSUNAMI_NEAR] = 1.0 if ts_near else 0.0
    out[F_TSUNAMI_WIDTH] = ts_width
    out[F_TSUNAMI_COLOR] = ts_color
    out[F_TSUNAMI_BONUS] = ts_bonus
    out[F_VOLCANO_POTENTIAL] = 1.0 if vo_potential else 0.0
    out[F_VOLCANO_PROGRESS] = vo_progress
    out[F_VOLCANO_SIZE] = vo_size
    out[F_VOLCANO_BONUS] = vo_bonus
    out[F_HORIZONTAL_ADJ] = horizontal_adj
    out[F_VERTICAL_ADJ] = vertical_adj
    out[F_BLOB_BONUS] = blob_bonus
    out[F_RUNS_BONUS] = runs_bonus
    out[F_EDGE_BONUS] = edge_bonus
    out[F_QUEUE_MATCHES] = queue_matches
    out[F_QUEUE_BONUS] = queue_bonus
    out[F_CORNER_BONUS] = corner_bonus
    out[F_CLASSIFICATION] = classification

    return (
        -holes_penalty
        - height_penalty
        - bumpiness_penalty
        - wells_penalty
        - critical_penalty
        + line_clear_bonus
        + ts_bonus
        + vo_bonus
        + blob_bonus
        + runs_bonus
        + edge_bonus
        + queue_bonus
        + corner_bonus
    )


def queue_colors(queue: Sequence) -> tuple[Color, ...]:
    """Colors of the queued pieces, skipping empty slots."""
    return tuple(p.color for p in queue if p is not None)
