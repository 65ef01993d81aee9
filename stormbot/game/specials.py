"""Special-event geometry: horizontal runs and enclosed blobs.

The game awards outsized scores for two board configurations:
  - Tsunami: a same-color horizontal run spanning the full board width
  - Volcano: a same-color blob touching the floor and a side wall that is
    completely enclosed by other colors

The numba kernels work on encoded grids (see grid.py) and are called once
per evaluated board by the heuristic. The Board-level wrappers below decode
their results for inspection and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numba import njit

from .grid import EMPTY, ColorCodes
from .pieces import Color

if TYPE_CHECKING:
    from .board import Board

# Runs narrower than this are not tracked at all.
MIN_RUN_WIDTH = 2

# Columns of the run table filled by row_runs.
RUN_ROW, RUN_START, RUN_END, RUN_COLOR = range(4)

EDGES = ("left", "right")


@dataclass(frozen=True)
class Run:
    """Maximal horizontal same-color sequence within one row."""

    color: Color
    row: int
    start_x: int
    end_x: int
    touches_left: bool
    touches_right: bool

    @property
    def width(self) -> int:
        return self.end_x - self.start_x + 1

    @property
    def full_span(self) -> bool:
        return self.touches_left and self.touches_right

    def rank(self) -> int:
        """Wider first, then edge contact."""
        return self.width * 10 + (5 if self.touches_left else 0) + (5 if self.touches_right else 0)


@dataclass(frozen=True)
class Blob:
    """Maximal 4-connected same-color region."""

    color: Color
    positions: tuple[tuple[int, int], ...]
    touches_bottom: bool = False
    touches_left: bool = False
    touches_right: bool = False
    enclosed: bool = False

    @property
    def size(self) -> int:
        return len(self.positions)


@dataclass(frozen=True)
class VolcanoPotential:
    has_potential: bool = False
    progress: float = 0.0
    inner_size: int = 0
    edge: str | None = None


# ── Kernels ─────────────────────────────────────────────────────────────────


def run_table(grid: np.ndarray) -> np.ndarray:
    rows, cols = grid.shape
    return np.empty((rows * (cols // MIN_RUN_WIDTH + 1), 4), dtype=np.int64)


@njit(cache=True)
def row_runs(grid, out):
    """Fill `out` with (row, start, end, color) runs, top row first; return the count."""
    rows, cols = grid.shape
    n = 0
    for y in range(rows):
        start = 0
        for x in range(1, cols + 1):
            if x < cols and grid[y, x] != EMPTY and grid[y, x] == grid[y, start]:
                continue
            color = grid[y, start]
            if color != EMPTY and x - start >= MIN_RUN_WIDTH:
                out[n, RUN_ROW] = y
                out[n, RUN_START] = start
                out[n, RUN_END] = x - 1
                out[n, RUN_COLOR] = color
                n += 1
            start = x
    return n


@njit(cache=True)
def blob_stats(grid):
    """Label 4-connected same-color blobs in row-major discovery order.

    Returns (labels, count, sizes, bottom, left, right, enclosed). A blob is
    enclosed when no outward neighbor inside the board is empty.
    """
    rows, cols = grid.shape
    total = rows * cols
    labels = np.full((rows, cols), -1, dtype=np.int64)
    stack = np.empty(total, dtype=np.int64)
    count = 0

    for y in range(rows):
        for x in range(cols):
            color = grid[y, x]
            if color == EMPTY or labels[y, x] >= 0:
                continue
            labels[y, x] = count
            stack[0] = y * cols + x
            top = 1
            while top > 0:
                top -= 1
                cy = stack[top] // cols
                cx = stack[top] % cols
                for d in range(4):
                    ny = cy
                    nx = cx
                    if d == 0:
                        nx = cx - 1
                    elif d == 1:
                        nx = cx + 1
                    elif d == 2:
                        ny = cy - 1
                    else:
                        ny = cy + 1
                    if nx < 0 or nx >= cols or ny < 0 or ny >= rows:
                        continue
                    if labels[ny, nx] >= 0 or grid[ny, nx] != color:
                        continue
                    labels[ny, nx] = count
                    stack[top] = ny * cols + nx
                    top += 1
            count += 1

    sizes = np.zeros(count, dtype=np.int64)
    bottom = np.zeros(count, dtype=np.bool_)
    left = np.zeros(count, dtype=np.bool_)
    right = np.zeros(count, dtype=np.bool_)
    enclosed = np.ones(count, dtype=np.bool_)
    for y in range(rows):
        for x in range(cols):
            label = labels[y, x]
            if label < 0:
                continue
            sizes[label] += 1
            if y == rows - 1:
                bottom[label] = True
            if x == 0:
                left[label] = True
            if x == cols - 1:
                right[label] = True
            if x > 0 and grid[y, x - 1] == EMPTY:
                enclosed[label] = False
            if x < cols - 1 and grid[y, x + 1] == EMPTY:
                enclosed[label] = False
            if y > 0 and grid[y - 1, x] == EMPTY:
                enclosed[label] = False
            if y < rows - 1 and grid[y + 1, x] == EMPTY:
                enclosed[label] = False
    return labels, count, sizes, bottom, left, right, enclosed


@njit(cache=True)
def volcano_potential(grid, min_partial_size):
    """Best enclosure candidate as (has_potential, progress, inner_size, edge).

    A blob touching the floor and a side wall that is fully enclosed is a
    ready volcano (progress 1.0); the largest one wins. Without any ready
    volcano, an edge-anchored blob of at least `min_partial_size` cells
    reports graduated progress in [0.3, 0.6]. `edge` is 0 (left), 1 (right)
    or -1 when nothing qualifies.
    """
    labels, count, sizes, bottom, left, right, enclosed = blob_stats(grid)
    has_potential = False
    progress = 0.0
    inner_size = 0
    edge = -1
    for b in range(count):
        if not (bottom[b] and (left[b] or right[b])):
            continue
        side = 0 if left[b] else 1

        if enclosed[b]:
            if not has_potential or sizes[b] > inner_size:
                has_potential = True
                progress = 1.0
                inner_size = sizes[b]
                edge = side
            continue

        if sizes[b] >= min_partial_size and not has_potential:
            partial = min(0.6, 0.3 + (sizes[b] / 20) * 0.3)
            if partial > progress:
                progress = partial
                inner_size = sizes[b]
                edge = side
    return has_potential, progress, inner_size, edge


# ── Board-level views ───────────────────────────────────────────────────────


def horizontal_runs(board: Board) -> list[Run]:
    """All same-color runs of width >= 2, top row first, left to right."""
    codes = ColorCodes()
    grid = board.encode(codes)
    table = run_table(grid)
    count = row_runs(grid, table)
    last = board.cols - 1
    return [
        Run(codes.color(color), row, start, end, start == 0, end == last)
        for row, start, end, color in table[:count].tolist()
    ]


def best_runs_per_color(runs: list[Run]) -> dict[Color, Run]:
    """Best run per color, first seen wins ties."""
    best: dict[Color, Run] = {}
    for run in runs:
        existing = best.get(run.color)
        if existing is None or run.rank() > existing.rank():
            best[run.color] = run
    return best


def find_blobs(board: Board) -> list[Blob]:
    """Every 4-connected same-color blob, in row-major discovery order."""
    codes = ColorCodes()
    grid = board.encode(codes)
    labels, count, sizes, bottom, left, right, enclosed = blob_stats(grid)
    blobs = []
    for label in range(count):
        ys, xs = np.nonzero(labels == label)
        positions = tuple(zip(xs.tolist(), ys.tolist()))
        blobs.append(Blob(
            codes.color(int(grid[ys[0], xs[0]])), positions,
            bool(bottom[label]), bool(left[label]), bool(right[label]), bool(enclosed[label]),
        ))
    return blobs


def find_volcano_potential(board: Board, min_partial_size: int = 4) -> VolcanoPotential:
    grid = board.encode(ColorCodes())
    has_potential, progress, inner_size, edge = volcano_potential(grid, min_partial_size)
    return VolcanoPotential(
        bool(has_potential), float(progress), int(inner_size),
        EDGES[edge] if edge >= 0 else None,
    )
