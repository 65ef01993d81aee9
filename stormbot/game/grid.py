"""Numba-compiled grid primitives for the search hot path.

Boards are encoded as (rows, cols) int8 arrays: EMPTY for a free cell,
otherwise a small color code handed out by a ColorCodes table. Shapes are
uint8 masks. `fits`, `drop_row` and `place` follow the same rules as the
Board methods of the same names.
"""

from __future__ import annotations

from typing import Hashable

import numpy as np
from numba import njit

EMPTY = -1

# int8 codes 0..126; -1 is EMPTY.
MAX_COLORS = 127


class ColorCodes:
    """Assigns int8 codes to color tags in first-seen order."""

    def __init__(self, colors=()):
        self._codes: dict[Hashable, int] = {}
        self.colors: list[Hashable] = []
        for color in colors:
            self.code(color)

    def code(self, color: Hashable) -> int:
        code = self._codes.get(color)
        if code is None:
            if len(self.colors) >= MAX_COLORS:
                raise ValueError(f"More than {MAX_COLORS} distinct colors on one board")
            code = len(self.colors)
            self._codes[color] = code
            self.colors.append(color)
        return code

    def color(self, code: int) -> Hashable | None:
        return None if code < 0 else self.colors[code]

    def __len__(self):
        return len(self.colors)


def shape_mask(shape) -> np.ndarray:
    """uint8 mask of a shape; an empty shape gives a (0, 0) array."""
    if not shape:
        return np.zeros((0, 0), dtype=np.uint8)
    return np.array(shape, dtype=np.uint8)


@njit(cache=True)
def fits(grid, mask, h, w, x, y):
    """True if the mask fits at (x, y). Cells above row 0 only check the walls."""
    rows, cols = grid.shape
    for py in range(h):
        for px in range(w):
            if not mask[py, px]:
                continue
            bx = x + px
            by = y + py
            if bx < 0 or bx >= cols or by >= rows:
                return False
            if by >= 0 and grid[by, bx] != EMPTY:
                return False
    return True


@njit(cache=True)
def drop_row(grid, mask, h, w, x, start_y):
    y = start_y
    while fits(grid, mask, h, w, x, y + 1):
        y += 1
    return y


@njit(cache=True)
def place(grid, mask, h, w, x, y, color):
    """Copy of `grid` with the mask written at (x, y); off-board cells are dropped."""
    rows, cols = grid.shape
    result = grid.copy()
    for py in range(h):
        for px in range(w):
            if not mask[py, px]:
                continue
            by = y + py
            bx = x + px
            if 0 <= by < rows and 0 <= bx < cols:
                result[by, bx] = color
    return result
