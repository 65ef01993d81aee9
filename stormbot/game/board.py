"""Immutable board snapshot.

The board is `cols` wide and `rows` tall. Row 0 is the top. Each cell holds
either None (empty) or an opaque color tag. Snapshots are never mutated:
placing a piece returns a new Board, so a snapshot handed to a worker can
not alias the host's live grid.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from .grid import EMPTY, ColorCodes
from .pieces import Color, Shape

Grid = tuple[tuple[Color | None, ...], ...]


class Board:
    """Rectangular grid of optional color tags."""

    __slots__ = ("cells", "cols", "rows", "_occupancy")

    def __init__(self, cells: Iterable[Sequence[Color | None]]):
        self.cells: Grid = tuple(tuple(row) for row in cells)
        self.rows = len(self.cells)
        self.cols = len(self.cells[0]) if self.cells else 0
        self._occupancy: np.ndarray | None = None

    @classmethod
    def empty(cls, cols: int = 10, rows: int = 20) -> Board:
        return cls([[None] * cols for _ in range(rows)])

    @classmethod
    def from_strings(cls, lines: Sequence[str], cols: int | None = None,
                     rows: int | None = None) -> Board:
        """Build a board from text rows; '.' is empty, any other char is a color.

        When `rows` exceeds the number of lines, empty rows are added on top
        so short fixtures describe only the bottom of the stack.
        """
        width = cols if cols is not None else max(len(line) for line in lines)
        height = rows if rows is not None else len(lines)
        grid = [[None] * width for _ in range(height - len(lines))]
        for line in lines:
            grid.append([None if ch == "." else ch for ch in line.ljust(width, ".")])
        return cls(grid)

    @classmethod
    def from_occupancy(cls, grid: np.ndarray, color: Color = "gray") -> Board:
        """Create a single-color board from a boolean grid (test helper)."""
        return cls([[color if v else None for v in row] for row in grid.tolist()])

    def __getitem__(self, pos: tuple[int, int]) -> Color | None:
        x, y = pos
        return self.cells[y][x]

    def __eq__(self, other):
        return isinstance(other, Board) and self.cells == other.cells

    def __hash__(self):
        return hash(self.cells)

    # ── Grid representations ────────────────────────────────────────────────

    def to_occupancy_grid(self) -> np.ndarray:
        """Return rows x cols boolean array. True = occupied."""
        if self._occupancy is None:
            grid = np.array(
                [[cell is not None for cell in row] for row in self.cells], dtype=bool
            ).reshape(self.rows, self.cols)
            grid.setflags(write=False)
            self._occupancy = grid
        return self._occupancy

    def encode(self, codes: ColorCodes) -> np.ndarray:
        """rows x cols int8 color grid for the search kernels; EMPTY marks free cells."""
        return np.array(
            [[EMPTY if cell is None else codes.code(cell) for cell in row] for row in self.cells],
            dtype=np.int8,
        ).reshape(self.rows, self.cols)

    def to_rows(self) -> list[list[Color | None]]:
        """Mutable list-of-lists copy (for serialization)."""
        return [list(row) for row in self.cells]

    def occupied_cells(self) -> list[tuple[int, int, Color]]:
        """(x, y, color) of every occupied cell, row-major."""
        return [
            (x, y, cell)
            for y, row in enumerate(self.cells)
            for x, cell in enumerate(row)
            if cell is not None
        ]

    # ── Placement ───────────────────────────────────────────────────────────

    def is_valid_position(self, shape: Shape, x: int, y: int) -> bool:
        """True if the shape fits at (x, y).

        Cells above the board (row < 0) are only checked against the
        horizontal bounds, never against occupancy.
        """
        for py, row in enumerate(shape):
            for px, filled in enumerate(row):
                if not filled:
                    continue
                bx = x + px
                by = y + py
                if bx < 0 or bx >= self.cols or by >= self.rows:
                    return False
                if by >= 0 and self.cells[by][bx] is not None:
                    return False
        return True

    def drop_row(self, shape: Shape, x: int, start_y: int) -> int:
        """Descend from `start_y` until the next step down would be illegal."""
        y = start_y
        while self.is_valid_position(shape, x, y + 1):
            y += 1
        return y

    def place(self, shape: Shape, x: int, y: int, color: Color) -> Board:
        """Return a new board with the shape written at (x, y).

        Cells that fall outside the board are dropped. Complete rows are
        left in place; clearing them belongs to the host.
        """
        grid = [list(row) for row in self.cells]
        for py, row in enumerate(shape):
            for px, filled in enumerate(row):
                by = y + py
                bx = x + px
                if filled and 0 <= by < self.rows and 0 <= bx < self.cols:
                    grid[by][bx] = color
        return Board(grid)

    # ── Board metrics ───────────────────────────────────────────────────────

    def column_heights(self) -> np.ndarray:
        """Height of each column (0 = empty, rows = full).

        Height = number of rows from the bottom to the topmost occupied cell.
        """
        grid = self.to_occupancy_grid()
        has_block = grid.any(axis=0)
        first = np.argmax(grid, axis=0)
        return np.where(has_block, self.rows - first, 0).astype(int)

    def stack_height(self) -> int:
        """Rows from the topmost occupied row to the floor."""
        occupied_rows = np.flatnonzero(self.to_occupancy_grid().any(axis=1))
        if occupied_rows.size == 0:
            return 0
        return int(self.rows - occupied_rows[0])

    def count_holes(self) -> int:
        """Count empty cells with at least one occupied cell above them."""
        grid = self.to_occupancy_grid()
        covered = np.logical_or.accumulate(grid, axis=0)
        return int((covered & ~grid).sum())

    def bumpiness(self) -> int:
        """Sum of absolute height differences between adjacent columns."""
        return int(np.abs(np.diff(self.column_heights())).sum())

    def count_complete_lines(self) -> int:
        """Count rows that are completely filled."""
        return int(self.to_occupancy_grid().all(axis=1).sum())

    def get_complete_lines(self) -> list[int]:
        """Return row indices of complete lines."""
        return [int(r) for r in np.flatnonzero(self.to_occupancy_grid().all(axis=1))]

    def clear_lines(self) -> tuple[Board, int]:
        """Return a new board with complete lines removed and count of lines cleared."""
        complete = set(self.get_complete_lines())
        if not complete:
            return self, 0
        remaining = [row for r, row in enumerate(self.cells) if r not in complete]
        empty_rows = [(None,) * self.cols for _ in range(len(complete))]
        return Board(empty_rows + remaining), len(complete)

    # ── Display ─────────────────────────────────────────────────────────────

    def to_ascii(self) -> str:
        """Render the board with the first letter of each color tag."""
        lines = ["+" + "-" * self.cols + "+"]
        for row in self.cells:
            lines.append("|" + "".join("." if c is None else str(c)[:1] for c in row) + "|")
        lines.append("+" + "-" * self.cols + "+")
        return "\n".join(lines)

    def __repr__(self):
        return self.to_ascii()
