"""Piece shapes, colors and rotation sets.

Shapes are boolean occupancy matrices (row 0 is the top of the piece).
Unlike a fixed rotation table, the rotation set of any shape is derived by
repeated clockwise rotation with structural duplicates collapsed, so the
same code handles tetrominoes, single cells and whatever else the host
spawns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Hashable, Sequence

Shape = tuple[tuple[bool, ...], ...]
Color = Hashable


class PieceType(IntEnum):
    I = 0
    J = 1
    L = 2
    O = 3
    S = 4
    T = 5
    Z = 6


# Spawn orientation of each tetromino.
PIECE_SHAPES: dict[PieceType, list[str]] = {
    PieceType.I: ["####"],
    PieceType.J: ["#..", "###"],
    PieceType.L: ["..#", "###"],
    PieceType.O: ["##", "##"],
    PieceType.S: [".##", "##."],
    PieceType.T: [".#.", "###"],
    PieceType.Z: ["##.", ".##"],
}

# Color tags the demo host draws from. Higher skill levels use more colors.
PALETTE = ("red", "blue", "green", "yellow", "purple", "orange")


def parse_shape(rows: Sequence[str]) -> Shape:
    """Build a shape from strings where '#' marks an occupied cell."""
    return normalize_shape(tuple(tuple(ch == "#" for ch in row) for row in rows))


def normalize_shape(shape: Sequence[Sequence[bool]]) -> Shape:
    """Trim empty border rows and columns. An all-empty shape becomes ()."""
    grid = tuple(tuple(bool(v) for v in row) for row in shape)
    rows = [r for r, row in enumerate(grid) if any(row)]
    if not rows:
        return ()
    width = max(len(row) for row in grid)
    cols = [c for c in range(width) if any(c < len(row) and row[c] for row in grid)]
    top, bottom = rows[0], rows[-1]
    left, right = cols[0], cols[-1]
    return tuple(
        tuple(c < len(grid[r]) and grid[r][c] for c in range(left, right + 1))
        for r in range(top, bottom + 1)
    )


def rotate_cw(shape: Shape) -> Shape:
    """Rotate a shape matrix 90 degrees clockwise."""
    if not shape:
        return shape
    return tuple(tuple(row[c] for row in reversed(shape)) for c in range(len(shape[0])))


def get_all_rotations(shape: Shape) -> tuple[Shape, ...]:
    """Distinct shapes reachable by repeated clockwise rotation.

    Order is spawn orientation first, then each new shape in the order the
    rotations produce it. Symmetric shapes collapse (O -> 1, I/S/Z -> 2).
    """
    rotations = [shape]
    current = shape
    for _ in range(3):
        current = rotate_cw(current)
        if current not in rotations:
            rotations.append(current)
    return tuple(rotations)


def get_width(shape: Shape) -> int:
    return len(shape[0]) if shape else 0


def get_height(shape: Shape) -> int:
    return len(shape)


def get_cells(shape: Shape) -> list[tuple[int, int]]:
    """(row, col) offsets of the occupied cells, in row-major order."""
    return [(r, c) for r, row in enumerate(shape) for c, filled in enumerate(row) if filled]


def shape_signature(shape: Shape) -> str:
    """Compact text form of a shape, e.g. '010|111' for a T."""
    return "|".join("".join("1" if v else "0" for v in row) for row in shape)


@dataclass(frozen=True)
class Piece:
    """A piece snapshot: shape, color tag and top-left anchor.

    The shape is trimmed on construction and the rotation set is derived
    from it, so two pieces with the same occupancy compare equal.
    """

    shape: Shape
    color: Color
    x: int = 0
    y: int = 0
    rotations: tuple[Shape, ...] = field(default=(), compare=False)

    def __post_init__(self):
        shape = normalize_shape(self.shape)
        object.__setattr__(self, "shape", shape)
        if self.rotations:
            rotations = tuple(normalize_shape(r) for r in self.rotations)
        else:
            rotations = get_all_rotations(shape)
        object.__setattr__(self, "rotations", rotations)

    @classmethod
    def from_type(cls, piece_type: PieceType, color: Color, x: int = 0, y: int = 0) -> Piece:
        return cls(parse_shape(PIECE_SHAPES[piece_type]), color, x, y)

    @property
    def width(self) -> int:
        return get_width(self.shape)

    @property
    def height(self) -> int:
        return get_height(self.shape)

    def identity_key(self) -> str:
        """Position + rotation + shape key used to notice a piece that never moves."""
        return f"{self.x},{self.y},{self.rotation_index},{shape_signature(self.shape)}"

    @property
    def rotation_index(self) -> int:
        return self.rotations.index(self.shape) if self.shape in self.rotations else 0

    def moved(self, x: int, y: int) -> Piece:
        return Piece(self.shape, self.color, x, y, self.rotations)

    def rotated(self) -> Piece:
        """Next clockwise rotation, anchored at the same top-left cell."""
        shape = self.rotations[(self.rotation_index + 1) % len(self.rotations)]
        return Piece(shape, self.color, self.x, self.y, self.rotations)

    def rebased(self) -> Piece:
        """Same piece with its rotation set starting from the current shape."""
        return Piece(self.shape, self.color, self.x, self.y)
