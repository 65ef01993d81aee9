"""Tests for the encoded grid primitives used by the search kernels."""

import numpy as np
import pytest

from stormbot.game.board import Board
from stormbot.game.grid import EMPTY, MAX_COLORS, ColorCodes, drop_row, fits, place, shape_mask
from stormbot.game.pieces import PIECE_SHAPES, PieceType, parse_shape

T_SHAPE = parse_shape(PIECE_SHAPES[PieceType.T])


class TestColorCodes:
    def test_first_seen_order(self):
        codes = ColorCodes(["red", "blue", "red"])
        assert len(codes) == 2
        assert codes.code("blue") == 1
        assert codes.color(0) == "red"
        assert codes.color(EMPTY) is None

    def test_too_many_colors(self):
        codes = ColorCodes(range(MAX_COLORS))
        with pytest.raises(ValueError, match="distinct colors"):
            codes.code("one more")


class TestEncode:
    def test_encode_board(self):
        codes = ColorCodes()
        grid = Board.from_strings(["r.", "br"]).encode(codes)
        assert grid.dtype == np.int8
        assert grid.tolist() == [[0, EMPTY], [1, 0]]
        assert codes.colors == ["r", "b"]

    def test_shape_mask(self):
        assert shape_mask(T_SHAPE).tolist() == [[0, 1, 0], [1, 1, 1]]
        assert shape_mask(()).shape == (0, 0)


class TestPrimitives:
    """The kernels must agree with the Board methods of the same name."""

    def setup_method(self):
        self.board = Board.from_strings(["g...", "gg.g"], rows=5)
        self.grid = self.board.encode(ColorCodes())
        self.mask = shape_mask(T_SHAPE)

    def test_fits_matches_board(self):
        for x in range(-1, 4):
            for y in range(-2, 5):
                expected = self.board.is_valid_position(T_SHAPE, x, y)
                assert fits(self.grid, self.mask, 2, 3, x, y) == expected

    def test_drop_row_matches_board(self):
        for x in range(2):
            assert drop_row(self.grid, self.mask, 2, 3, x, 0) == self.board.drop_row(T_SHAPE, x, 0)

    def test_place_copies(self):
        y = drop_row(self.grid, self.mask, 2, 3, 1, 0)
        after = place(self.grid, self.mask, 2, 3, 1, y, 5)
        expected = self.board.place(T_SHAPE, 1, y, "p").encode(ColorCodes(["g", 1, 2, 3, 4, "p"]))
        assert after.tolist() == expected.tolist()
        assert (self.grid == 5).sum() == 0

    def test_place_drops_cells_above_board(self):
        after = place(self.grid, self.mask, 2, 3, 1, -1, 5)
        assert (after == 5).sum() == 3
