"""Tests for piece shapes and rotation sets."""

import pytest

from stormbot.game.pieces import (
    PIECE_SHAPES,
    Piece,
    PieceType,
    get_all_rotations,
    get_cells,
    get_height,
    get_width,
    normalize_shape,
    parse_shape,
    rotate_cw,
    shape_signature,
)


class TestPieceType:
    def test_all_seven_pieces(self):
        assert len(PieceType) == 7
        assert PieceType.I == 0
        assert PieceType.Z == 6

    def test_piece_shapes_all_defined(self):
        for piece in PieceType:
            assert piece in PIECE_SHAPES

    def test_each_shape_has_4_cells(self):
        for piece in PieceType:
            for shape in Piece.from_type(piece, "red").rotations:
                assert len(get_cells(shape)) == 4, f"{piece.name} has a bad rotation"


class TestRotations:
    @pytest.mark.parametrize("piece_type, count", [
        (PieceType.I, 2),
        (PieceType.O, 1),
        (PieceType.S, 2),
        (PieceType.Z, 2),
        (PieceType.T, 4),
        (PieceType.J, 4),
        (PieceType.L, 4),
    ])
    def test_symmetric_shapes_collapse(self, piece_type, count):
        assert len(Piece.from_type(piece_type, "red").rotations) == count

    def test_rotation_set_is_closed_and_unique(self):
        for piece_type in PieceType:
            rotations = get_all_rotations(parse_shape(PIECE_SHAPES[piece_type]))
            assert len(set(rotations)) == len(rotations)
            for shape in rotations:
                assert rotate_cw(shape) in rotations

    def test_spawn_orientation_first(self):
        shape = parse_shape(PIECE_SHAPES[PieceType.T])
        assert get_all_rotations(shape)[0] == shape

    def test_rotate_cw_i_piece(self):
        horizontal = parse_shape(["####"])
        vertical = rotate_cw(horizontal)
        assert get_width(vertical) == 1
        assert get_height(vertical) == 4

    def test_four_rotations_return_to_start(self):
        shape = parse_shape(PIECE_SHAPES[PieceType.L])
        rotated = shape
        for _ in range(4):
            rotated = rotate_cw(rotated)
        assert rotated == shape

    def test_single_cell(self):
        piece = Piece(((True,),), "red")
        assert piece.rotations == (((True,),),)


class TestShapeHelpers:
    def test_normalize_trims_empty_border(self):
        padded = [
            [False, False, False],
            [False, True, True],
            [False, False, False],
        ]
        assert normalize_shape(padded) == ((True, True),)

    def test_normalize_empty_shape(self):
        assert normalize_shape([[False, False]]) == ()

    def test_t_piece_dimensions(self):
        shape = parse_shape(PIECE_SHAPES[PieceType.T])
        assert get_width(shape) == 3
        assert get_height(shape) == 2

    def test_cells_row_major(self):
        shape = parse_shape([".#.", "###"])
        assert get_cells(shape) == [(0, 1), (1, 0), (1, 1), (1, 2)]

    def test_signature(self):
        assert shape_signature(parse_shape([".#.", "###"])) == "010|111"


class TestPiece:
    def test_equal_pieces_compare_equal(self):
        a = Piece(((False, True), (False, True)), "red", 3, 0)
        b = Piece(((True,), (True,)), "red", 3, 0)
        assert a == b

    def test_rotated_cycles_through_rotation_set(self):
        piece = Piece.from_type(PieceType.S, "green", 4, 0)
        once = piece.rotated()
        assert once.shape == piece.rotations[1]
        assert once.rotated().shape == piece.shape
        assert (once.x, once.y) == (4, 0)

    def test_rebased_starts_from_current_shape(self):
        piece = Piece.from_type(PieceType.J, "blue").rotated()
        rebased = piece.rebased()
        assert rebased.rotations[0] == piece.shape
        assert rebased.rotation_index == 0

    def test_identity_key_changes_with_position_and_rotation(self):
        piece = Piece.from_type(PieceType.T, "red", 3, 0)
        assert piece.identity_key() == "3,0,0,010|111"
        assert piece.moved(4, 0).identity_key() != piece.identity_key()
        assert piece.rotated().identity_key() != piece.identity_key()
