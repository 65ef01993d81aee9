"""Tests for the placement generator and the lookahead search."""

import pytest

from stormbot.ai.heuristic import EvalContext, HeuristicEvaluator
from stormbot.ai.lookahead import LookaheadSearch, SearchConfig
from stormbot.ai.planner import (
    GAME_OVER_SCORE,
    Placement,
    generate_placements,
    rank_by_score,
)
from stormbot.game.board import Board
from stormbot.game.pieces import Piece, PieceType

CELL = ((True,),)


def cell_piece(color="r"):
    return Piece(CELL, color)


class TestGeneratePlacements:
    def setup_method(self):
        self.evaluator = HeuristicEvaluator()
        self.context = EvalContext()

    def test_t_piece_on_empty_board(self):
        board = Board.empty()
        piece = Piece.from_type(PieceType.T, "red")
        placements = generate_placements(board, piece, self.evaluator, self.context)
        # Widths 3, 2, 3, 2 give 8 + 9 + 8 + 9 columns
        assert len(placements) == 34
        assert not any(p.game_over for p in placements)

    def test_rotation_major_then_left_to_right(self):
        board = Board.empty()
        piece = Piece.from_type(PieceType.T, "red")
        placements = generate_placements(board, piece, self.evaluator, self.context)
        order = [(p.rotation_index, p.x) for p in placements]
        assert order == sorted(order)
        assert order[0] == (0, 0)

    def test_pieces_land_on_floor(self):
        board = Board.empty()
        piece = Piece.from_type(PieceType.L, "blue")
        for p in generate_placements(board, piece, self.evaluator, self.context):
            assert p.y == board.rows - len(p.shape)

    def test_breakdown_only_when_asked(self):
        board = Board.empty(4, 4)
        plain = generate_placements(board, cell_piece(), self.evaluator, self.context)
        detailed = generate_placements(board, cell_piece(), self.evaluator, self.context,
                                       capture_breakdown=True)
        assert all(p.breakdown is None for p in plain)
        assert all(p.breakdown is not None for p in detailed)
        assert [p.score for p in plain] == [p.score for p in detailed]

    def test_game_ending_placement_is_kept(self):
        board = Board.from_strings(["g.", "g."])
        placements = generate_placements(board, cell_piece(), self.evaluator, self.context)
        assert [(p.x, p.y) for p in placements] == [(0, -1), (1, 1)]
        assert placements[0].game_over
        assert placements[0].score == GAME_OVER_SCORE
        assert not placements[1].game_over

    def test_strict_skips_blocked_columns(self):
        board = Board.from_strings(["g.", "g."])
        placements = generate_placements(board, cell_piece(), self.evaluator, self.context,
                                         strict=True)
        assert [(p.x, p.y) for p in placements] == [(1, 1)]

    def test_strict_can_be_empty(self):
        board = Board.from_strings(["gg", ".."])
        assert generate_placements(board, cell_piece(), self.evaluator, self.context,
                                   strict=True) == []

    def test_custom_game_over_score(self):
        board = Board.from_strings(["g.", "g."])
        placements = generate_placements(board, cell_piece(), self.evaluator, self.context,
                                         game_over_score=-1.0)
        assert placements[0].score == -1.0


class TestRanking:
    def test_rank_is_stable(self):
        placements = [
            Placement(0, 0, 0, CELL, 1.0),
            Placement(1, 0, 0, CELL, 3.0),
            Placement(2, 0, 0, CELL, 1.0),
        ]
        ranked = rank_by_score(placements)
        assert [p.x for p in ranked] == [1, 0, 2]
        assert [p.x for p in rank_by_score(placements, 2)] == [1, 0]

    def test_final_score_prefers_combined(self):
        p = Placement(0, 0, 0, CELL, 1.0)
        assert p.final_score == 1.0
        p.combined_score = 4.5
        assert p.final_score == 4.5

    def test_record_rounds_score(self):
        p = Placement(3, 17, 1, CELL, 12.3456)
        assert p.to_record() == {"x": 3, "y": 17, "r": 1, "s": 12.35}


class TestLookaheadSearch:
    def setup_method(self):
        self.evaluator = HeuristicEvaluator()
        self.search = LookaheadSearch(self.evaluator)
        self.context = EvalContext()

    def test_corner_preferred_on_empty_board(self):
        board = Board.empty()
        result = self.search.search(board, cell_piece(), [], self.context)
        assert len(result.placements) == 10
        # Both corners score the same; the first one generated wins
        assert (result.best.x, result.best.y) == (0, 19)
        assert result.depth == 1
        assert result.best.combined_score is None

    def test_completes_full_width_row(self):
        board = Board.from_strings(["rrrrrrrrr."], cols=10, rows=20)
        result = self.search.search(board, cell_piece("r"), [], self.context)
        assert (result.best.x, result.best.y) == (9, 19)

    def test_combined_score_discounts_next_piece(self):
        board = Board.empty(5, 6)
        nxt = cell_piece("b")
        result = self.search.search(board, cell_piece("r"), [nxt], self.context)
        assert result.depth == 2
        for p in result.placements:
            after = board.place(p.shape, p.x, p.y, "r")
            follow_ups = generate_placements(after, nxt, self.evaluator, self.context, strict=True)
            best_next = max(q.score for q in follow_ups)
            assert p.combined_score == pytest.approx(p.score + 0.5 * best_next)

    def test_best_has_highest_combined_score(self):
        board = Board.from_strings(["r...b", "rr.bb"], cols=5, rows=6)
        queue = [cell_piece("b"), cell_piece("r")]
        result = self.search.search(board, cell_piece("r"), queue, self.context)
        assert result.depth == 3
        assert result.best.combined_score == max(p.combined_score for p in result.placements)

    def test_unplaceable_queued_piece(self):
        board = Board.empty(3, 3)
        i_piece = Piece.from_type(PieceType.I, "g")
        result = self.search.search(board, cell_piece(), [i_piece], self.context)
        for p in result.placements:
            assert p.combined_score == pytest.approx(p.score - 100.0)

    def test_deeper_unplaceable_piece_costs_a_flat_penalty(self):
        board = Board.empty(3, 3)
        nxt = cell_piece("b")
        i_piece = Piece.from_type(PieceType.I, "g")
        result = self.search.search(board, cell_piece(), [nxt, i_piece], self.context)
        assert result.depth == 3
        for p in result.placements:
            after = board.place(p.shape, p.x, p.y, "r")
            follow_ups = generate_placements(after, nxt, self.evaluator, self.context, strict=True)
            best_next = max(q.score for q in follow_ups)
            assert p.combined_score == pytest.approx(p.score + 0.5 * best_next - 100.0)

    def test_level_penalties_reach_root_undiscounted(self):
        penalties = SearchConfig().level_penalties()
        assert penalties.tolist() == pytest.approx([100.0, 200.0, 100.0 / (0.5 * 0.35)])

    def test_empty_queue_slot_ends_lookahead(self):
        board = Board.empty(4, 6)
        queue = [cell_piece("r"), None, cell_piece("g")]
        result = self.search.search(board, cell_piece("b"), queue, self.context)
        assert result.depth == 2

    def test_queue_truncated_to_search_depth(self):
        board = Board.empty(4, 6)
        queue = [cell_piece(c) for c in "rgbr"]
        result = self.search.search(board, cell_piece("b"), queue, self.context)
        assert result.depth == 4

    def test_game_over_placement_skips_lookahead(self):
        board = Board.from_strings(["g.", "g."])
        result = self.search.search(board, cell_piece(), [cell_piece()], self.context)
        doomed = result.placements[0]
        assert doomed.game_over
        assert doomed.combined_score == GAME_OVER_SCORE
        assert result.best is result.placements[1]

    def test_no_placements(self):
        board = Board.from_strings(["."])
        piece = Piece.from_type(PieceType.O, "r")
        result = self.search.search(board, piece, [], self.context)
        assert result.best is None
        assert result.placements == []
        assert result.depth == 0

    def test_custom_config(self):
        config = SearchConfig(beam_widths=(1,), discounts=(1.0,))
        search = LookaheadSearch(self.evaluator, config)
        board = Board.empty(4, 4)
        queue = [cell_piece(), cell_piece()]
        result = search.search(board, cell_piece(), queue, self.context)
        assert config.max_queue == 1
        assert result.depth == 2
