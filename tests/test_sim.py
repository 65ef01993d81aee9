"""Tests for the demo host and the self-play loop."""

import json

from stormbot.__main__ import parse_args
from stormbot.ai.controller import Move, dispatch_all
from stormbot.ai.state import SkillLevel
from stormbot.bot import StormBot
from stormbot.game.board import Board
from stormbot.game.pieces import PALETTE, Piece
from stormbot.game.sim import PREVIEW_SIZE, StormSim

CELL = ((True,),)


class TestStormSim:
    def setup_method(self):
        self.sim = StormSim(seed=7)

    def test_initial_state(self):
        sim = self.sim
        assert sim.board.occupied_cells() == []
        assert len(sim.next_pieces) == PREVIEW_SIZE
        assert sim.current.x == (sim.cols - sim.current.width) // 2
        assert sim.current.y == 0
        assert not sim.game_over

    def test_same_seed_same_sequence(self):
        other = StormSim(seed=7)
        assert other.current == self.sim.current
        assert other.next_pieces == self.sim.next_pieces

    def test_colors_follow_skill(self):
        sim = StormSim(seed=1, skill_level=SkillLevel.BREEZE)
        assert sim.colors == PALETTE[:4]
        pieces = [sim.current] + sim.next_pieces
        assert all(p.color in PALETTE[:4] for p in pieces)

    def test_moves_stop_at_walls(self):
        sim = self.sim
        for _ in range(sim.cols):
            sim.move_left()
        assert sim.current.x == 0
        assert not sim.move_left()

    def test_hard_drop_locks_and_spawns(self):
        sim = self.sim
        upcoming = sim.next_pieces[0]
        assert sim.hard_drop() == 0
        assert sim.pieces_placed == 1
        assert sim.board.stack_height() > 0
        assert sim.current.color == upcoming.color
        assert sim.current.shape == upcoming.shape

    def test_hard_drop_clears_lines(self):
        sim = self.sim
        sim.board = Board.from_strings(["rrrrrrrrr."], cols=10, rows=20)
        sim.current = Piece(CELL, "red", 9, 0)
        assert sim.hard_drop() == 1
        assert sim.lines_cleared == 1
        assert sim.score == 1
        assert sim.board.occupied_cells() == []

    def test_blocked_spawn_ends_game(self):
        sim = self.sim
        sim.board = Board.from_strings(["....gg...."] * 20)
        sim.current = Piece(CELL, "red", 0, 0)
        sim.hard_drop()
        assert sim.game_over
        assert sim.cause == "blocked"
        assert sim.hard_drop() == 0

    def test_handlers_drive_moves(self):
        sim = self.sim
        start_x = sim.current.x
        count = dispatch_all([Move.LEFT, Move.LEFT, Move.RIGHT], sim.handlers())
        assert count == 3
        assert sim.current.x == start_x - 1

    def test_render(self):
        text = self.sim.render()
        assert "Score: 0" in text
        assert "@" in text


class TestSelfPlay:
    def test_short_game_with_recording(self, tmp_path):
        path = tmp_path / "game.json"
        bot = StormBot({
            "skill": "breeze", "seed": 3, "cols": 6, "rows": 12,
            "inline": True, "pieces": 4, "queue": 0, "record": str(path),
        })
        result = bot.run()
        assert 1 <= result.pieces <= 4
        assert result.cause in ("piece_limit", "blocked", "topped_out")

        data = json.loads(path.read_text())
        assert data["skillLevel"] == "breeze"
        assert data["finalState"]["cause"] == result.cause
        assert len(data["decisions"]) + result.forced_drops >= result.pieces

    def test_cli_defaults(self):
        args = parse_args([])
        assert args.skill == "tempest"
        assert args.queue == 3
        assert not args.inline
        assert parse_args(["--skill", "hurricane", "--inline"]).inline
