"""Tests for skill levels, mode hysteresis and stuck detection."""

import logging

import pytest

from stormbot.ai.state import (
    MODE_THRESHOLDS,
    EngineState,
    Mode,
    SkillLevel,
    StuckDetector,
    StuckReason,
    next_mode,
)
from stormbot.game.pieces import Piece, PieceType


class TestSkillLevel:
    def test_parse_is_case_insensitive(self):
        assert SkillLevel.parse(" Maelstrom ") is SkillLevel.MAELSTROM

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="breeze, tempest, maelstrom, hurricane"):
            SkillLevel.parse("typhoon")

    def test_special_events(self):
        assert not SkillLevel.BREEZE.special_events
        assert SkillLevel.HURRICANE.special_events


class TestModeHysteresis:
    def test_thresholds_per_skill(self):
        assert MODE_THRESHOLDS[SkillLevel.TEMPEST].upper == 12
        assert MODE_THRESHOLDS[SkillLevel.TEMPEST].lower == 6
        assert MODE_THRESHOLDS[SkillLevel.HURRICANE].upper == 10
        assert MODE_THRESHOLDS[SkillLevel.HURRICANE].lower == 5

    def test_enter_and_leave_survival(self):
        thresholds = MODE_THRESHOLDS[SkillLevel.TEMPEST]
        assert next_mode(Mode.COLOR_BUILDING, 11, thresholds) == Mode.COLOR_BUILDING
        assert next_mode(Mode.COLOR_BUILDING, 12, thresholds) == Mode.SURVIVAL
        assert next_mode(Mode.SURVIVAL, 7, thresholds) == Mode.SURVIVAL
        assert next_mode(Mode.SURVIVAL, 6, thresholds) == Mode.COLOR_BUILDING

    def test_oscillation_at_threshold_does_not_flip_back(self):
        state = EngineState(skill_level=SkillLevel.TEMPEST)
        modes = []
        for height in (12, 11, 12, 11, 12):
            state.update_mode(height)
            modes.append(state.mode)
        assert modes == [Mode.SURVIVAL] * 5

    def test_update_mode_reports_switch(self, caplog):
        state = EngineState(skill_level=SkillLevel.MAELSTROM)
        assert state.update_mode(4) is None
        with caplog.at_level(logging.INFO, logger="stormbot.ai.state"):
            switch = state.update_mode(10)
        assert switch.to_event_data() == {
            "from": "colorBuilding", "to": "survival", "stackHeight": 10,
        }
        assert "survival" in caplog.text
        back = state.update_mode(5)
        assert (back.from_mode, back.to_mode) == (Mode.SURVIVAL, Mode.COLOR_BUILDING)

    def test_reset(self):
        state = EngineState()
        state.update_mode(15)
        state.stuck.check(Piece.from_type(PieceType.T, "red"))
        state.reset()
        assert state.mode == Mode.COLOR_BUILDING
        assert state.stack_height == 0
        assert state.stuck.last_piece_id is None


class TestStuckDetector:
    def setup_method(self):
        self.detector = StuckDetector()
        self.piece = Piece.from_type(PieceType.T, "red", 3, 0)

    def test_forces_on_third_sighting(self):
        assert self.detector.check(self.piece) is None
        assert self.detector.check(self.piece) is None
        assert self.detector.check(self.piece) is StuckReason.SAME_PIECE

    def test_new_pieces_of_one_color_count_from_first_sighting(self):
        # Three fresh pieces, each at its own spawn spot, share a color
        pieces = [Piece.from_type(PieceType.T, "red", x, 0) for x in (0, 3, 6)]
        reasons = [self.detector.check(p) for p in pieces]
        assert reasons == [None, None, StuckReason.SAME_PIECE]

    def test_counters_reset_after_force(self):
        for _ in range(3):
            self.detector.check(self.piece)
        assert self.detector.same_piece_count == 0
        assert self.detector.same_position_count == 0
        assert self.detector.last_piece_id is None
        assert self.detector.last_piece_key is None
        assert self.detector.check(self.piece) is None

    def test_color_change_restarts_count(self):
        blue = Piece.from_type(PieceType.T, "blue", 5, 0)
        self.detector.check(self.piece)
        self.detector.check(self.piece)
        assert self.detector.check(blue) is None
        assert self.detector.same_piece_count == 1

    def test_same_position_with_changing_colors(self):
        detector = StuckDetector(threshold=3)
        colors = ["red", "blue", "red"]
        reasons = [detector.check(Piece.from_type(PieceType.O, c, 4, 2)) for c in colors]
        assert reasons == [None, None, StuckReason.SAME_POSITION]

    def test_shaking_pauses_position_counter(self):
        colors = ["red", "blue", "red", "blue"]
        for color in colors:
            piece = Piece.from_type(PieceType.O, color, 4, 2)
            assert self.detector.check(piece, shaking=True) is None
        assert self.detector.same_position_count == 0

    def test_moving_piece_is_not_stuck_on_position(self):
        detector = StuckDetector()
        reasons = [
            detector.check(Piece.from_type(PieceType.O, color, x, 0))
            for x, color in [(0, "red"), (1, "blue"), (2, "red")]
        ]
        assert reasons == [None, None, None]
        assert detector.same_position_count == 1

    def test_forcing_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="stormbot.ai.state"):
            for _ in range(3):
                self.detector.check(self.piece)
        assert "forcing drop" in caplog.text
