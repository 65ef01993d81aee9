"""Decision-issuing state: skill level, strategy mode and stuck detection.

Everything here is owned by the pipeline and touched only from the thread
that issues decisions. Searches never see it except as plain values copied
into the request (skill level and mode).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..game.pieces import Color, Piece

logger = logging.getLogger(__name__)


class SkillLevel(str, Enum):
    BREEZE = "breeze"
    TEMPEST = "tempest"
    MAELSTROM = "maelstrom"
    HURRICANE = "hurricane"

    @classmethod
    def parse(cls, name: str) -> SkillLevel:
        """Look up a level by name, case-insensitively."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(level.value for level in cls)
            raise ValueError(f"Unknown skill level {name!r} (expected one of: {valid})") from None

    @property
    def special_events(self) -> bool:
        """Breeze plays the simple profile with no tsunami/volcano logic."""
        return self is not SkillLevel.BREEZE


class Mode(str, Enum):
    COLOR_BUILDING = "colorBuilding"
    SURVIVAL = "survival"


@dataclass(frozen=True)
class ModeThresholds:
    upper: int
    lower: int


# Stack heights that enter / leave survival mode.
MODE_THRESHOLDS: dict[SkillLevel, ModeThresholds] = {
    SkillLevel.BREEZE: ModeThresholds(upper=12, lower=6),
    SkillLevel.TEMPEST: ModeThresholds(upper=12, lower=6),
    SkillLevel.MAELSTROM: ModeThresholds(upper=10, lower=5),
    SkillLevel.HURRICANE: ModeThresholds(upper=10, lower=5),
}


def next_mode(mode: Mode, stack_height: int, thresholds: ModeThresholds) -> Mode:
    """Apply the hysteresis rule once."""
    if mode == Mode.COLOR_BUILDING and stack_height >= thresholds.upper:
        return Mode.SURVIVAL
    if mode == Mode.SURVIVAL and stack_height <= thresholds.lower:
        return Mode.COLOR_BUILDING
    return mode


@dataclass(frozen=True)
class ModeSwitch:
    from_mode: Mode
    to_mode: Mode
    stack_height: int

    def to_event_data(self) -> dict:
        return {
            "from": self.from_mode.value,
            "to": self.to_mode.value,
            "stackHeight": self.stack_height,
        }


class StuckReason(str, Enum):
    SAME_PIECE = "samePiece"
    SAME_POSITION = "samePosition"


@dataclass
class StuckDetector:
    """Two independent livelock counters.

    The same-piece counter watches the piece color between decisions. The
    same-position counter watches the full identity key (position, rotation
    and shape) and is paused while the host is shaking the board. Either
    counter reaching `threshold` consecutive sightings calls for a forced
    drop, after which both counters and both tracked identities are reset.

    The first sighting counts as 1, so with the default threshold the third
    consecutive decision for one color is forced. The color is the only
    identity the same-piece counter sees: three freshly spawned pieces of
    the same color in a row also trigger it, and that third piece is
    dropped where it spawned without a search.
    """

    threshold: int = 3
    same_piece_count: int = 0
    same_position_count: int = 0
    last_piece_id: Color | None = None
    last_piece_key: str | None = None

    def check(self, piece: Piece, shaking: bool = False) -> StuckReason | None:
        """Count one decision attempt for `piece`; return a reason to force a drop."""
        if piece.color == self.last_piece_id:
            self.same_piece_count += 1
        else:
            self.same_piece_count = 1
        self.last_piece_id = piece.color
        if self.same_piece_count >= self.threshold:
            logger.warning("Stuck on same piece (%d cycles), forcing drop", self.same_piece_count)
            self.reset()
            return StuckReason.SAME_PIECE

        if not shaking:
            key = piece.identity_key()
            if key == self.last_piece_key:
                self.same_position_count += 1
            else:
                self.same_position_count = 1
                self.last_piece_key = key
            if self.same_position_count >= self.threshold:
                logger.warning("Stuck at same position (%d attempts), forcing drop",
                               self.same_position_count)
                self.reset()
                return StuckReason.SAME_POSITION

        return None

    def reset(self) -> None:
        self.same_piece_count = 0
        self.same_position_count = 0
        self.last_piece_id = None
        self.last_piece_key = None


@dataclass
class EngineState:
    """Mode and stuck counters threaded through every decision cycle."""

    skill_level: SkillLevel = SkillLevel.TEMPEST
    stuck: StuckDetector = field(default_factory=StuckDetector)
    mode: Mode = Mode.COLOR_BUILDING
    stack_height: int = 0

    @property
    def thresholds(self) -> ModeThresholds:
        return MODE_THRESHOLDS.get(self.skill_level, MODE_THRESHOLDS[SkillLevel.TEMPEST])

    def update_mode(self, stack_height: int) -> ModeSwitch | None:
        """Recompute the mode from the current stack height.

        Returns the switch when the mode changed, else None.
        """
        self.stack_height = stack_height
        new_mode = next_mode(self.mode, stack_height, self.thresholds)
        if new_mode == self.mode:
            return None
        switch = ModeSwitch(self.mode, new_mode, stack_height)
        if new_mode == Mode.SURVIVAL:
            logger.info("Switching to survival (height %d >= %d)", stack_height, self.thresholds.upper)
        else:
            logger.info("Switching to color building (height %d <= %d)",
                        stack_height, self.thresholds.lower)
        self.mode = new_mode
        return switch

    def reset(self) -> None:
        self.mode = Mode.COLOR_BUILDING
        self.stack_height = 0
        self.stuck.reset()
