"""Request and response messages exchanged with the decision pipeline.

Every request is one of a closed set of message classes; the pipeline
dispatches on the class and rejects anything else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from .state import Mode, SkillLevel

if TYPE_CHECKING:
    from ..game.board import Board
    from ..game.pieces import Color, Piece
    from .planner import Placement


@dataclass(frozen=True)
class Decide:
    """Ask for the best placement of `piece` on `board`."""

    board: Board
    piece: Piece
    queue: tuple[Piece, ...] = ()
    skill_level: SkillLevel = SkillLevel.TEMPEST
    ufo_active: bool = False
    capture_decision_meta: bool = False
    mode: Mode = Mode.COLOR_BUILDING

    @property
    def cols(self) -> int:
        return self.board.cols

    @property
    def rows(self) -> int:
        return self.board.rows


@dataclass(frozen=True)
class ShadowEvaluate:
    """Score a position without emitting a move (passive analysis)."""

    request: Decide


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class StartRecording:
    skill_level: SkillLevel = SkillLevel.TEMPEST


@dataclass(frozen=True)
class StopRecording:
    board: Board | None = None
    cause: str = "manual_stop"


@dataclass(frozen=True)
class RecordEvent:
    event_type: str
    event_data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GetRecording:
    pass


Message = Union[Decide, ShadowEvaluate, Reset, StartRecording, StopRecording, RecordEvent,
                GetRecording]


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, 2)


@dataclass(frozen=True)
class PlacementSummary:
    x: int
    y: int
    rotation: int
    immediate_score: float
    combined_score: float | None
    classification: str
    breakdown: dict | None = None

    @classmethod
    def from_placement(cls, placement: Placement, with_breakdown: bool = False) -> PlacementSummary:
        breakdown = placement.breakdown
        return cls(
            x=placement.x,
            y=placement.y,
            rotation=placement.rotation_index,
            immediate_score=_round(placement.score),
            combined_score=_round(placement.combined_score),
            classification=breakdown.classification.value if breakdown else "unknown",
            breakdown=breakdown.to_dict() if with_breakdown and breakdown else None,
        )

    def to_dict(self) -> dict:
        data = {
            "x": self.x,
            "y": self.y,
            "rotation": self.rotation,
            "immediateScore": self.immediate_score,
            "combinedScore": self.combined_score,
            "classification": self.classification,
        }
        if self.breakdown is not None:
            data["breakdown"] = self.breakdown
        return data


@dataclass(frozen=True)
class DecisionMeta:
    """Why the engine chose what it chose."""

    chosen: PlacementSummary
    alternatives: tuple[PlacementSummary, ...]
    score_differential: float | None
    stack_height: int
    holes: int
    bumpiness: int
    lookahead_depth: int
    queue_colors: tuple[Color | None, ...]
    candidates_evaluated: int
    skill_level: SkillLevel

    def to_dict(self) -> dict:
        return {
            "chosen": self.chosen.to_dict(),
            "alternatives": [alt.to_dict() for alt in self.alternatives],
            "scoreDifferential": self.score_differential,
            "boardMetrics": {
                "stackHeight": self.stack_height,
                "holes": self.holes,
                "bumpiness": self.bumpiness,
            },
            "lookahead": {
                "depth": self.lookahead_depth,
                "queueColors": list(self.queue_colors),
            },
            "candidatesEvaluated": self.candidates_evaluated,
            "skillLevel": self.skill_level.value,
        }


@dataclass(frozen=True)
class DecideResponse:
    best_placement: Placement | None
    stack_height: int
    decision_meta: DecisionMeta | None = None
    top_placements: tuple[Placement, ...] = ()
