"""Game recordings for offline analysis.

A recording is an append-only log of decisions and host events, sealed with
a final-state summary when the game ends. Each decision stores the board as
a delta against the previously recorded board, so long games stay small;
`Recording.board_cells` rebuilds the full board for any decision.

Export format (JSON, camelCase keys):

    {"version", "startTime", "skillLevel", "decisions": [...],
     "events": [...], "finalState": {...} | null}
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from .state import Mode, SkillLevel

if TYPE_CHECKING:
    from ..game.board import Board
    from ..game.pieces import Color
    from .messages import DecideResponse

logger = logging.getLogger(__name__)

RECORDING_VERSION = "4.5"

Cell = tuple[int, int, Any]


def compress_board(board: Board) -> list[dict]:
    """Occupied cells as {x, y, c} dicts, row-major."""
    return [{"x": x, "y": y, "c": c} for x, y, c in board.occupied_cells()]


@dataclass
class Recording:
    start_time: int                   # epoch milliseconds
    skill_level: SkillLevel
    version: str = RECORDING_VERSION
    decisions: list[dict] = field(default_factory=list)
    events: list[dict] = field(default_factory=list)
    final_state: dict | None = None

    @property
    def sealed(self) -> bool:
        return self.final_state is not None

    def board_cells(self, index: int) -> list[dict]:
        """Full board at decision `index`, rebuilt from the deltas."""
        cells: dict[tuple[int, int], Any] = {}
        for decision in self.decisions[: index + 1]:
            for cell in decision["removed"]:
                cells.pop((cell["x"], cell["y"]), None)
            for cell in decision["added"]:
                cells[(cell["x"], cell["y"])] = cell["c"]
        return [{"x": x, "y": y, "c": c} for (x, y), c in sorted(cells.items(), key=lambda i: (i[0][1], i[0][0]))]

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "startTime": self.start_time,
            "skillLevel": self.skill_level.value,
            "decisions": [dict(d) for d in self.decisions],
            "events": [dict(e) for e in self.events],
            "finalState": dict(self.final_state) if self.final_state is not None else None,
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(self.to_json())
        logger.info("Recording saved to %s (%d decisions)", path, len(self.decisions))
        return path


class Recorder:
    """Owns the active recording; start and stop are idempotent."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._recording: Recording | None = None
        self._active = False
        self._previous_cells: set[Cell] = set()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def recording(self) -> Recording | None:
        """Current recording, live or sealed (None before the first start)."""
        return self._recording

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _offset_ms(self) -> int:
        return self._now_ms() - self._recording.start_time

    def start(self, skill_level: SkillLevel = SkillLevel.TEMPEST) -> Recording:
        if self._active:
            return self._recording
        self._recording = Recording(start_time=self._now_ms(), skill_level=skill_level)
        self._previous_cells = set()
        self._active = True
        logger.info("Recording started (%s)", skill_level.value)
        return self._recording

    def stop(self, board: Board | None = None, cause: str = "manual_stop",
             mode: Mode | None = None, stack_height: int | None = None) -> Recording | None:
        """Seal the recording and return it.

        Without a board the recording is returned as-is (unsealed) and
        recording stops. Stopping when already stopped returns the last
        recording unchanged.
        """
        if not self._active:
            return self._recording
        self._active = False
        recording = self._recording
        if board is not None:
            recording.final_state = {
                "board": compress_board(board),
                "cause": cause,
                "stackHeight": board.stack_height() if stack_height is None else stack_height,
                "mode": mode.value if mode is not None else None,
                "totalDecisions": len(recording.decisions),
                "duration": self._offset_ms(),
            }
        logger.info("Recording stopped: %s (%d decisions, %d events)",
                    cause, len(recording.decisions), len(recording.events))
        return recording

    def record_decision(self, board: Board, piece_color: Color, response: DecideResponse,
                        mode: Mode) -> None:
        if not self._active or response.best_placement is None:
            return
        cells = set(board.occupied_cells())
        added = sorted(cells - self._previous_cells, key=lambda c: (c[1], c[0]))
        removed = sorted(self._previous_cells - cells, key=lambda c: (c[1], c[0]))
        self._previous_cells = cells

        self._recording.decisions.append({
            "t": self._offset_ms(),
            "mode": mode.value,
            "stackHeight": response.stack_height,
            "piece": {"color": piece_color},
            "added": [{"x": x, "y": y, "c": c} for x, y, c in added],
            "removed": [{"x": x, "y": y, "c": c} for x, y, c in removed],
            "top": [p.to_record() for p in response.top_placements],
            "chosen": response.best_placement.to_record(),
        })

    def record_event(self, event_type: str, event_data: dict | None = None) -> None:
        if not self._active:
            return
        entry = {"t": self._offset_ms(), "type": event_type}
        entry.update(event_data or {})
        self._recording.events.append(entry)
