"""Self-play orchestrator.

Ties together the demo host, the decision pipeline and move dispatch into
a single piece-by-piece loop, optionally recording the game.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from .ai.controller import dispatch_all
from .ai.pipeline import DecisionPipeline, PipelineConfig
from .ai.state import SkillLevel
from .game.sim import StormSim

logger = logging.getLogger(__name__)


@dataclass
class GameResult:
    pieces: int
    lines: int
    score: int
    cause: str
    forced_drops: int
    elapsed: float


class StormBot:
    """Plays one game on the demo host through the pipeline."""

    def __init__(self, config: dict):
        self.config = config
        skill = SkillLevel.parse(config.get("skill", "tempest"))
        self.sim = StormSim(
            seed=config.get("seed"),
            cols=config.get("cols", 10),
            rows=config.get("rows", 20),
            skill_level=skill,
        )
        self.pipeline = DecisionPipeline(PipelineConfig(
            use_worker=not config.get("inline", False),
            skill_level=skill,
        ))
        self.max_pieces = config.get("pieces", 200)
        self.queue_size = config.get("queue", 3)
        self.record_path = config.get("record")
        self._forced_drops = 0

    def run(self) -> GameResult:
        """Start the pipeline and play until game over or the piece limit."""
        logger.info("=== StormBot starting (%s) ===", self.pipeline.config.skill_level.value)
        t_start = time.time()
        with self.pipeline:
            if self.record_path:
                self.pipeline.start_recording()
            try:
                self._play()
            except KeyboardInterrupt:
                logger.info("Bot interrupted by user")
                self.sim.cause = self.sim.cause or "interrupted"
            finally:
                self._finish()

        result = GameResult(
            pieces=self.sim.pieces_placed,
            lines=self.sim.lines_cleared,
            score=self.sim.score,
            cause=self.sim.cause or "piece_limit",
            forced_drops=self._forced_drops,
            elapsed=time.time() - t_start,
        )
        logger.info("Game over (%s): %d pieces, %d lines, score %d in %.1fs",
                    result.cause, result.pieces, result.lines, result.score, result.elapsed)
        return result

    def _play(self) -> None:
        sim = self.sim
        handlers = sim.handlers()
        while not sim.game_over and sim.pieces_placed < self.max_pieces:
            placed = sim.pieces_placed
            future = self.pipeline.update(sim.board, sim.current,
                                          sim.next_pieces[: self.queue_size])
            if future is None:
                continue
            plan = future.result()
            if plan.forced is not None:
                self._forced_drops += 1
            dispatch_all(plan.moves, handlers)
            if sim.pieces_placed == placed and not sim.game_over:
                # Plan ran out without locking the piece
                sim.hard_drop()
            if sim.pieces_placed % 25 == 0:
                logger.debug("\n%s", sim.render())

    def _finish(self) -> None:
        if not self.record_path:
            return
        recording = self.pipeline.stop_recording(self.sim.board, self.sim.cause or "piece_limit")
        if recording is not None:
            recording.save(Path(self.record_path))
