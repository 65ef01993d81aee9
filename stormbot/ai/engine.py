"""Pure decision computation: request in, response out.

The engine holds no per-game state. The same instance serves the worker
thread and the inline fallback, so both paths produce identical decisions.
"""

from __future__ import annotations

import logging

from ..game.board import Board
from ..game.pieces import Piece
from .heuristic import EvalContext, HeuristicEvaluator, Weights, queue_colors
from .lookahead import LookaheadSearch, SearchConfig
from .messages import Decide, DecideResponse, DecisionMeta, PlacementSummary
from .planner import rank_by_score

logger = logging.getLogger(__name__)

# Placements kept per decision for recordings.
RECORDED_PLACEMENTS = 5
# Runner-ups listed in decision metadata.
ALTERNATIVES = 3


class DecisionEngine:
    """Runs placement search for one request."""

    def __init__(self, weights: Weights | None = None, search: SearchConfig | None = None):
        self.evaluator = HeuristicEvaluator(weights)
        self.search = LookaheadSearch(self.evaluator, search)

    def decide(self, request: Decide) -> DecideResponse:
        board = request.board
        context = EvalContext(
            skill_level=request.skill_level,
            queue_colors=queue_colors(request.queue),
            ufo_active=request.ufo_active,
            mode=request.mode,
        )
        stack_height = board.stack_height()

        result = self.search.search(
            board, request.piece, request.queue, context,
            capture_breakdown=request.capture_decision_meta,
        )
        if result.best is None:
            logger.warning("No legal placement for %s piece", request.piece.color)
            return DecideResponse(None, stack_height)

        best = result.best
        logger.debug(
            "Chose x=%d rot=%d score=%.2f (%d candidates, depth %d)",
            best.x, best.rotation_index, best.final_score, len(result.placements), result.depth,
        )

        meta = None
        if request.capture_decision_meta:
            meta = self._decision_meta(request, result.placements, best, result.depth, stack_height)

        return DecideResponse(
            best_placement=best,
            stack_height=stack_height,
            decision_meta=meta,
            top_placements=tuple(rank_by_score(result.placements, RECORDED_PLACEMENTS)),
        )

    def warmup(self) -> None:
        """Run one small decision so the numba kernels are compiled before play."""
        cell = Piece(((True,),), "warmup")
        queue = (cell,) * self.search.config.max_queue
        self.decide(Decide(Board.empty(4, 6), cell, queue=queue, capture_decision_meta=True))
        logger.debug("Search kernels compiled")

    @staticmethod
    def _decision_meta(request: Decide, placements, best, depth: int,
                       stack_height: int) -> DecisionMeta:
        # Chosen placement first even when another ties with it
        ranked = [best] + [p for p in sorted(placements, key=lambda p: -p.final_score)
                           if p is not best]
        runner_up = ranked[1] if len(ranked) > 1 else None
        differential = None
        if runner_up is not None:
            differential = round(best.final_score - runner_up.final_score, 2)

        return DecisionMeta(
            chosen=PlacementSummary.from_placement(best, with_breakdown=True),
            alternatives=tuple(
                PlacementSummary.from_placement(p) for p in ranked[1: 1 + ALTERNATIVES]
            ),
            score_differential=differential,
            stack_height=stack_height,
            holes=request.board.count_holes(),
            bumpiness=request.board.bumpiness(),
            lookahead_depth=depth,
            queue_colors=tuple(p.color if p is not None else None for p in request.queue),
            candidates_evaluated=len(placements),
            skill_level=request.skill_level,
        )
