"""Asynchronous decision pipeline.

Runs decisions on a single background worker thread so the host loop never
blocks on search, with an inline fallback that uses the same engine when no
worker is available. At most one decision is in flight: a request arriving
while another is pending is dropped and the pending request's result is the
one delivered.

The pipeline also owns the per-game state (mode, stuck counters) and the
recorder. Both are only driven from the host thread through `update`,
`reset` and the recording calls; completion callbacks run on the worker
thread in worker mode and on the caller's thread in inline mode.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

from .controller import Move, placement_to_moves
from .engine import DecisionEngine
from .messages import (
    Decide,
    DecideResponse,
    DecisionMeta,
    GetRecording,
    Message,
    RecordEvent,
    Reset,
    ShadowEvaluate,
    StartRecording,
    StopRecording,
)
from .recording import Recorder, Recording
from .state import EngineState, SkillLevel, StuckDetector, StuckReason

if TYPE_CHECKING:
    from ..game.board import Board
    from ..game.pieces import Piece

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    use_worker: bool = True
    setup_timeout: float = 2.0     # seconds to wait for the worker to come up
    shadow_timeout: float = 0.5    # seconds before a shadow evaluation gives up
    stuck_threshold: int = 3
    skill_level: SkillLevel = SkillLevel.TEMPEST
    capture_decision_meta: bool = False
    warmup: bool = True            # compile the search kernels on the worker at start


@dataclass(frozen=True)
class TurnPlan:
    """Moves for the host to execute for the current piece."""

    moves: tuple[Move, ...]
    response: DecideResponse | None = None
    forced: StuckReason | None = None


def _ping() -> bool:
    return True


def _log_warmup_failure(done: Future) -> None:
    exc = None if done.cancelled() else done.exception()
    if exc is not None:
        logger.warning("Kernel warmup failed: %s", exc)


class DecisionPipeline:
    """Single-in-flight request/response front end to the decision engine."""

    def __init__(self, config: PipelineConfig | None = None, engine: DecisionEngine | None = None):
        self.config = config or PipelineConfig()
        self.engine = engine or DecisionEngine()
        self.state = EngineState(
            skill_level=self.config.skill_level,
            stuck=StuckDetector(threshold=self.config.stuck_threshold),
        )
        self.recorder = Recorder()

        self._executor: ThreadPoolExecutor | None = None
        self._inline = True
        self._lock = threading.Lock()
        self._record_lock = threading.Lock()
        self._pending: Future | None = None
        self._generation = 0

    # ── Lifecycle ───────────────────────────────────────────────────────────

    def start(self) -> DecisionPipeline:
        """Bring up the worker, falling back to inline computation."""
        if not self.config.use_worker:
            logger.info("Decision pipeline running inline")
            return self

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stormbot-worker")
        try:
            executor.submit(_ping).result(timeout=self.config.setup_timeout)
        except FuturesTimeout:
            logger.warning("Worker not ready after %.1fs, falling back to inline",
                           self.config.setup_timeout)
            executor.shutdown(wait=False, cancel_futures=True)
            return self

        self._executor = executor
        self._inline = False
        logger.info("Decision worker ready")
        if self.config.warmup:
            executor.submit(self.engine.warmup).add_done_callback(_log_warmup_failure)
        return self

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._inline = True

    def __enter__(self) -> DecisionPipeline:
        return self.start()

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def inline(self) -> bool:
        return self._inline

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._pending is not None

    # ── Decisions ───────────────────────────────────────────────────────────

    def request_best_placement(
        self,
        request: Decide,
        callback: Callable[[DecideResponse], None] | None = None,
    ) -> Future | None:
        """Start a decision unless one is already in flight.

        Returns a Future resolving to the DecideResponse, or None when the
        request was dropped. The future is cancelled (and `callback` not
        called) if the pipeline was reset before the result arrived.
        """
        with self._lock:
            if self._pending is not None:
                logger.debug("Decision already in flight, dropping request")
                return None
            future: Future = Future()
            self._pending = future
            generation = self._generation

        if self._inline:
            try:
                response = self.engine.decide(request)
            except Exception as exc:
                logger.exception("Inline decision failed")
                self._fail(future, exc)
            else:
                self._deliver(future, generation, request, response, callback)
            return future

        worker_future = self._executor.submit(self.engine.decide, request)
        worker_future.add_done_callback(
            lambda done: self._on_worker_done(done, future, generation, request, callback)
        )
        return future

    def _on_worker_done(self, done: Future, future: Future, generation: int,
                        request: Decide, callback) -> None:
        exc = done.exception()
        if exc is not None:
            logger.warning("Decision worker failed (%s), switching to inline", exc)
            self._inline = True
            self._fail(future, exc)
            return
        self._deliver(future, generation, request, done.result(), callback)

    def _fail(self, future: Future, exc: BaseException) -> None:
        with self._lock:
            if self._pending is future:
                self._pending = None
        future.set_exception(exc)

    def _deliver(self, future: Future, generation: int, request: Decide,
                 response: DecideResponse, callback) -> None:
        with self._lock:
            if self._pending is future:
                self._pending = None
            stale = generation != self._generation

        if stale:
            logger.debug("Discarding decision computed before reset")
            future.cancel()
            return

        with self._record_lock:
            self.recorder.record_decision(request.board, request.piece.color, response, request.mode)

        future.set_result(response)
        if callback is not None:
            callback(response)

    def shadow_evaluate(self, request: Decide) -> DecisionMeta | None:
        """Score a position without emitting a move or touching game state.

        Returns None if the worker does not answer within the shadow
        timeout, and at once when there is no worker.
        """
        if self._inline:
            logger.debug("No decision worker, skipping shadow evaluation")
            return None

        request = dataclasses.replace(request, capture_decision_meta=True)
        future = self._executor.submit(self.engine.decide, request)
        try:
            return future.result(timeout=self.config.shadow_timeout).decision_meta
        except FuturesTimeout:
            logger.debug("Shadow evaluation timed out after %.2fs", self.config.shadow_timeout)
            future.cancel()
            return None

    # ── Turn orchestration ──────────────────────────────────────────────────

    def update(
        self,
        board: Board,
        piece: Piece,
        queue: Sequence[Piece] = (),
        shaking: bool = False,
        ufo_active: bool = False,
        callback: Callable[[TurnPlan], None] | None = None,
    ) -> Future | None:
        """Run one host cycle for the active piece.

        Recomputes the mode from the board, then either forces a drop (stuck
        piece) or requests a decision. Returns a Future resolving to a
        TurnPlan, or None while a decision is still in flight. While
        `shaking`, drops are withheld and the same-position check is paused.
        """
        switch = self.state.update_mode(board.stack_height())
        if switch is not None:
            self.record_event("modeSwitch", switch.to_event_data())

        if self.busy:
            return None

        plan_future: Future = Future()

        reason = self.state.stuck.check(piece, shaking)
        if reason is not None:
            plan = TurnPlan((Move.DROP,), forced=reason)
            plan_future.set_result(plan)
            if callback is not None:
                callback(plan)
            return plan_future

        # Rotation indices in the response count turns from the current shape
        request = Decide(
            board=board,
            piece=piece.rebased(),
            queue=tuple(queue),
            skill_level=self.state.skill_level,
            ufo_active=ufo_active,
            capture_decision_meta=self.config.capture_decision_meta or self.recorder.active,
            mode=self.state.mode,
        )

        def on_done(done: Future) -> None:
            if done.cancelled():
                plan_future.cancel()
                return
            exc = done.exception()
            if exc is not None:
                plan_future.set_exception(exc)
                return
            response = done.result()
            plan = TurnPlan(placement_to_moves(piece.x, response.best_placement, shaking), response)
            plan_future.set_result(plan)
            if callback is not None:
                callback(plan)

        future = self.request_best_placement(request)
        if future is None:
            return None
        future.add_done_callback(on_done)
        return plan_future

    def reset(self) -> None:
        """Clear mode and stuck state; results still in flight are discarded."""
        with self._lock:
            self._generation += 1
        self.state.reset()

    # ── Recording ───────────────────────────────────────────────────────────

    def start_recording(self, skill_level: SkillLevel | None = None) -> Recording:
        with self._record_lock:
            return self.recorder.start(skill_level or self.state.skill_level)

    def stop_recording(self, board: Board | None = None, cause: str = "manual_stop") -> Recording | None:
        with self._record_lock:
            return self.recorder.stop(board, cause, mode=self.state.mode)

    def record_event(self, event_type: str, event_data: dict | None = None) -> None:
        with self._record_lock:
            self.recorder.record_event(event_type, event_data)

    @property
    def recording(self) -> Recording | None:
        return self.recorder.recording

    # ── Message dispatch ────────────────────────────────────────────────────

    def handle(self, message: Message):
        """Dispatch a request message to the matching operation."""
        if isinstance(message, Decide):
            return self.request_best_placement(message)
        if isinstance(message, ShadowEvaluate):
            return self.shadow_evaluate(message.request)
        if isinstance(message, Reset):
            return self.reset()
        if isinstance(message, StartRecording):
            return self.start_recording(message.skill_level)
        if isinstance(message, StopRecording):
            return self.stop_recording(message.board, message.cause)
        if isinstance(message, RecordEvent):
            return self.record_event(message.event_type, message.event_data)
        if isinstance(message, GetRecording):
            return self.recording
        raise TypeError(f"Unsupported message: {type(message).__name__}")
