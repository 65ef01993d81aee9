#!/usr/bin/env python3
"""Evaluate the decision engine across skill levels in the demo host.

Runs N self-play games per skill level (no browser, no renderer) and
reports lines, pieces and forced drops. Queue depth can be limited to
compare lookahead against greedy play.

Usage:
  python3 tools/eval_skill.py
  python3 tools/eval_skill.py --games 10 --skill breeze tempest
  python3 tools/eval_skill.py --queue 0 1 3 --pieces 100   # compare lookahead depths
"""

import argparse
import os
import sys
import time

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from stormbot.ai.controller import dispatch_all
from stormbot.ai.pipeline import DecisionPipeline, PipelineConfig
from stormbot.ai.state import SkillLevel
from stormbot.game.sim import StormSim


def run_games(skill: SkillLevel, queue_size: int, n_games: int, max_pieces: int,
              seed_offset: int = 0) -> list[dict]:
    """Run n_games inline with the given skill level and visible queue size."""
    results = []
    for game_idx in range(n_games):
        t_game = time.time()
        sim = StormSim(seed=seed_offset + game_idx, skill_level=skill)
        pipeline = DecisionPipeline(PipelineConfig(use_worker=False, skill_level=skill)).start()
        handlers = sim.handlers()
        forced = 0

        while not sim.game_over and sim.pieces_placed < max_pieces:
            placed = sim.pieces_placed
            plan = pipeline.update(sim.board, sim.current, sim.next_pieces[:queue_size]).result()
            if plan.forced is not None:
                forced += 1
            dispatch_all(plan.moves, handlers)
            if sim.pieces_placed == placed and not sim.game_over:
                sim.hard_drop()

        pipeline.close()
        elapsed_game = time.time() - t_game
        results.append({
            "lines": sim.lines_cleared,
            "pieces": sim.pieces_placed,
            "forced": forced,
        })
        print(f"  game {game_idx+1:>2}/{n_games}  lines={sim.lines_cleared:>4}  "
              f"pieces={sim.pieces_placed:>4}  forced={forced:>2}  {elapsed_game:.1f}s", flush=True)

    return results


def print_stats(label: str, results: list[dict], elapsed: float):
    lines = [r["lines"] for r in results]
    pieces = [r["pieces"] for r in results]
    forced = [r["forced"] for r in results]
    n = len(results)
    print(f"\n{'='*55}", flush=True)
    print(f"  {label}  ({n} games, {elapsed:.1f}s total, {elapsed/n:.2f}s/game)")
    print(f"{'='*55}")
    print(f"  Lines:  avg={np.mean(lines):.1f}  median={np.median(lines):.0f}"
          f"  best={max(lines)}  worst={min(lines)}")
    print(f"  Pieces: avg={np.mean(pieces):.1f}  best={max(pieces)}")
    print(f"  Forced drops: avg={np.mean(forced):.2f}", flush=True)


def main():
    parser = argparse.ArgumentParser(description="Evaluate skill levels and lookahead in sim")
    parser.add_argument("--games", type=int, default=5,
                        help="Games per configuration (default 5)")
    parser.add_argument("--skill", nargs="+", default=["tempest"],
                        help="Skill levels to evaluate (default: tempest)")
    parser.add_argument("--queue", type=int, nargs="+", default=[3],
                        help="Visible queue sizes to evaluate (default: 3)")
    parser.add_argument("--pieces", type=int, default=150,
                        help="Piece limit per game (default 150)")
    args = parser.parse_args()

    try:
        skills = [SkillLevel.parse(name) for name in args.skill]
    except ValueError as exc:
        parser.error(str(exc))

    for skill in skills:
        for queue_size in args.queue:
            label = f"{skill.value}, queue {queue_size}"
            print(f"\nRunning {args.games} games: {label}...", flush=True)
            t0 = time.time()
            results = run_games(skill, queue_size, args.games, args.pieces, seed_offset=42)
            elapsed = time.time() - t0
            print_stats(label, results, elapsed)


if __name__ == "__main__":
    main()
