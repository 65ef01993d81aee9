"""Entry point: python -m stormbot

Plays a self-play game on the demo host with the decision pipeline.
"""

import argparse
import logging

from .ai.state import SkillLevel
from .bot import StormBot


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Self-play with the StormBot decision engine")
    parser.add_argument("--skill", default="tempest",
                        help="Skill level: " + ", ".join(level.value for level in SkillLevel))
    parser.add_argument("--pieces", type=int, default=200, help="Stop after this many pieces")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the piece sequence")
    parser.add_argument("--cols", type=int, default=10)
    parser.add_argument("--rows", type=int, default=20)
    parser.add_argument("--queue", type=int, default=3,
                        help="Upcoming pieces shown to the engine (0 plays greedily)")
    parser.add_argument("--record", metavar="PATH", default=None,
                        help="Save a JSON recording of the game to PATH")
    parser.add_argument("--inline", action="store_true",
                        help="Compute decisions on the calling thread instead of a worker")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        SkillLevel.parse(args.skill)
    except ValueError as exc:
        raise SystemExit(f"ERROR: {exc}")

    bot = StormBot(vars(args))
    result = bot.run()
    print(bot.sim.render())
    print(f"{result.cause}: {result.pieces} pieces, {result.lines} lines, "
          f"score {result.score}, {result.forced_drops} forced drops")


if __name__ == "__main__":
    main()
