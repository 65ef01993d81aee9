"""Translates piece placements into sequences of host moves.

Host controls:
  - rotate: rotate the active piece clockwise once
  - left / right: move one column
  - drop: hard drop (lock immediately)
  - down: soft drop

Rotation indices count clockwise turns from the piece's current shape, so a
placement with rotation_index 2 needs two rotate moves.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Mapping

if TYPE_CHECKING:
    from .planner import Placement


class Move(str, Enum):
    ROTATE = "rotate"
    LEFT = "left"
    RIGHT = "right"
    DROP = "drop"
    DOWN = "down"


def placement_to_moves(
    current_x: int,
    target: Placement | None,
    skip_drop: bool = False,
) -> tuple[Move, ...]:
    """Generate the move sequence from the spawn column to `target`.

    1. Rotate to the target rotation
    2. Move horizontally to the target column
    3. Hard drop, unless `skip_drop` (the host is shaking the board and
       the piece should only be positioned)

    Without a target the piece is dropped where it is, or left alone
    while the drop is withheld.
    """
    if target is None:
        return () if skip_drop else (Move.DROP,)

    moves = [Move.ROTATE] * target.rotation_index

    dx = target.x - current_x
    if dx < 0:
        moves.extend([Move.LEFT] * -dx)
    elif dx > 0:
        moves.extend([Move.RIGHT] * dx)

    if not skip_drop:
        moves.append(Move.DROP)
    return tuple(moves)


def dispatch(move: Move, handlers: Mapping[Move, Callable[[], object]]) -> bool:
    """Invoke the host handler for `move`. Returns False if the host has none."""
    handler = handlers.get(move)
    if handler is None:
        return False
    handler()
    return True


def dispatch_all(moves: Iterable[Move], handlers: Mapping[Move, Callable[[], object]]) -> int:
    """Dispatch moves in order; returns how many had a handler."""
    return sum(1 for move in moves if dispatch(move, handlers))
