# agent_floodfill.py
# Flood-fill move selection for the Cycles bot. Every function here is pure
# given (state, context): the snapshot is never mutated and no module state is
# kept between calls.

import logging
from collections import deque, namedtuple
from typing import List, Optional, Tuple

from cycles_game import DIRECTIONS, Cell, Direction, GameState, Player, PlayerNotFoundError

logger = logging.getLogger(__name__)

Candidate = Tuple[Direction, int]

Decision = namedtuple("Decision", ["direction", "head", "mode", "target", "boxed_in"])

SAFE = "safe"
AGGRESSIVE = "aggressive"
DEFAULT_DIRECTION = Direction.NORTH


# -------------- Accessibility -----------------

def reachable_area(state: GameState, start: Cell) -> int:
    """Count empty, in-bounds cells 4-connected to start (start included).

    Neighbours are queued unconditionally and filtered when popped, so a cell
    may sit in the queue several times but is only counted once.
    """
    to_visit = deque([start])
    visited = set()
    area = 0
    while to_visit:
        current = to_visit.popleft()
        if current in visited or not state.in_bounds(current) or not state.is_empty(current):
            continue
        visited.add(current)
        area += 1
        for d in DIRECTIONS:
            to_visit.append(d.step(current))
    return area


def manhattan(a: Cell, b: Cell) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def legal_moves(state: GameState, head: Cell) -> List[Tuple[Direction, Cell]]:
    """(direction, resulting cell) for every move that lands on a free cell, in N/E/S/W order."""
    moves = []
    for d in DIRECTIONS:
        nxt = d.step(head)
        if state.is_free(nxt):
            moves.append((d, nxt))
    return moves


# -------------- Opponent prediction -----------------

def predict_next_head(state: GameState, opponent_head: Cell) -> Cell:
    """Guess the opponent's next cell by replaying the greedy area heuristic for it.

    The first direction with the strictly largest area wins; when nothing beats
    an area of 0 the opponent is assumed to stay where it is.
    """
    best_cell = opponent_head
    best_area = 0
    for _, nxt in legal_moves(state, opponent_head):
        area = reachable_area(state, nxt)
        if area > best_area:
            best_area = area
            best_cell = nxt
    return best_cell


# -------------- Move scoring -----------------

def safe_candidates(state: GameState, head: Cell) -> List[Candidate]:
    return [(d, reachable_area(state, nxt)) for d, nxt in legal_moves(state, head)]


def aggressive_candidates(state: GameState, head: Cell, target: Cell) -> List[Candidate]:
    # Area and distance are both cell counts, so they subtract directly.
    return [
        (d, reachable_area(state, nxt) - manhattan(nxt, target))
        for d, nxt in legal_moves(state, head)
    ]


def find_best_move(candidates: List[Candidate]) -> Direction:
    if not candidates:
        return DEFAULT_DIRECTION
    # sorted() is stable, so equal scores keep N/E/S/W order.
    ranked = sorted(candidates, key=lambda c: c[1], reverse=True)
    return ranked[0][0]


# -------------- Turn decision -----------------

def locate_self(state: GameState, name: str) -> Player:
    me = state.get_player(name)
    if me is None:
        raise PlayerNotFoundError(f"{name} is not in the snapshot for turn {state.turn}")
    return me


def nearest_opponent(state: GameState, me: Player) -> Optional[Player]:
    """Closest live opponent head by Manhattan distance; ties go to the earlier player in the list."""
    best = None
    best_dist = None
    for player in state.players:
        if player.name == me.name or not player.alive:
            continue
        dist = manhattan(me.position, player.position)
        if best_dist is None or dist < best_dist:
            best, best_dist = player, dist
    return best


def decide_move(state: GameState, context) -> Decision:
    """Pick this turn's direction: chase the nearest opponent if there is one, else maximise room."""
    me = locate_self(state, context.name)

    opponent = nearest_opponent(state, me)
    if opponent is None:
        mode, target = SAFE, None
        candidates = safe_candidates(state, me.position)
    else:
        mode = AGGRESSIVE
        target = predict_next_head(state, opponent.position)
        candidates = aggressive_candidates(state, me.position, target)

    direction = find_best_move(candidates)
    logger.debug("turn %d %s candidates=%s target=%s -> %s",
                 state.turn, mode, [(d.name, s) for d, s in candidates], target, direction.name)
    return Decision(direction, me.position, mode, target, not candidates)
