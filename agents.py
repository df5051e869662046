# agents.py
# Session driver for the Cycles bot: one TurnContext per session, one decision
# per received snapshot.

import logging
import random

from agent_floodfill import DEFAULT_DIRECTION, decide_move, legal_moves, locate_self
from cycles_game import ConnectionFailed, PlayerNotFoundError

logger = logging.getLogger(__name__)


class TurnContext:
    """Per-session state the decision functions are allowed to see."""

    def __init__(self, name, seed=None):
        self.name = name
        self.seed = seed
        self.rng = random.Random(seed)
        self.head = None
        self.previous_direction = None  # recorded only, never used to bias a decision


def floodfill_strategy(state, context):
    decision = decide_move(state, context)
    if decision.boxed_in:
        logger.warning("%s: no legal move on turn %d, elimination imminent", context.name, state.turn)
    return decision.direction, decision.head


def random_strategy(state, context):
    """Uniform pick among legal moves, like the arena's random clients."""
    me = locate_self(state, context.name)
    moves = legal_moves(state, me.position)
    if not moves:
        return DEFAULT_DIRECTION, me.position
    direction, _ = context.rng.choice(moves)
    return direction, me.position


STRATEGIES = {
    "floodfill": floodfill_strategy,
    "random": random_strategy,
}


class BotClient:
    def __init__(self, link, name, strategy="floodfill", seed=None):
        if strategy not in STRATEGIES:
            raise ValueError(f"unknown strategy {strategy!r}, expected one of {sorted(STRATEGIES)}")
        self.link = link
        self.context = TurnContext(name, seed)
        self.choose = STRATEGIES[strategy]

    def connect(self):
        if not self.link.connect(self.context.name) or not self.link.is_active():
            logger.critical("%s: Connection failed", self.context.name)
            raise ConnectionFailed(f"{self.context.name}: connection failed")

    def play_turn(self, state):
        """Decide and send one move. Returns the direction sent, or None if the turn was skipped."""
        try:
            direction, head = self.choose(state, self.context)
        except PlayerNotFoundError as exc:
            # The previous head would be stale; sit this turn out instead.
            logger.error("%s: skipping turn: %s", self.context.name, exc)
            self.context.head = None
            return None
        self.context.head = head
        self.context.previous_direction = direction
        self.link.send_move(direction)
        return direction

    def run(self):
        turns = 0
        while self.link.is_active():
            state = self.link.receive_game_state()
            if state is None:
                break
            self.play_turn(state)
            turns += 1
        logger.info("%s: session ended after %d turns", self.context.name, turns)
        return turns
