import logging

import pytest

from agents import BotClient, TurnContext, random_strategy
from cycles_game import ConnectionFailed, Direction, GameState, Player


class FakeLink:
    def __init__(self, states=(), connect_ok=True):
        self.states = list(states)
        self.connect_ok = connect_ok
        self.active = False
        self.sent = []
        self.name = None

    def connect(self, name):
        self.name = name
        self.active = self.connect_ok
        return self.connect_ok

    def is_active(self):
        return self.active

    def receive_game_state(self):
        if not self.states:
            self.active = False
            return None
        return self.states.pop(0)

    def send_move(self, direction):
        self.sent.append(direction)


def _open_state(turn=0, players=None) -> GameState:
    return GameState.from_rows(
        [".....", ".....", "..#..", ".....", "....."],
        players=players or [Player("bot", (2, 2))],
        turn=turn,
    )


CORRIDOR = [
    ".....",
    "..#..",
    ".##..",
    "..#..",
    ".....",
]


def test_connect_failure_is_fatal() -> None:
    bot = BotClient(FakeLink(connect_ok=False), "bot")
    with pytest.raises(ConnectionFailed):
        bot.connect()


def test_run_plays_one_move_per_snapshot() -> None:
    link = FakeLink([_open_state(0), _open_state(1)])
    bot = BotClient(link, "bot")
    bot.connect()

    assert bot.run() == 2
    assert link.sent == [Direction.NORTH, Direction.NORTH]
    assert bot.context.previous_direction is Direction.NORTH
    assert bot.context.head == (2, 2)
    assert not link.is_active()


def test_missing_self_skips_the_turn(caplog) -> None:
    link = FakeLink()
    bot = BotClient(link, "bot")
    bot.context.head = (1, 1)
    state = _open_state(players=[Player("someone-else", (0, 0))])

    with caplog.at_level(logging.ERROR):
        assert bot.play_turn(state) is None

    assert link.sent == []
    assert bot.context.head is None
    assert "skipping turn" in caplog.text


def test_boxed_in_sends_north_and_warns(caplog) -> None:
    link = FakeLink()
    bot = BotClient(link, "bot")
    state = GameState.from_rows(["##.", "#..", "..."], players=[Player("bot", (0, 0))])

    with caplog.at_level(logging.WARNING):
        assert bot.play_turn(state) is Direction.NORTH

    assert link.sent == [Direction.NORTH]
    assert "elimination imminent" in caplog.text


def test_random_strategy_only_picks_legal_moves() -> None:
    state = GameState.from_rows(CORRIDOR, players=[Player("bot", (2, 2))])
    for seed in range(10):
        direction, head = random_strategy(state, TurnContext("bot", seed))
        assert direction is Direction.EAST
        assert head == (2, 2)


def test_random_strategy_is_reproducible_with_seed() -> None:
    state = _open_state()
    ctx_a, ctx_b = TurnContext("bot", 42), TurnContext("bot", 42)
    picks_a = [random_strategy(state, ctx_a)[0] for _ in range(8)]
    picks_b = [random_strategy(state, ctx_b)[0] for _ in range(8)]
    assert picks_a == picks_b


def test_unknown_strategy_rejected() -> None:
    with pytest.raises(ValueError):
        BotClient(FakeLink(), "bot", strategy="minimax")
