import requests

from cycles_game import Direction
from game_link import GameLink


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.payload = payload
        self.text = "" if payload is None else str(payload)

    def json(self):
        if self.payload is None:
            raise ValueError("no json")
        return self.payload


class FakeSession:
    def __init__(self, gets=(), posts=()):
        self.gets = list(gets)
        self.posts = list(posts)
        self.calls = []

    def _next(self, queue):
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url, params=None, timeout=None):
        self.calls.append(("GET", url, dict(params or {})))
        return self._next(self.gets)

    def post(self, url, json=None, timeout=None):
        self.calls.append(("POST", url, json))
        return self._next(self.posts)


def _state_payload(turn, status="running", alive=True):
    return {
        "state": {
            "width": 2,
            "height": 1,
            "board": [[1, 0]],
            "players": [{"name": "bot", "x": 0, "y": 0, "alive": alive, "id": 1}],
            "turn": turn,
            "status": status,
        }
    }


def _link(session) -> GameLink:
    return GameLink("arena", 3101, session=session, poll_interval=0)


def test_connect_posts_name() -> None:
    session = FakeSession(posts=[FakeResponse(200, {"status": "connected"})])
    link = _link(session)

    assert link.connect("bot") is True
    assert link.is_active()
    assert session.calls == [("POST", "http://arena:3101/connect", {"name": "bot"})]


def test_connect_refused_or_unreachable() -> None:
    refused = _link(FakeSession(posts=[FakeResponse(409, {"error": "server full"})]))
    assert refused.connect("bot") is False
    assert not refused.is_active()

    unreachable = _link(FakeSession(posts=[requests.ConnectionError("down")]))
    assert unreachable.connect("bot") is False
    assert not unreachable.is_active()


def test_receive_waits_for_new_turn() -> None:
    session = FakeSession(
        posts=[FakeResponse(200, {})],
        gets=[FakeResponse(204), FakeResponse(204), FakeResponse(200, _state_payload(3))],
    )
    link = _link(session)
    link.connect("bot")

    state = link.receive_game_state()

    assert state.turn == 3
    assert link.last_turn == 3
    assert [c[2]["since"] for c in session.calls if c[0] == "GET"] == [-1, -1, -1]


def test_receive_stops_when_game_over_or_eliminated() -> None:
    over = _link(FakeSession(posts=[FakeResponse(200, {})], gets=[FakeResponse(200, _state_payload(9, "over"))]))
    over.connect("bot")
    assert over.receive_game_state() is None
    assert not over.is_active()

    dead = _link(FakeSession(posts=[FakeResponse(200, {})], gets=[FakeResponse(200, _state_payload(4, alive=False))]))
    dead.connect("bot")
    assert dead.receive_game_state() is None
    assert not dead.is_active()


def test_receive_deactivates_on_errors() -> None:
    broken = _link(FakeSession(posts=[FakeResponse(200, {})], gets=[FakeResponse(200, {"state": {"width": 3}})]))
    broken.connect("bot")
    assert broken.receive_game_state() is None
    assert not broken.is_active()

    lost = _link(FakeSession(posts=[FakeResponse(200, {})], gets=[requests.Timeout("slow")]))
    lost.connect("bot")
    assert lost.receive_game_state() is None
    assert not lost.is_active()


def test_send_move_uses_last_turn() -> None:
    session = FakeSession(
        posts=[FakeResponse(200, {}), FakeResponse(200, {"status": "move accepted"}), FakeResponse(409, {"error": "stale"})],
        gets=[FakeResponse(200, _state_payload(2))],
    )
    link = _link(session)
    link.connect("bot")
    link.receive_game_state()

    assert link.send_move(Direction.EAST) is True
    assert session.calls[-1] == ("POST", "http://arena:3101/move", {"name": "bot", "move": "EAST", "turn": 2})
    assert link.send_move(Direction.SOUTH) is False
    assert link.is_active()


def test_receive_gives_up_when_no_turn_arrives() -> None:
    session = FakeSession(posts=[FakeResponse(200, {})], gets=[FakeResponse(204)])
    link = GameLink("arena", 3101, session=session, poll_interval=0, max_wait=0)
    link.connect("bot")

    assert link.receive_game_state() is None
    assert not link.is_active()
    assert len([c for c in session.calls if c[0] == "GET"]) == 1
