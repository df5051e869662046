# game_link.py
# HTTP/JSON transport between the bot and the arena server.

import logging
import os
import time

import requests

from cycles_game import GameState, ProtocolError

logger = logging.getLogger(__name__)

CYCLES_HOST = os.getenv("CYCLES_HOST", "localhost")
CYCLES_PORT = int(os.getenv("CYCLES_PORT", "3101"))
TIMEOUT = float(os.getenv("CYCLES_TIMEOUT", "1.0"))  # per request
POLL_INTERVAL = float(os.getenv("CYCLES_POLL_INTERVAL", "0.01"))
MAX_WAIT = float(os.getenv("CYCLES_MAX_WAIT", "30.0"))  # longest wait for a new turn


class GameLink:
    """
    Client side of the arena protocol:
        POST /connect {"name"}
        GET  /state?name=...&since=<last turn seen>   -> 200 {"state": ...} or 204 while nothing new
        POST /move {"name", "move", "turn"}
    Transport errors end the session instead of propagating.
    """

    def __init__(self, host=CYCLES_HOST, port=CYCLES_PORT, session=None,
                 timeout=TIMEOUT, poll_interval=POLL_INTERVAL, max_wait=MAX_WAIT):
        self.base_url = f"http://{host}:{port}"
        self.session = session or requests.Session()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.name = None
        self.active = False
        self.last_turn = -1

    def connect(self, name) -> bool:
        self.name = name
        try:
            response = self.session.post(f"{self.base_url}/connect", json={"name": name}, timeout=self.timeout)
        except (requests.RequestException, requests.Timeout) as exc:
            logger.error("%s: cannot reach %s: %s", name, self.base_url, exc)
            self.active = False
            return False
        if response.status_code != 200:
            logger.error("%s: connect refused (%d): %s", name, response.status_code, _error_text(response))
            self.active = False
            return False
        self.active = True
        logger.info("%s: connected to %s", name, self.base_url)
        return True

    def is_active(self) -> bool:
        return self.active

    def receive_game_state(self):
        """Block until a turn newer than the last one is served.

        Returns None and deactivates the link once the game is over, this
        player has been eliminated, the server can no longer be reached, or no
        new turn shows up within max_wait seconds.
        """
        params = {"name": self.name, "since": self.last_turn}
        deadline = time.monotonic() + self.max_wait
        while self.active:
            try:
                response = self.session.get(f"{self.base_url}/state", params=params, timeout=self.timeout)
            except (requests.RequestException, requests.Timeout) as exc:
                logger.error("%s: lost connection: %s", self.name, exc)
                self.active = False
                return None
            if response.status_code == 204:
                if time.monotonic() >= deadline:
                    logger.error("%s: no new turn after %.1fs, giving up", self.name, self.max_wait)
                    self.active = False
                    return None
                time.sleep(self.poll_interval)
                continue
            if response.status_code != 200:
                logger.error("%s: state request failed (%d): %s", self.name, response.status_code, _error_text(response))
                self.active = False
                return None
            try:
                state = GameState.from_dict(response.json()["state"])
            except (KeyError, TypeError, ValueError, AttributeError, ProtocolError) as exc:
                logger.error("%s: malformed snapshot: %s", self.name, exc)
                self.active = False
                return None
            self.last_turn = state.turn
            me = state.get_player(self.name)
            if state.status == "over" or (me is not None and not me.alive):
                logger.info("%s: game finished on turn %d (alive=%s)", self.name, state.turn, bool(me and me.alive))
                self.active = False
                return None
            return state
        return None

    def send_move(self, direction):
        payload = {"name": self.name, "move": direction.name, "turn": self.last_turn}
        try:
            response = self.session.post(f"{self.base_url}/move", json=payload, timeout=self.timeout)
        except (requests.RequestException, requests.Timeout) as exc:
            logger.error("%s: could not send move: %s", self.name, exc)
            self.active = False
            return False
        if response.status_code != 200:
            logger.warning("%s: move %s rejected (%d): %s", self.name, direction.name,
                           response.status_code, _error_text(response))
            return False
        return True


def _error_text(response):
    try:
        return response.json().get("error", "")
    except (ValueError, AttributeError):
        return response.text
