"""
Local Cycles arena - hosts one game for several bots over HTTP.
Bots connect, poll for snapshots and post one move per turn. A turn advances
as soon as every live player has moved, or when the turn deadline passes;
players that missed it keep their previous direction.
"""

import logging
import os
import time
from threading import Lock

from flask import Flask, jsonify, request

from cycles_game import CyclesError, Direction, Game, ProtocolError

logger = logging.getLogger(__name__)

app = Flask(__name__)

GRID_WIDTH = int(os.getenv("CYCLES_GRID_WIDTH", "100"))
GRID_HEIGHT = int(os.getenv("CYCLES_GRID_HEIGHT", "100"))
MAX_CLIENTS = int(os.getenv("CYCLES_MAX_CLIENTS", "60"))
MIN_PLAYERS = int(os.getenv("CYCLES_MIN_PLAYERS", "2"))
MAX_TURNS = int(os.getenv("CYCLES_MAX_TURNS", "2000"))
TURN_TIMEOUT = float(os.getenv("CYCLES_TURN_TIMEOUT", "1.0"))  # seconds per turn
SEED = int(os.environ["CYCLES_SEED"]) if os.getenv("CYCLES_SEED") else None

clock = time.monotonic

game_lock = Lock()
GLOBAL_GAME = Game(GRID_WIDTH, GRID_HEIGHT, MAX_TURNS, SEED)
PENDING_MOVES = {}
SETTINGS = {"max_clients": MAX_CLIENTS, "min_players": MIN_PLAYERS, "turn_timeout": TURN_TIMEOUT}
TURN_CLOCK = {"started_at": None}


def reset_game(width=GRID_WIDTH, height=GRID_HEIGHT, max_turns=MAX_TURNS, seed=SEED,
               max_clients=MAX_CLIENTS, min_players=MIN_PLAYERS, turn_timeout=TURN_TIMEOUT):
    """Throw away the current game and start accepting connections for a new one."""
    global GLOBAL_GAME
    with game_lock:
        GLOBAL_GAME = Game(width, height, max_turns, seed)
        PENDING_MOVES.clear()
        SETTINGS.update(max_clients=max_clients, min_players=min_players, turn_timeout=turn_timeout)
        TURN_CLOCK["started_at"] = None
    return GLOBAL_GAME


@app.route("/", methods=["GET"])
def info():
    with game_lock:
        _advance_if_expired()
        snap = GLOBAL_GAME.snapshot()
    return jsonify({
        "server": "cycles-arena",
        "players": len(snap.players),
        "turn": snap.turn,
        "status": snap.status,
        "width": snap.width,
        "height": snap.height,
    }), 200


@app.route("/connect", methods=["POST"])
def connect():
    data = request.get_json(silent=True) or {}
    name = data.get("name")
    if not name:
        return jsonify({"error": "missing name"}), 400
    with game_lock:
        if len(GLOBAL_GAME.cycles) >= SETTINGS["max_clients"]:
            return jsonify({"error": "server full"}), 409
        try:
            player = GLOBAL_GAME.add_player(name)
        except CyclesError as exc:
            return jsonify({"error": str(exc)}), 409
        if not GLOBAL_GAME.started and len(GLOBAL_GAME.cycles) >= SETTINGS["min_players"]:
            GLOBAL_GAME.started = True
            TURN_CLOCK["started_at"] = clock()
    logger.info("%s joined at %s", name, player.position)
    return jsonify({"status": "connected", "player": player.to_dict()}), 200


@app.route("/state", methods=["GET"])
def state():
    """Serve the snapshot once it is newer than `since`; 204 while there is nothing new."""
    name = request.args.get("name", "")
    since = request.args.get("since", default=-1, type=int)
    with game_lock:
        if name not in GLOBAL_GAME.cycles:
            return jsonify({"error": f"unknown player {name!r}"}), 404
        if not GLOBAL_GAME.started:
            return "", 204
        _advance_if_expired()
        snap = GLOBAL_GAME.snapshot()
    if snap.turn <= since and snap.status != "over":
        return "", 204
    return jsonify({"state": snap.to_dict()}), 200


@app.route("/move", methods=["POST"])
def move():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "no json body"}), 400
    name = data.get("name", "")
    try:
        direction = Direction.parse(data.get("move"))
    except ProtocolError as exc:
        return jsonify({"error": str(exc)}), 400

    with game_lock:
        cycle = GLOBAL_GAME.cycles.get(name)
        if cycle is None:
            return jsonify({"error": f"unknown player {name!r}"}), 404
        _advance_if_expired()
        if not GLOBAL_GAME.started or GLOBAL_GAME.is_over():
            return jsonify({"error": "game is not running"}), 409
        if not cycle.alive:
            return jsonify({"error": "player eliminated"}), 409
        turn = data.get("turn", GLOBAL_GAME.turn)
        if turn != GLOBAL_GAME.turn:
            return jsonify({"error": f"stale move for turn {turn}, current turn is {GLOBAL_GAME.turn}"}), 409

        PENDING_MOVES[name] = direction
        if all(n in PENDING_MOVES for n in GLOBAL_GAME.alive_names()):
            _advance()
        current = GLOBAL_GAME.turn
    return jsonify({"status": "move accepted", "turn": current}), 200


def _advance_if_expired():
    # Caller holds game_lock.
    started_at = TURN_CLOCK["started_at"]
    if started_at is None or GLOBAL_GAME.is_over():
        return
    if clock() - started_at >= SETTINGS["turn_timeout"]:
        missing = [n for n in GLOBAL_GAME.alive_names() if n not in PENDING_MOVES]
        logger.info("turn %d timed out waiting for %s", GLOBAL_GAME.turn, ", ".join(missing))
        _advance()


def _advance():
    # Caller holds game_lock.
    outcomes = GLOBAL_GAME.step(dict(PENDING_MOVES))
    PENDING_MOVES.clear()
    TURN_CLOCK["started_at"] = clock()
    for name, outcome in outcomes.items():
        if outcome != "OK":
            logger.info("turn %d: %s %s", GLOBAL_GAME.turn, name, outcome)
    if GLOBAL_GAME.is_over():
        alive = GLOBAL_GAME.alive_names()
        logger.info("game over on turn %d, winner: %s", GLOBAL_GAME.turn, alive[0] if len(alive) == 1 else "none")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.environ.get("CYCLES_PORT", "3101"))
    print(f"Starting Cycles arena {GRID_WIDTH}x{GRID_HEIGHT} on port {port}...")
    app.run(host="0.0.0.0", port=port, debug=False, threaded=True)
