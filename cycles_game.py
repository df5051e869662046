# cycles_game.py
# Grid model for the Cycles trail game. Positions are (x, y): x is the column,
# y is the row, and the board is indexed board[y][x]. 0 marks an empty cell,
# any other value is a trail or a player's head.

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

Cell = Tuple[int, int]

EMPTY = 0


class CyclesError(Exception):
    """Base class for errors raised by the bot and the arena."""


class ConnectionFailed(CyclesError):
    pass


class PlayerNotFoundError(CyclesError):
    pass


class ProtocolError(CyclesError):
    pass


class Direction(Enum):
    # Declaration order is the tie-break order.
    NORTH = (0, -1)
    EAST = (1, 0)
    SOUTH = (0, 1)
    WEST = (-1, 0)

    def step(self, cell: Cell) -> Cell:
        dx, dy = self.value
        return (cell[0] + dx, cell[1] + dy)

    @classmethod
    def parse(cls, name):
        try:
            return cls[str(name).upper()]
        except KeyError:
            raise ProtocolError(f"unknown direction: {name!r}") from None


DIRECTIONS = list(Direction)


@dataclass(frozen=True)
class Player:
    name: str
    position: Cell
    alive: bool = True
    player_id: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "x": self.position[0],
            "y": self.position[1],
            "alive": self.alive,
            "id": self.player_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Player":
        try:
            return cls(
                name=str(data["name"]),
                position=(int(data["x"]), int(data["y"])),
                alive=bool(data.get("alive", True)),
                player_id=int(data.get("id", 0)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProtocolError(f"malformed player entry: {data!r}") from exc


@dataclass(frozen=True)
class GameState:
    """Read-only snapshot of one turn: grid occupancy plus every player."""

    width: int
    height: int
    board: Tuple[Tuple[int, ...], ...]
    players: Tuple[Player, ...] = ()
    turn: int = 0
    status: str = "running"

    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.width and 0 <= y < self.height

    def is_empty(self, cell: Cell) -> bool:
        # Only meaningful once in_bounds(cell) holds.
        x, y = cell
        return self.board[y][x] == EMPTY

    def is_free(self, cell: Cell) -> bool:
        return self.in_bounds(cell) and self.is_empty(cell)

    def get_player(self, name: str) -> Optional[Player]:
        for player in self.players:
            if player.name == name:
                return player
        return None

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "board": [list(row) for row in self.board],
            "players": [p.to_dict() for p in self.players],
            "turn": self.turn,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GameState":
        """Build a snapshot from the JSON payload served by the arena.

        Width and height default to the board's own dimensions; a board whose
        rows disagree with them is rejected rather than silently truncated.
        """
        board = data.get("board")
        if not isinstance(board, list) or not all(isinstance(row, list) for row in board):
            raise ProtocolError("snapshot board must be a list of rows")
        try:
            height = int(data.get("height", len(board)))
            width = int(data.get("width", len(board[0]) if board else 0))
            if len(board) != height or any(len(row) != width for row in board):
                raise ProtocolError(f"board does not match {width}x{height}")
            return cls(
                width=width,
                height=height,
                board=tuple(tuple(int(v) for v in row) for row in board),
                players=tuple(Player.from_dict(p) for p in data.get("players", [])),
                turn=int(data.get("turn", 0)),
                status=str(data.get("status", "running")),
            )
        except (TypeError, ValueError) as exc:
            raise ProtocolError(f"malformed snapshot: {exc}") from exc

    @classmethod
    def from_rows(cls, rows, players=(), turn=0) -> "GameState":
        """Convenience constructor from a list of strings ('.' empty, anything else occupied)."""
        board = tuple(tuple(EMPTY if ch == "." else 1 for ch in row) for row in rows)
        return cls(
            width=len(board[0]) if board else 0,
            height=len(board),
            board=board,
            players=tuple(players),
            turn=turn,
        )


@dataclass
class _Cycle:
    name: str
    player_id: int
    position: Cell
    direction: Direction
    alive: bool = True


@dataclass
class Game:
    """
    Server-side Cycles engine.

    Rules:
    - Every live player moves one cell per turn, all simultaneously.
    - Each player leaves a permanent trail on every cell it has occupied.
    - Leaving the grid or entering an occupied cell eliminates the player.
    - Two heads entering the same cell eliminates both.
    - A player that sends no move keeps its previous direction.
    - Players may join until the game is over, spawning on a free cell.
    - The game ends when at most one player is left alive (with two or more
      having started) or after max_turns.
    """

    width: int = 100
    height: int = 100
    max_turns: int = 2000
    seed: Optional[int] = None
    turn: int = 0
    started: bool = False
    cycles: Dict[str, _Cycle] = field(default_factory=dict)

    def __post_init__(self):
        self.rng = random.Random(self.seed)
        self.grid: List[List[int]] = [[EMPTY] * self.width for _ in range(self.height)]

    def _random_free_cell(self) -> Cell:
        free = [
            (x, y)
            for y in range(self.height)
            for x in range(self.width)
            if self.grid[y][x] == EMPTY
        ]
        if not free:
            raise CyclesError("no free cell left to spawn a player")
        return self.rng.choice(free)

    def add_player(self, name: str) -> Player:
        if name in self.cycles:
            raise CyclesError(f"player {name!r} already joined")
        if self.is_over():
            raise CyclesError("game is over")
        player_id = len(self.cycles) + 1
        pos = self._random_free_cell()
        self.grid[pos[1]][pos[0]] = player_id
        self.cycles[name] = _Cycle(name, player_id, pos, self.rng.choice(DIRECTIONS))
        return Player(name, pos, True, player_id)

    def alive_names(self) -> List[str]:
        return [c.name for c in self.cycles.values() if c.alive]

    def is_over(self) -> bool:
        if not self.started:
            return False
        if self.turn >= self.max_turns:
            return True
        return len(self.cycles) > 1 and len(self.alive_names()) <= 1

    def step(self, moves: Dict[str, Direction]) -> Dict[str, str]:
        """
        Apply one simultaneous move for every live player.
        Returns name -> outcome: 'OK', 'ELIMINATED_WALL', 'ELIMINATED_TRAIL'
        or 'ELIMINATED_COLLISION'.
        """
        self.turn += 1
        intended: Dict[str, Cell] = {}
        for name in self.alive_names():
            cycle = self.cycles[name]
            cycle.direction = moves.get(name, cycle.direction)
            intended[name] = cycle.direction.step(cycle.position)

        outcomes = {name: "OK" for name in intended}
        targets: Dict[Cell, List[str]] = {}
        for name, (x, y) in intended.items():
            if not (0 <= x < self.width and 0 <= y < self.height):
                outcomes[name] = "ELIMINATED_WALL"
            elif self.grid[y][x] != EMPTY:
                outcomes[name] = "ELIMINATED_TRAIL"
            else:
                targets.setdefault((x, y), []).append(name)

        for cell, names in targets.items():
            if len(names) > 1:
                for name in names:
                    outcomes[name] = "ELIMINATED_COLLISION"

        for name, outcome in outcomes.items():
            cycle = self.cycles[name]
            if outcome != "OK":
                cycle.alive = False
                continue
            x, y = intended[name]
            cycle.position = (x, y)
            self.grid[y][x] = cycle.player_id
        # Heads that met are both dead, but the cell still gets a trail.
        for cell, names in targets.items():
            if len(names) > 1:
                self.grid[cell[1]][cell[0]] = self.cycles[names[0]].player_id
        return outcomes

    def snapshot(self) -> GameState:
        if not self.started:
            status = "waiting"
        elif self.is_over():
            status = "over"
        else:
            status = "running"
        return GameState(
            width=self.width,
            height=self.height,
            board=tuple(tuple(row) for row in self.grid),
            players=tuple(
                Player(c.name, c.position, c.alive, c.player_id)
                for c in self.cycles.values()
            ),
            turn=self.turn,
            status=status,
        )
