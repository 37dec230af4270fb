"""
Game State - Data model for a chipgrid game.

Design principles:
- Clone-before-mutate: the reducer works on a deep copy, never the input
- Serializable: every type round-trips through the room document (camelCase keys)
- Hidden information: hands live on Player but are stripped from public views
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any
from copy import deepcopy
from enum import Enum
import time


BOARD_SIZE = 10
CELL_COUNT = BOARD_SIZE * BOARD_SIZE

CHIP_COLORS = ["coral", "mint", "sky", "peach", "lavender", "yellow"]


class GameStatus(Enum):
    """High-level game phases."""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class BoardPattern(Enum):
    """Numbering layouts for the 10x10 board."""
    SPIRAL = "spiral"
    SNAKE = "snake"
    NORMAL = "normal"


@dataclass(frozen=True)
class Card:
    """A numbered card. Duplicate values are told apart by card_id."""
    value: int
    card_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "id": self.card_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Card:
        return cls(value=int(data["value"]), card_id=str(data["id"]))


@dataclass(frozen=True)
class Chip:
    """A permanent marker left on the board by a played card."""
    player_id: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"playerId": self.player_id, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chip:
        return cls(player_id=data["playerId"], color=data["color"])


@dataclass
class BoardCell:
    """One numbered cell of the grid."""
    number: int
    row: int
    col: int
    chip: Chip | None = None

    @property
    def is_occupied(self) -> bool:
        return self.chip is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "position": {"row": self.row, "col": self.col},
            "chip": self.chip.to_dict() if self.chip else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoardCell:
        position = data["position"]
        chip = data.get("chip")
        return cls(
            number=int(data["number"]),
            row=int(position["row"]),
            col=int(position["col"]),
            chip=Chip.from_dict(chip) if chip else None,
        )


@dataclass
class Board:
    """
    The 10x10 grid plus an inverse index from cell number to position.

    The number <-> position mapping is fixed when the board is generated
    and never changes afterwards; only chips are added.
    """
    pattern: BoardPattern
    grid: list[list[BoardCell]]
    _index: dict[int, tuple[int, int]] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if not self._index:
            self._index = {
                cell.number: (cell.row, cell.col)
                for row in self.grid
                for cell in row
            }

    @property
    def size(self) -> int:
        return len(self.grid)

    def cell(self, number: int) -> BoardCell | None:
        """Get a cell by its number, or None if no such cell exists."""
        position = self._index.get(number)
        if position is None:
            return None
        row, col = position
        return self.grid[row][col]

    def cell_at(self, row: int, col: int) -> BoardCell | None:
        if 0 <= row < self.size and 0 <= col < len(self.grid[row]):
            return self.grid[row][col]
        return None

    def position_of(self, number: int) -> tuple[int, int] | None:
        return self._index.get(number)

    def is_occupied(self, number: int) -> bool:
        cell = self.cell(number)
        return cell.is_occupied if cell else False

    def place_chip(self, number: int, chip: Chip) -> None:
        cell = self.cell(number)
        if cell is None:
            raise KeyError(f"No cell numbered {number}")
        cell.chip = chip

    def cells(self):
        """Iterate cells row-major."""
        for row in self.grid:
            yield from row

    def chip_count(self) -> int:
        return sum(1 for cell in self.cells() if cell.chip)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern.value,
            "cells": [[cell.to_dict() for cell in row] for row in self.grid],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Board:
        grid = [[BoardCell.from_dict(c) for c in row] for row in data["cells"]]
        return cls(pattern=BoardPattern(data.get("pattern", "spiral")), grid=grid)


@dataclass
class GameSettings:
    """
    Rules chosen in the lobby; fixed for the lifetime of one game.
    """
    deck_size: int = 100
    cards_per_number: int = 1
    hand_size: int = 5
    win_length: int = 5
    draw_on_higher: bool = False
    allow_chip_override: bool = False
    max_players: int = 6
    board_pattern: BoardPattern = BoardPattern.SPIRAL
    teams_enabled: bool = False

    def validate(self) -> str | None:
        """Return an error message if a setting is out of range."""
        if self.deck_size not in (100, 200):
            return "deck_size must be 100 or 200"
        if not 1 <= self.cards_per_number <= 3:
            return "cards_per_number must be between 1 and 3"
        if not 3 <= self.hand_size <= 7:
            return "hand_size must be between 3 and 7"
        if not 4 <= self.win_length <= 6:
            return "win_length must be between 4 and 6"
        if not 2 <= self.max_players <= 6:
            return "max_players must be between 2 and 6"
        return None

    def merged(self, changes: dict[str, Any]) -> GameSettings:
        """Return new settings with some fields replaced."""
        if "board_pattern" in changes:
            changes = {**changes, "board_pattern": BoardPattern(changes["board_pattern"])}
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "deckSize": self.deck_size,
            "cardsPerNumber": self.cards_per_number,
            "handSize": self.hand_size,
            "winLength": self.win_length,
            "drawOnHigher": self.draw_on_higher,
            "allowChipOverride": self.allow_chip_override,
            "maxPlayers": self.max_players,
            "boardPattern": self.board_pattern.value,
            "teamsEnabled": self.teams_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameSettings:
        defaults = cls()
        return cls(
            deck_size=int(data.get("deckSize", defaults.deck_size)),
            cards_per_number=int(data.get("cardsPerNumber", defaults.cards_per_number)),
            hand_size=int(data.get("handSize", defaults.hand_size)),
            win_length=int(data.get("winLength", defaults.win_length)),
            draw_on_higher=bool(data.get("drawOnHigher", defaults.draw_on_higher)),
            allow_chip_override=bool(data.get("allowChipOverride", defaults.allow_chip_override)),
            max_players=int(data.get("maxPlayers", defaults.max_players)),
            board_pattern=BoardPattern(data.get("boardPattern", defaults.board_pattern.value)),
            teams_enabled=bool(data.get("teamsEnabled", defaults.teams_enabled)),
        )


@dataclass
class Player:
    """
    A seat in the game.

    The hand is private to its owner; every other field is public.
    """
    player_id: str
    name: str
    color: str
    hand: list[Card] = field(default_factory=list)
    is_host: bool = False
    is_bot: bool = False
    team_index: int | None = None
    forfeited: bool = False
    consecutive_timeouts: int = 0

    @property
    def is_active(self) -> bool:
        return not self.forfeited

    def find_card(self, card_id: str) -> Card | None:
        for card in self.hand:
            if card.card_id == card_id:
                return card
        return None

    def to_dict(self, include_hand: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.player_id,
            "name": self.name,
            "color": self.color,
            "hand": [c.to_dict() for c in self.hand] if include_hand else [],
            "isHost": self.is_host,
            "isBot": self.is_bot,
            "forfeited": self.forfeited,
            "consecutiveTimeouts": self.consecutive_timeouts,
        }
        if self.team_index is not None:
            data["teamIndex"] = self.team_index
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Player:
        team_index = data.get("teamIndex")
        return cls(
            player_id=data["id"],
            name=data["name"],
            color=data["color"],
            hand=[Card.from_dict(c) for c in data.get("hand") or []],
            is_host=bool(data.get("isHost", False)),
            is_bot=bool(data.get("isBot", False)),
            team_index=int(team_index) if team_index is not None else None,
            forfeited=bool(data.get("forfeited", False)),
            consecutive_timeouts=int(data.get("consecutiveTimeouts", 0)),
        )


@dataclass(frozen=True)
class TurnHistoryEntry:
    """One completed turn. Appended once, never mutated."""
    player_id: str
    player_name: str
    player_color: str
    action: str
    card_value: int | None = None
    cell_number: int | None = None
    timestamp: float = 0.0
    timeout: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "playerColor": self.player_color,
            "action": self.action,
            "timestamp": self.timestamp,
        }
        if self.card_value is not None:
            data["cardValue"] = self.card_value
        if self.cell_number is not None:
            data["cellNumber"] = self.cell_number
        if self.timeout:
            data["timeout"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TurnHistoryEntry:
        return cls(
            player_id=data["playerId"],
            player_name=data["playerName"],
            player_color=data["playerColor"],
            action=data["action"],
            card_value=data.get("cardValue"),
            cell_number=data.get("cellNumber"),
            timestamp=float(data.get("timestamp", 0.0)),
            timeout=bool(data.get("timeout", False)),
        )


@dataclass
class GameState:
    """
    Complete game state at a point in time.

    This is the canonical state that the engine operates on.
    All state changes go through the reducer.
    """
    room_id: str
    settings: GameSettings
    board: Board
    players: list[Player] = field(default_factory=list)
    status: GameStatus = GameStatus.PLAYING
    current_player_index: int = 0
    deck: list[Card] = field(default_factory=list)
    discard_pile: list[Card] = field(default_factory=list)
    winner: str | None = None
    turn_history: list[TurnHistoryEntry] = field(default_factory=list)

    # Only set in team mode: a permutation of player indices
    turn_order: list[int] | None = None

    created_at: float = field(default_factory=time.time)

    # Compared on write-back to detect concurrent writers
    version: int = 0

    @property
    def current_player(self) -> Player:
        """Get the current player."""
        return self.players[self.current_player_index]

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def active_players(self) -> list[Player]:
        return [p for p in self.players if p.is_active]

    def get_player(self, player_id: str) -> Player | None:
        """Get player by ID."""
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def player_index(self, player_id: str) -> int | None:
        for i, p in enumerate(self.players):
            if p.player_id == player_id:
                return i
        return None

    def card_count(self) -> int:
        """Cards in deck, discard pile and hands. Constant for a whole game."""
        return (
            len(self.deck)
            + len(self.discard_pile)
            + sum(len(p.hand) for p in self.players)
        )

    def clone(self) -> GameState:
        """Deep copy the state."""
        return deepcopy(self)

    def public_dict(self) -> dict[str, Any]:
        """Public zone of the room document. Hands are always empty here."""
        return {
            "roomId": self.room_id,
            "status": self.status.value,
            "settings": self.settings.to_dict(),
            "board": self.board.to_dict(),
            "players": [p.to_dict(include_hand=False) for p in self.players],
            "currentPlayerIndex": self.current_player_index,
            "deck": [c.to_dict() for c in self.deck],
            "discardPile": [c.to_dict() for c in self.discard_pile],
            "winner": self.winner,
            "turnOrder": list(self.turn_order) if self.turn_order is not None else None,
            "createdAt": self.created_at,
            "version": self.version,
        }

    def hands(self) -> dict[str, list[Card]]:
        return {p.player_id: list(p.hand) for p in self.players}
