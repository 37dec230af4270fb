"""
Reducer - Applies actions to game state.

The reducer is the single point of state mutation.
All state changes must go through apply_action() or forfeit_player().

Design principles:
- Atomic: the input state is never touched; a clone is mutated and returned
- Validates before applying
- Returns ActionResult with success/failure and the game-over consequence
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import random
import time

from .state import GameState, GameStatus, Chip, TurnHistoryEntry
from .action import Action, ActionType, ActionResult, ErrorCode, PLACEMENT_ACTIONS
from .deck import draw_card
from .validation import is_valid_placement
from .win_detection import check_winner
from .turn_order import next_player_index


@dataclass
class Reducer:
    """
    Turn state machine.

    Stateless apart from its random source (used when the discard pile is
    reshuffled) and its clock (used for history timestamps).
    """
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], float] = time.time

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an action to the game state.

        Returns ActionResult with new state or error.
        """
        validation = self._validate_action(state, action)
        if validation:
            return validation

        new_state = state.clone()
        if action.action_type in PLACEMENT_ACTIONS:
            result = self._handle_placement(new_state, action)
        else:
            result = self._handle_pass(new_state, action)

        if not result.success:
            return result

        if new_state.status == GameStatus.PLAYING:
            new_state.current_player_index = next_player_index(new_state)

        return ActionResult.success_with_state(new_state, changes=result.state_changes)

    def forfeit(self, state: GameState, player_id: str) -> ActionResult:
        """
        Remove a player from the rotation.

        If they were on turn the pointer moves on. One active player left
        wins; none left ends the game without a winner. In team mode the
        game also ends once every active player is on the same team.
        """
        player = state.get_player(player_id)
        if player is None:
            return ActionResult.failure(f"Player {player_id} not found", ErrorCode.PLAYER_NOT_FOUND)

        if player.forfeited:
            return ActionResult.success_with_state(state, changes=[f"{player.name} already forfeited"])

        if state.status != GameStatus.PLAYING:
            return ActionResult.failure("Game is not in progress", ErrorCode.GAME_NOT_IN_PROGRESS)

        if not any(p.player_id != player_id for p in state.players):
            return ActionResult.failure("No other players in game", ErrorCode.NO_OTHER_PLAYERS)

        new_state = state.clone()
        target = new_state.get_player(player_id)
        target.forfeited = True  # type: ignore[union-attr]
        changes = [f"{target.name} forfeited"]  # type: ignore[union-attr]

        if new_state.current_player.player_id == player_id:
            new_state.current_player_index = next_player_index(new_state)

        active = new_state.active_players
        if len(active) == 1:
            self._finish(new_state, active[0].player_id)
        elif not active:
            self._finish(new_state, None)
        elif new_state.settings.teams_enabled:
            teams = {p.team_index for p in active}
            if len(teams) == 1:
                self._finish(new_state, active[0].player_id)

        if new_state.status == GameStatus.FINISHED:
            changes.append(f"Game over, winner: {new_state.winner or 'none'}")

        return ActionResult.success_with_state(new_state, changes=changes)

    def _validate_action(self, state: GameState, action: Action) -> ActionResult | None:
        """
        Check preconditions that need no mutation.

        Returns a failure result if invalid, None if valid.
        """
        if state.status != GameStatus.PLAYING:
            return ActionResult.failure("Game is not in progress", ErrorCode.GAME_NOT_IN_PROGRESS)

        if not state.players or state.current_player.player_id != action.player_id:
            return ActionResult.failure(f"Not {action.player_id}'s turn", ErrorCode.NOT_YOUR_TURN)

        if action.action_type in PLACEMENT_ACTIONS:
            payload = action.payload
            if payload.card_id is None or payload.cell_number is None:
                return ActionResult.failure("Missing card or target", ErrorCode.INVALID_ACTION)

            card = state.current_player.find_card(payload.card_id)
            if card is None:
                return ActionResult.failure(
                    f"Card {payload.card_id} not in hand", ErrorCode.CARD_NOT_IN_HAND
                )

            check = is_valid_placement(
                state.board, card, payload.cell_number, action.action_type, state.settings
            )
            if not check.valid:
                return ActionResult.failure(
                    check.reason or "Invalid placement", ErrorCode.INVALID_PLACEMENT
                )

        return None

    def _handle_placement(self, state: GameState, action: Action) -> ActionResult:
        """Play a card: discard it, place a chip, maybe draw."""
        player = state.current_player
        card = player.find_card(action.payload.card_id)  # validated already
        target = action.payload.cell_number

        player.hand = [c for c in player.hand if c.card_id != card.card_id]
        state.board.place_chip(target, Chip(player_id=player.player_id, color=player.color))
        player.consecutive_timeouts = 0

        changes = [f"{player.name} played {card.value} on {target} ({action.action_type.value})"]

        should_draw = (
            action.action_type == ActionType.NATURAL
            or state.settings.draw_on_higher
        )
        if should_draw:
            changes.extend(self._refill(state))

        # Discarded after the refill so a reshuffle never hands it straight back
        state.discard_pile.append(card)

        state.turn_history.append(TurnHistoryEntry(
            player_id=player.player_id,
            player_name=player.name,
            player_color=player.color,
            action=action.action_type.value,
            card_value=card.value,
            cell_number=target,
            timestamp=self._timestamp(action),
        ))

        win = check_winner(state.board, state.settings.win_length)
        if win:
            self._finish(state, win.winner)
            changes.append(f"{win.winner} completed a {win.direction} line")

        return ActionResult(success=True, new_state=state, state_changes=changes)

    def _handle_pass(self, state: GameState, action: Action) -> ActionResult:
        """Pass: place nothing, refill the hand if below the cap."""
        player = state.current_player
        if action.payload.is_timeout:
            player.consecutive_timeouts += 1
        else:
            player.consecutive_timeouts = 0

        changes = [f"{player.name} passed" + (" (timeout)" if action.payload.is_timeout else "")]
        changes.extend(self._refill(state))

        state.turn_history.append(TurnHistoryEntry(
            player_id=player.player_id,
            player_name=player.name,
            player_color=player.color,
            action=ActionType.PASS.value,
            timestamp=self._timestamp(action),
            timeout=action.payload.is_timeout,
        ))

        return ActionResult(success=True, new_state=state, state_changes=changes)

    def _refill(self, state: GameState) -> list[str]:
        """Draw one card for the current player if their hand is below the cap."""
        player = state.current_player
        if len(player.hand) >= state.settings.hand_size:
            return []

        drawn = draw_card(state.deck, state.discard_pile, self.rng)
        state.deck = drawn.deck
        state.discard_pile = drawn.discard_pile

        changes = []
        if drawn.reshuffled:
            changes.append("Discard pile reshuffled into the deck")
        if drawn.card is None:
            changes.append("No cards left to draw")
        else:
            player.hand.append(drawn.card)
            changes.append(f"{player.name} drew a card")
        return changes

    def _timestamp(self, action: Action) -> float:
        return action.timestamp if action.timestamp is not None else self.clock()

    def _finish(self, state: GameState, winner: str | None) -> None:
        state.status = GameStatus.FINISHED
        state.winner = winner


def apply_action(state: GameState, action: Action, rng: random.Random | None = None) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer(rng=rng or random.Random())
    return reducer.apply(state, action)


def forfeit_player(state: GameState, player_id: str) -> ActionResult:
    """Convenience function to forfeit a player."""
    return Reducer().forfeit(state, player_id)
