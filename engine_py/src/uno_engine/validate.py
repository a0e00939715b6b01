"""
Action validation for the turn engine.

Every check here is read-only: a failed validation leaves the round
untouched, so the engine can validate first and mutate afterwards.
"""

from typing import List, Optional

from .constants import card_color, card_rank, describe_card, is_wild, normalize_color
from .errors import (
    ALREADY_PLAYED, COLOR_PENDING, ILLEGAL_PLAY, INVALID_COLOR, MULTI_PLAY_MISMATCH,
    NO_COLOR_PENDING, NOT_ACTED, NOT_IN_HAND, NOT_YOUR_TURN, ROUND_OVER
)
from .models import Player, RoundState


class ValidationResult:
    """Result of action validation."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        value=None
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message
        self.value = value

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def success(cls, value=None) -> 'ValidationResult':
        """Create a successful validation result."""
        return cls(valid=True, value=value)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ValidationResult':
        """Create an error validation result."""
        return cls(valid=False, error_code=error_code, error_message=error_message)


def effective_board_color(state: RoundState) -> str:
    """The chosen wild colour if set, else the discard top's own colour."""
    return state.active_color or card_color(state.discard_top)


def is_valid_play(state: RoundState, card: int) -> bool:
    """
    Check a first play of the turn against the board.

    Wild-class cards are always legal; anything else must match the
    effective board colour or the discard top's rank.
    """
    if is_wild(card):
        return True
    if card_color(card) == effective_board_color(state):
        return True
    return card_rank(card) == card_rank(state.discard_top)


def validate_turn(state: RoundState, roster: List[Player], player_id: str) -> ValidationResult:
    """Check that the round is live and the player holds the turn."""
    if state.is_over:
        return ValidationResult.error(ROUND_OVER, "The round is over")
    if not roster or roster[state.turn_index].id != player_id:
        return ValidationResult.error(NOT_YOUR_TURN, "It's not your turn")
    return ValidationResult.success(roster[state.turn_index])


def validate_play(
    state: RoundState,
    roster: List[Player],
    player_id: str,
    card: int
) -> ValidationResult:
    """
    Validate a card play attempt.

    Args:
        state: Current round state
        roster: Players in turn order
        player_id: ID of player attempting the play
        card: Card identifier being played

    Returns:
        ValidationResult carrying the acting Player on success
    """
    result = validate_turn(state, roster, player_id)
    if not result:
        return result
    player = result.value

    if card not in player.hand:
        return ValidationResult.error(NOT_IN_HAND, "Error: Card not in hand")

    if state.has_played_this_turn:
        # Multi-play: any colour, but the rank must repeat
        if card_rank(card) != state.last_played_rank:
            return ValidationResult.error(
                MULTI_PLAY_MISMATCH,
                "Multi-play: Must match the same number!"
            )
    elif not is_valid_play(state, card):
        board_rank = card_rank(state.discard_top)
        return ValidationResult.error(
            ILLEGAL_PLAY,
            f"Invalid: {describe_card(card)} vs {effective_board_color(state)} {board_rank}"
        )

    return ValidationResult.success(player)


def validate_draw(state: RoundState, roster: List[Player], player_id: str) -> ValidationResult:
    result = validate_turn(state, roster, player_id)
    if not result:
        return result
    if state.has_played_this_turn:
        return ValidationResult.error(ALREADY_PLAYED, "You already played! Click End Turn.")
    return result


def validate_select_color(
    state: RoundState,
    roster: List[Player],
    player_id: str,
    color: str
) -> ValidationResult:
    """Validate a wild colour choice; the normalised colour is the result value."""
    result = validate_turn(state, roster, player_id)
    if not result:
        return result
    if not state.color_pending:
        return ValidationResult.error(NO_COLOR_PENDING, "There is no wild colour to choose")
    try:
        chosen = normalize_color(color)
    except ValueError as e:
        return ValidationResult.error(INVALID_COLOR, str(e))
    return ValidationResult.success(chosen)


def validate_end_turn(state: RoundState, roster: List[Player], player_id: str) -> ValidationResult:
    result = validate_turn(state, roster, player_id)
    if not result:
        return result
    if not state.has_acted_this_turn:
        return ValidationResult.error(NOT_ACTED, "You must play a card before ending your turn")
    if is_wild(state.discard_top) and state.active_color is None:
        return ValidationResult.error(COLOR_PENDING, "You must pick a color first!")
    return result
