"""
Special card effects implementation.
"""

from typing import List, Optional

from .constants import DRAW_FOUR, DRAW_PENALTY, DRAW_TWO, REVERSE, SKIP, card_rank, is_wild
from .models import Player, RoundState, TurnPhase
from .shuffle import Deck


def step_index(index: int, direction: int, count: int, steps: int = 1) -> int:
    """Move around the table, normalising negative results into [0, count)."""
    return (index + direction * steps) % count


def apply_skip(state: RoundState) -> None:
    """Skip - the next player's turn is passed over when this turn ends."""
    state.skip_pending = True


def apply_reverse(state: RoundState) -> None:
    """Reverse - flip the direction of play."""
    state.direction *= -1


def apply_draw_penalty(state: RoundState, rank: str) -> None:
    """
    Draw2 / Draw4 - grow the pending draw stack.

    The stack is paid by whoever the turn lands on at end of turn.
    """
    state.pending_draw_stack += DRAW_PENALTY[rank]


def apply_card_effect(state: RoundState, card: int) -> None:
    """
    Apply the effect of a card that has just been played.

    Args:
        state: Round state, already updated with the card as discard top
        card: The card that was played
    """
    rank = card_rank(card)

    # Any new top card invalidates a previously chosen wild colour
    state.active_color = None

    if rank == SKIP:
        apply_skip(state)
    elif rank == REVERSE:
        apply_reverse(state)
    elif rank in (DRAW_TWO, DRAW_FOUR):
        apply_draw_penalty(state, rank)

    if is_wild(card):
        state.turn_phase = TurnPhase.AWAITING_COLOR
    else:
        state.turn_phase = TurnPhase.PLAYED


def resolve_next_turn(state: RoundState, roster: List[Player], deck: Deck) -> Optional[Player]:
    """
    Advance the turn pointer at the end of a turn.

    A pending skip doubles the step. When a draw stack is pending, the player
    the turn lands on takes the cards and forfeits their turn.

    Returns:
        The player who paid the draw stack, if any
    """
    count = len(roster)
    steps = 2 if state.skip_pending else 1
    next_index = step_index(state.turn_index, state.direction, count, steps)

    victim = None
    if state.pending_draw_stack > 0:
        victim = roster[next_index]
        victim.hand.extend(deck.draw_many(state.pending_draw_stack))
        state.pending_draw_stack = 0
        next_index = step_index(next_index, state.direction, count)

    state.turn_index = next_index
    state.reset_turn()
    return victim


def apply_opening_effect(state: RoundState, roster: List[Player], deck: Deck) -> Optional[Player]:
    """
    Let the opening discard pick the first player, as a normal play would.

    Draw2 makes player 0 draw two and lose the turn to player 1, Reverse
    flips direction so the last player starts, Skip hands the turn to
    player 1.

    Returns:
        The player who drew the opening penalty, if any
    """
    count = len(roster)
    rank = card_rank(state.discard_top)
    state.turn_index = 0
    state.direction = 1

    victim = None
    if rank == DRAW_TWO:
        victim = roster[0]
        victim.hand.extend(deck.draw_many(DRAW_PENALTY[DRAW_TWO]))
        state.turn_index = 1 % count
    elif rank == REVERSE:
        state.direction = -1
        state.turn_index = count - 1
    elif rank == SKIP:
        state.turn_index = 1 % count

    state.reset_turn()
    return victim
