"""
Shared fixtures and helpers for the engine tests.
"""

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from uno_engine.constants import create_deck
from uno_engine.engine import TurnEngine
from uno_engine.models import Player, RoundState
from uno_engine.relay import Relay, Sink
from uno_engine.rules import RuleConfig, default_rules
from uno_engine.serialization import summarize_players

# Card ids are 14 * group + rank; groups 0-3 and 4-7 are red/yellow/green/blue
RED_5 = 5
RED_7 = 7
RED_9 = 9
RED_SKIP = 10
RED_REVERSE = 11
RED_DRAW2 = 12
WILD = 13
YELLOW_5 = 19
YELLOW_7 = 21
GREEN_3 = 31
GREEN_7 = 35
BLUE_5 = 47
BLUE_7 = 49
BLUE_9 = 51
WILD_2 = 27
DRAW4 = 69


class RecordingSink(Sink):
    """Collects every event delivered to one peer."""

    def __init__(self):
        self.events = []

    def deliver(self, event) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [e.type.value for e in self.events]

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.type.value == event_type]

    def clear(self) -> None:
        self.events = []


class ExplodingSink(Sink):
    """A peer whose connection is gone."""

    def deliver(self, event) -> None:
        raise ConnectionError("connection reset")


def make_engine(
    hands: Sequence[Sequence[int]],
    discard_top: int,
    turn_index: int = 0,
    direction: int = 1,
    deck: Optional[List[int]] = None,
    rules: RuleConfig = default_rules,
    active_color: Optional[str] = None
):
    """
    Build an engine with a fixed table instead of a random deal.

    Unless given, the deck holds every card not already on the table, so the
    full set of 108 is accounted for.

    Returns:
        (engine, {player_id: RecordingSink})
    """
    relay = Relay()
    roster = [Player(id=f"p{i}", name=f"Player {i}", hand=list(hand)) for i, hand in enumerate(hands)]
    sinks: Dict[str, RecordingSink] = {}
    for player in roster:
        sinks[player.id] = RecordingSink()
        relay.register(player.id, sinks[player.id])

    engine = TurnEngine(roster, relay, rules, seed=7)
    if deck is None:
        on_table = {discard_top}
        for hand in hands:
            on_table.update(hand)
        deck = [card for card in create_deck() if card not in on_table]
    engine.deck.cards = list(deck)
    engine.state = RoundState(
        discard_top=discard_top,
        turn_index=turn_index,
        direction=direction,
        active_color=active_color
    )
    return engine, sinks


def all_cards(engine: TurnEngine) -> List[int]:
    cards = list(engine.deck.cards)
    for player in engine.roster:
        cards.extend(player.hand)
    cards.append(engine.state.discard_top)
    cards.extend(engine.state.buried)
    return sorted(cards)


async def instant_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


async def blocked_sleep(_seconds: float) -> None:
    await asyncio.Event().wait()


@pytest.fixture
def three_players():
    """Three players with known hands, red 5 on the board, player 0 to act."""
    return make_engine(
        hands=[
            [RED_7, YELLOW_7, GREEN_3, GREEN_7, RED_DRAW2, DRAW4, RED_SKIP],
            [BLUE_5, BLUE_9, RED_9],
            [YELLOW_5, WILD, RED_REVERSE],
        ],
        discard_top=RED_5,
    )


def expected_view(roster: List[Player], state: Optional[RoundState], viewer_id: str) -> dict:
    """What a peer should know: the public board plus only its own hand."""
    hand = []
    for player in roster:
        if player.id == viewer_id:
            hand = list(player.hand)
    return {
        "players": summarize_players(roster),
        "hand": hand,
        "discard_top": state.discard_top if state is not None else None,
        "turn_player": roster[state.turn_index].id if state is not None and not state.is_over else None,
        "active_color": state.active_color if state is not None else None,
    }
