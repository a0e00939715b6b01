"""
Tests for the turn engine: legality, multi-play, effects and turn order.
"""

import pytest

from conftest import (
    BLUE_5, BLUE_7, BLUE_9, DRAW4, GREEN_3, GREEN_7, RED_5, RED_7, RED_9, RED_DRAW2,
    RED_REVERSE, RED_SKIP, WILD, WILD_2, YELLOW_5, YELLOW_7, RecordingSink, all_cards, make_engine
)
from uno_engine.constants import create_deck, is_wild
from uno_engine.effects import apply_opening_effect
from uno_engine.engine import TurnEngine
from uno_engine.errors import (
    ALREADY_PLAYED, COLOR_PENDING, GAME_NOT_STARTED, ILLEGAL_PLAY, INVALID_COLOR,
    MULTI_PLAY_MISMATCH, NO_COLOR_PENDING, NOT_ACTED, NOT_IN_HAND, NOT_YOUR_TURN,
    ROUND_OVER, GameError
)
from uno_engine.models import Player, RoundState, TurnPhase
from uno_engine.relay import Relay
from uno_engine.rules import create_rules
from uno_engine.shuffle import Deck
from uno_engine.validate import is_valid_play


@pytest.mark.parametrize("card,legal", [
    (RED_9, True),      # colour match
    (YELLOW_5, True),   # rank match
    (WILD, True),
    (DRAW4, True),
    (GREEN_3, False),
    (BLUE_9, False),
])
def test_legality_against_plain_top(card, legal):
    state = RoundState(discard_top=RED_5)
    assert is_valid_play(state, card) is legal


@pytest.mark.parametrize("card,legal", [
    (BLUE_9, True),     # matches the chosen colour
    (RED_5, False),     # the wild's own colour does not count
    (GREEN_3, False),
    (WILD_2, True),
    (DRAW4, True),
])
def test_legality_against_wild_top(card, legal):
    state = RoundState(discard_top=WILD, active_color='blue')
    assert is_valid_play(state, card) is legal


def test_play_moves_card_to_discard(three_players):
    engine, sinks = three_players

    engine.play_card("p0", RED_7)

    assert engine.state.discard_top == RED_7
    assert engine.state.buried == [RED_5]
    assert RED_7 not in engine.roster[0].hand
    assert engine.state.turn_phase == TurnPhase.PLAYED

    # Everyone sees the card, only the actor gets a hand
    for sink in sinks.values():
        assert sink.of_type("sendCard")[0].data == RED_7
    assert len(sinks["p0"].of_type("haveCard")) == 1
    assert sinks["p1"].of_type("haveCard") == []


def test_illegal_play_is_rejected(three_players):
    engine, _ = three_players

    with pytest.raises(GameError) as exc:
        engine.play_card("p0", GREEN_3)
    assert exc.value.code == ILLEGAL_PLAY


def test_card_not_in_hand(three_players):
    engine, _ = three_players

    with pytest.raises(GameError) as exc:
        engine.play_card("p0", BLUE_5)
    assert exc.value.code == NOT_IN_HAND
    assert exc.value.message == "Error: Card not in hand"


def test_out_of_turn_actions_are_rejected(three_players):
    engine, _ = three_players

    for action in (
        lambda: engine.play_card("p1", BLUE_5),
        lambda: engine.draw_card("p1"),
        lambda: engine.end_turn("p1"),
        lambda: engine.select_wild_color("p1", "red"),
    ):
        with pytest.raises(GameError) as exc:
            action()
        assert exc.value.code == NOT_YOUR_TURN


def test_multi_play_locks_rank(three_players):
    """After a 7, only 7s of any colour may follow in the same turn."""
    engine, _ = three_players

    engine.play_card("p0", RED_7)

    with pytest.raises(GameError) as exc:
        engine.play_card("p0", GREEN_3)
    assert exc.value.code == MULTI_PLAY_MISMATCH

    engine.play_card("p0", YELLOW_7)
    engine.play_card("p0", GREEN_7)

    assert engine.state.discard_top == GREEN_7
    assert engine.state.buried == [RED_5, RED_7, YELLOW_7]


def test_multi_play_ignores_board_colour():
    engine, _ = make_engine(hands=[[RED_7, BLUE_7], [GREEN_3]], discard_top=RED_5)
    assert not is_valid_play(engine.state, BLUE_7)

    engine.play_card("p0", RED_7)
    engine.play_card("p0", BLUE_7)

    assert engine.state.discard_top == BLUE_7


def test_draw_after_play_is_rejected(three_players):
    engine, _ = three_players
    engine.play_card("p0", RED_7)

    with pytest.raises(GameError) as exc:
        engine.draw_card("p0")
    assert exc.value.code == ALREADY_PLAYED
    assert exc.value.message == "You already played! Click End Turn."


def test_repeated_draws_are_allowed(three_players):
    engine, sinks = three_players
    before = len(engine.roster[0].hand)

    first = engine.draw_card("p0")
    second = engine.draw_card("p0")

    hand = engine.roster[0].hand
    assert len(hand) == before + 2
    assert hand[-2:] == [first, second]
    assert engine.state.turn_phase == TurnPhase.DREW
    assert sinks["p0"].of_type("haveCard")[-1].data == hand


def test_play_after_draw_is_allowed(three_players):
    engine, _ = three_players
    engine.draw_card("p0")

    engine.play_card("p0", RED_7)

    assert engine.state.discard_top == RED_7


def test_end_turn_requires_an_action(three_players):
    engine, _ = three_players

    with pytest.raises(GameError) as exc:
        engine.end_turn("p0")
    assert exc.value.code == NOT_ACTED


def test_drawing_does_not_end_the_turn(three_players):
    """A player who only drew must still play before passing."""
    engine, _ = three_players
    engine.draw_card("p0")

    with pytest.raises(GameError) as exc:
        engine.end_turn("p0")
    assert exc.value.code == NOT_ACTED
    assert engine.current_player.id == "p0"


def test_stack_and_skip(three_players):
    """The player after a Draw2 takes two and the turn lands on the next one."""
    engine, sinks = three_players
    p1_hand = len(engine.roster[1].hand)

    engine.play_card("p0", RED_DRAW2)
    assert engine.state.pending_draw_stack == 2
    engine.end_turn("p0")

    assert len(engine.roster[1].hand) == p1_hand + 2
    assert engine.current_player.id == "p2"
    assert engine.state.pending_draw_stack == 0
    assert sinks["p1"].of_type("haveCard")[-1].data == engine.roster[1].hand
    for sink in sinks.values():
        assert sink.of_type("turnPlayer")[-1].data == "p2"


def test_draw_two_stack_accumulates():
    engine, _ = make_engine(
        hands=[[RED_DRAW2, RED_DRAW2 + 56], [BLUE_5], [GREEN_3]],
        discard_top=RED_5,
    )

    engine.play_card("p0", RED_DRAW2)
    engine.play_card("p0", RED_DRAW2 + 56)
    engine.end_turn("p0")

    assert engine.state.pending_draw_stack == 0
    assert len(engine.roster[1].hand) == 5
    assert engine.current_player.id == "p2"


def test_wild_gates_end_turn(three_players):
    engine, sinks = three_players
    p1_hand = len(engine.roster[1].hand)

    engine.play_card("p0", DRAW4)
    assert engine.state.turn_phase == TurnPhase.AWAITING_COLOR
    assert engine.state.pending_draw_stack == 4

    with pytest.raises(GameError) as exc:
        engine.end_turn("p0")
    assert exc.value.code == COLOR_PENDING
    assert exc.value.message == "You must pick a color first!"

    engine.select_wild_color("p0", "green")
    assert engine.state.active_color == "green"
    for sink in sinks.values():
        assert sink.of_type("wildColorSelected")[-1].data == "green"
        assert sink.of_type("updateGameInfo")[-1].data.active_color == "green"

    engine.end_turn("p0")
    assert len(engine.roster[1].hand) == p1_hand + 4
    assert engine.current_player.id == "p2"
    # The chosen colour stays on the board for the next player
    assert engine.state.active_color == "green"


def test_gold_is_yellow(three_players):
    engine, _ = three_players
    engine.play_card("p0", DRAW4)

    engine.select_wild_color("p0", "gold")

    assert engine.state.active_color == "yellow"


def test_invalid_color_is_rejected(three_players):
    engine, _ = three_players
    engine.play_card("p0", DRAW4)

    with pytest.raises(GameError) as exc:
        engine.select_wild_color("p0", "purple")
    assert exc.value.code == INVALID_COLOR
    assert engine.state.active_color is None


def test_color_without_wild_is_rejected(three_players):
    engine, _ = three_players
    engine.play_card("p0", RED_7)

    with pytest.raises(GameError) as exc:
        engine.select_wild_color("p0", "blue")
    assert exc.value.code == NO_COLOR_PENDING


def test_new_top_clears_active_color():
    engine, _ = make_engine(
        hands=[[BLUE_9, BLUE_5 + 56], [GREEN_3]],
        discard_top=WILD,
        active_color="blue",
    )

    engine.play_card("p0", BLUE_9)

    assert engine.state.active_color is None


def test_skip_passes_over_next_player(three_players):
    engine, _ = three_players

    engine.play_card("p0", RED_SKIP)
    engine.end_turn("p0")

    assert engine.current_player.id == "p2"


def test_multiple_skips_skip_once():
    engine, _ = make_engine(
        hands=[[RED_SKIP, RED_SKIP + 56, RED_7], [BLUE_5], [GREEN_3], [YELLOW_7]],
        discard_top=RED_5,
    )

    engine.play_card("p0", RED_SKIP)
    engine.play_card("p0", RED_SKIP + 56)
    engine.end_turn("p0")

    assert engine.current_player.id == "p2"


def test_reverse_flips_direction():
    engine, _ = make_engine(
        hands=[[RED_REVERSE, RED_7], [BLUE_5], [GREEN_3], [YELLOW_7]],
        discard_top=RED_5,
    )

    engine.play_card("p0", RED_REVERSE)
    engine.end_turn("p0")

    assert engine.state.direction == -1
    assert engine.current_player.id == "p3"


def test_draw_stack_follows_direction():
    engine, _ = make_engine(
        hands=[[BLUE_5], [RED_DRAW2, RED_7], [GREEN_3], [YELLOW_7]],
        discard_top=RED_5,
        turn_index=1,
        direction=-1,
    )

    engine.play_card("p1", RED_DRAW2)
    engine.end_turn("p1")

    assert len(engine.roster[0].hand) == 3
    assert engine.current_player.id == "p3"


def test_rejected_actions_leave_state_untouched(three_players):
    """A rejection leaves the snapshot byte-identical and sends nothing."""
    engine, sinks = three_players
    engine.play_card("p0", RED_7)
    for sink in sinks.values():
        sink.clear()
    before = engine.snapshot()

    attempts = [
        lambda: engine.play_card("p0", GREEN_3),
        lambda: engine.play_card("p0", BLUE_5),
        lambda: engine.play_card("p1", BLUE_9),
        lambda: engine.draw_card("p0"),
        lambda: engine.draw_card("p2"),
        lambda: engine.select_wild_color("p0", "red"),
        lambda: engine.end_turn("p1"),
    ]
    for attempt in attempts:
        with pytest.raises(GameError):
            attempt()
        assert engine.snapshot() == before

    for sink in sinks.values():
        assert sink.events == []


def test_actions_before_start_are_rejected():
    engine = TurnEngine([Player(id="p0", name="A"), Player(id="p1", name="B")], Relay())

    with pytest.raises(GameError) as exc:
        engine.draw_card("p0")
    assert exc.value.code == GAME_NOT_STARTED


def test_start_deals_and_announces():
    relay = Relay()
    roster = [Player(id=f"p{i}", name=f"Player {i}") for i in range(3)]
    sinks = {}
    for player in roster:
        sinks[player.id] = RecordingSink()
        relay.register(player.id, sinks[player.id])
    engine = TurnEngine(roster, relay, seed=11)

    state = engine.start()

    assert not is_wild(state.discard_top)
    sizes = sorted(len(p.hand) for p in roster)
    if state.discard_top % 14 == 12:
        assert sizes == [7, 7, 9]
    else:
        assert sizes == [7, 7, 7]
    assert sorted(all_cards(engine)) == create_deck()

    for player in roster:
        sink = sinks[player.id]
        assert sink.types()[:1] == ["haveCard"]
        assert sink.of_type("haveCard")[0].data == player.hand
        assert sink.of_type("sendCard")[0].data == state.discard_top
        assert sink.of_type("turnPlayer")[0].data == engine.current_player.id
        assert sink.types()[-1] == "updateGameInfo"


def test_seeded_games_are_reproducible():
    first = TurnEngine([Player(id="a", name="A"), Player(id="b", name="B")], Relay(), seed=99)
    second = TurnEngine([Player(id="a", name="A"), Player(id="b", name="B")], Relay(), seed=99)
    first.start()
    second.start()
    assert first.snapshot() == second.snapshot()


def test_custom_hand_size():
    roster = [Player(id="a", name="A"), Player(id="b", name="B")]
    engine = TurnEngine(roster, Relay(), create_rules(hand_size=3), seed=4)

    engine.start()

    assert sum(len(p.hand) for p in roster) in (6, 8)


def test_cards_are_conserved_through_play():
    """Under the recycle policy no card is ever duplicated or lost."""
    roster = [Player(id=f"p{i}", name=f"Player {i}") for i in range(3)]
    engine = TurnEngine(roster, Relay(), create_rules(reshuffle_policy='recycle'), seed=11)
    engine.start()

    for _ in range(400):
        state = engine.state
        if state.is_over:
            break
        player = engine.current_player
        playable = [card for card in player.hand if is_valid_play(state, card)]
        if playable:
            card = playable[0]
            engine.play_card(player.id, card)
            if is_wild(card):
                engine.select_wild_color(player.id, "red")
            engine.end_turn(player.id)
        else:
            engine.draw_card(player.id)

        accounting = engine.card_accounting()
        assert accounting["total"] == accounting["expected"]
        if engine.deck.rebuilds == 0:
            assert all_cards(engine) == create_deck()


def test_rebuild_policy_accounts_for_extra_deck():
    engine, _ = make_engine(hands=[[RED_7], [GREEN_3]], discard_top=RED_5, deck=[])

    engine.draw_card("p0")

    accounting = engine.card_accounting()
    assert engine.deck.rebuilds == 1
    assert accounting["expected"] == 216
    # Only the cards already on the table plus the fresh deck
    assert accounting["total"] == 3 + 108


def test_recycle_policy_draws_from_buried_cards():
    engine, _ = make_engine(
        hands=[[RED_7, RED_9 + 56], [GREEN_3]],
        discard_top=RED_5,
        deck=[],
        rules=create_rules(reshuffle_policy='recycle'),
    )
    engine.play_card("p0", RED_7)
    engine.end_turn("p0")
    engine.draw_card("p1")

    assert engine.roster[1].hand == [GREEN_3, RED_5]
    assert engine.state.buried == []
    assert engine.deck.rebuilds == 0


def test_empty_hand_wins_the_round():
    engine, sinks = make_engine(hands=[[RED_7], [GREEN_3], [BLUE_5]], discard_top=RED_5)

    engine.play_card("p0", RED_7)
    engine.end_turn("p0")

    assert engine.state.is_over
    assert engine.state.winner_id == "p0"
    for sink in sinks.values():
        round_over = sink.of_type("roundOver")
        assert len(round_over) == 1
        assert round_over[0].data.winner_name == "Player 0"

    with pytest.raises(GameError) as exc:
        engine.draw_card("p1")
    assert exc.value.code == ROUND_OVER


def test_empty_hand_can_play_on():
    engine, sinks = make_engine(
        hands=[[RED_7], [GREEN_3]],
        discard_top=RED_5,
        rules=create_rules(end_round_on_empty_hand=False),
    )

    engine.play_card("p0", RED_7)
    engine.end_turn("p0")

    assert not engine.state.is_over
    assert engine.current_player.id == "p1"
    assert sinks["p0"].of_type("roundOver") == []


def opening_table(top):
    roster = [Player(id=f"p{i}", name=f"Player {i}", hand=[]) for i in range(3)]
    deck = Deck(seed=2)
    deck.cards = [RED_7, GREEN_3, BLUE_5]
    return RoundState(discard_top=top), roster, deck


def test_opening_draw_two():
    """The first player takes two and loses the turn."""
    state, roster, deck = opening_table(RED_DRAW2)

    victim = apply_opening_effect(state, roster, deck)

    assert victim is roster[0]
    assert roster[0].hand == [RED_7, GREEN_3]
    assert state.turn_index == 1
    assert state.pending_draw_stack == 0


def test_opening_reverse():
    state, roster, deck = opening_table(RED_REVERSE)

    assert apply_opening_effect(state, roster, deck) is None
    assert state.direction == -1
    assert state.turn_index == 2


def test_opening_skip():
    state, roster, deck = opening_table(RED_SKIP)

    apply_opening_effect(state, roster, deck)

    assert state.turn_index == 1
    assert state.direction == 1
    assert not state.skip_pending


def test_opening_number():
    state, roster, deck = opening_table(RED_5)

    apply_opening_effect(state, roster, deck)

    assert state.turn_index == 0
    assert len(deck) == 3
