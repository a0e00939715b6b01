"""Authoritative turn engine: dealing, validation, effects and turn order"""

import logging
from typing import Dict, List, Optional

from .constants import COLORS, DECK_SIZE, card_rank, describe_card, is_wild
from .effects import apply_card_effect, apply_opening_effect, resolve_next_turn
from .errors import GAME_NOT_STARTED, GameError
from .models import Player, RoundState, TurnPhase
from .rules import RuleConfig, default_rules
from .serialization import snapshot_bytes, summarize_players
from .shuffle import Deck
from .validate import (
    ValidationResult, validate_draw, validate_end_turn, validate_play, validate_select_color
)
from .ws.events import (
    HaveCardEvent, SendCardEvent, TurnPlayerEvent, WildColorSelectedEvent,
    create_game_info_event, create_round_over_event
)

logger = logging.getLogger(__name__)


class TurnEngine:
    """Holds the one Round State of a started game.

    Every public action validates first and mutates afterwards, so a
    rejected action (raised as GameError) leaves deck, roster and round
    exactly as they were. Broadcasts go out through ``relay`` only after the
    state change is complete.
    """

    def __init__(self, roster: List[Player], relay, rules: RuleConfig = default_rules, seed: Optional[int] = None):
        self.roster = roster
        self.relay = relay
        self.rules = rules
        self.deck = Deck(seed=seed, policy=rules.reshuffle_policy, recycle_source=self._take_buried)
        self.state: Optional[RoundState] = None

    @property
    def current_player(self) -> Optional[Player]:
        if self.state is None or not self.roster:
            return None
        return self.roster[self.state.turn_index]

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.roster:
            if player.id == player_id:
                return player
        return None

    def start(self) -> RoundState:
        """Shuffle, deal, turn up the opening card and pick the first player."""
        self.deck.reset()

        for player in self.roster:
            player.hand = self.deck.draw_many(self.rules.hand_size)

        # The opening card may not be wild: put it back and try again
        while True:
            top = self.deck.draw()
            if not is_wild(top):
                break
            self.deck.put_back(top)

        self.state = RoundState(discard_top=top)
        victim = apply_opening_effect(self.state, self.roster, self.deck)
        if victim is not None:
            logger.info(f"{victim.name} draws 2 from the opening card")

        for player in self.roster:
            self._send_hand(player)
        self._broadcast(SendCardEvent(data=top))
        self._broadcast(TurnPlayerEvent(data=self.current_player.id))
        self.broadcast_game_info()

        logger.info(f"Game started with {len(self.roster)} players, opening card {describe_card(top)}, "
                    f"{self.current_player.name} goes first")
        return self.state

    # Actions

    def play_card(self, player_id: str, card: int) -> None:
        state = self._round()
        player = self._require(validate_play(state, self.roster, player_id, card))

        player.hand.remove(card)
        state.buried.append(state.discard_top)
        state.discard_top = card
        state.last_played_rank = card_rank(card)
        apply_card_effect(state, card)

        logger.info(f"{player.name} played {describe_card(card)}")
        self._broadcast(SendCardEvent(data=card))
        self._send_hand(player)
        self.broadcast_game_info()

    def draw_card(self, player_id: str) -> int:
        state = self._round()
        player = self._require(validate_draw(state, self.roster, player_id))

        card = self.deck.draw()
        player.hand.append(card)
        state.turn_phase = TurnPhase.DREW

        logger.info(f"{player.name} drew a card")
        self._send_hand(player)
        self.broadcast_game_info()
        return card

    def select_wild_color(self, player_id: str, color: str) -> None:
        state = self._round()
        chosen = self._require(validate_select_color(state, self.roster, player_id, color))

        state.active_color = chosen
        state.turn_phase = TurnPhase.PLAYED

        logger.info(f"{self.current_player.name} picked {chosen}")
        self._broadcast(WildColorSelectedEvent(data=chosen))
        self.broadcast_game_info()

    def end_turn(self, player_id: str) -> None:
        state = self._round()
        player = self._require(validate_end_turn(state, self.roster, player_id))

        if self.rules.end_round_on_empty_hand and not player.hand:
            self._finish(player)
            return

        victim = resolve_next_turn(state, self.roster, self.deck)
        if victim is not None:
            logger.info(f"{victim.name} takes the draw stack and loses the turn")
            self._send_hand(victim)

        logger.info(f"Turn passed to {self.current_player.name}")
        self._broadcast(TurnPlayerEvent(data=self.current_player.id))
        self.broadcast_game_info()

    def forfeit(self, player_id: str) -> None:
        """
        Remove a player from a round in progress.

        Their hand goes back into the deck. If they held the turn, it ends
        without effects: the draw stack is dropped, an unresolved wild gets
        a random colour, and play moves on in the current direction.
        """
        state = self._round()
        index = next((i for i, p in enumerate(self.roster) if p.id == player_id), None)
        if index is None:
            return

        player = self.roster.pop(index)
        self.deck.cards.extend(player.hand)
        player.hand = []
        self.deck.shuffle()
        logger.info(f"{player.name} left mid-round and forfeits")

        if state.is_over:
            self.broadcast_game_info()
            return

        if len(self.roster) < 2:
            if self.roster:
                self._finish(self.roster[0])
            else:
                state.turn_phase = TurnPhase.DONE
            return

        if index < state.turn_index:
            state.turn_index -= 1
        elif index == state.turn_index:
            count = len(self.roster)
            if state.direction == 1:
                state.turn_index = index % count
            else:
                state.turn_index = (index - 1) % count
            state.pending_draw_stack = 0
            if is_wild(state.discard_top) and state.active_color is None:
                state.active_color = self.deck.rng.choice(COLORS)
                self._broadcast(WildColorSelectedEvent(data=state.active_color))
            state.reset_turn()
            logger.info(f"Turn passed to {self.current_player.name}")
            self._broadcast(TurnPlayerEvent(data=self.current_player.id))

        self.broadcast_game_info()

    # Introspection

    def snapshot(self) -> bytes:
        return snapshot_bytes(self.deck.cards, self.roster, self.state)

    def card_accounting(self) -> Dict[str, int]:
        """Where every card currently is; ``total`` is 108 unless a rebuild happened."""
        counts = {
            "deck": len(self.deck),
            "hands": sum(len(p.hand) for p in self.roster),
            "discard_top": 1 if self.state is not None else 0,
            "buried": len(self.state.buried) if self.state is not None else 0,
        }
        counts["total"] = sum(counts.values())
        counts["expected"] = DECK_SIZE * (1 + self.deck.rebuilds)
        return counts

    def broadcast_game_info(self) -> None:
        active_color = self.state.active_color if self.state is not None else None
        self._broadcast(create_game_info_event(summarize_players(self.roster), active_color))

    # Helpers

    def _round(self) -> RoundState:
        if self.state is None:
            raise GameError(GAME_NOT_STARTED, "The game has not started")
        return self.state

    def _require(self, result: ValidationResult):
        if not result.valid:
            raise GameError(result.error_code, result.error_message)
        return result.value

    def _finish(self, winner: Player) -> None:
        state = self._round()
        state.turn_phase = TurnPhase.DONE
        state.winner_id = winner.id
        state.pending_draw_stack = 0
        logger.info(f"{winner.name} wins the round")
        self._broadcast(create_round_over_event(winner.id, winner.name))
        self.broadcast_game_info()

    def _take_buried(self) -> List[int]:
        if self.state is None:
            return []
        buried, self.state.buried = self.state.buried, []
        return buried

    def _send_hand(self, player: Player) -> None:
        self.relay.send_to(player.id, HaveCardEvent(data=list(player.hand)))

    def _broadcast(self, event) -> None:
        self.relay.broadcast([p.id for p in self.roster], event)
