"""
Session lifecycle: lobby membership, start countdown, game start and teardown.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .constants import PHASE_COUNTDOWN, PHASE_ENDED, PHASE_IN_PROGRESS, PHASE_LOBBY
from .engine import TurnEngine
from .errors import ALREADY_JOINED, GAME_NOT_STARTED, NOT_IN_LOBBY, ROOM_FULL, ROUND_OVER, raise_error
from .models import Player, RoundState
from .rules import RuleConfig, default_rules
from .serialization import snapshot_bytes, summarize_players
from .ws.events import (
    CountDownEvent, DrawCardEvent, EndTurnEvent, InboundEvent, PlayCardEvent,
    SelectWildColorEvent, create_game_info_event
)

logger = logging.getLogger(__name__)


class Session:
    """The one session a host runs.

    Phases move ``lobby -> countdown -> in_progress -> ended``. The
    countdown is an asyncio task; dropping below ``min_players`` cancels it
    and returns to the lobby.
    """

    def __init__(
        self,
        relay,
        rules: RuleConfig = default_rules,
        seed: Optional[int] = None,
        auto_start: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.relay = relay
        self.rules = rules
        self.seed = seed
        self.auto_start = auto_start
        self._sleep = sleep
        self.phase = PHASE_LOBBY
        self.roster: List[Player] = []
        self.engine: Optional[TurnEngine] = None
        self._countdown_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> Optional[RoundState]:
        return self.engine.state if self.engine is not None else None

    @property
    def countdown_running(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.roster:
            if player.id == player_id:
                return player
        return None

    # Membership

    def add_player(self, player_id: str, name: str) -> Player:
        if self.phase != PHASE_LOBBY:
            raise_error(NOT_IN_LOBBY, "The game has already started")
        if len(self.roster) >= self.rules.max_players:
            raise_error(ROOM_FULL, "Room is full")
        if self.get_player(player_id) is not None:
            raise_error(ALREADY_JOINED, "Already in the room")

        # Resolve the loop before seating anyone, so a join that cannot start
        # the countdown leaves the lobby as it was
        loop = None
        if self.auto_start and self.rules.can_start(len(self.roster) + 1) and not self.countdown_running:
            loop = asyncio.get_running_loop()

        player = Player(id=player_id, name=name)
        self.roster.append(player)
        logger.info(f"{name} ({player_id}) joined, {len(self.roster)}/{self.rules.max_players} players")
        self.broadcast_game_info()

        if loop is not None:
            self.start_countdown(loop)
        return player

    def remove_player(self, player_id: str) -> None:
        player = self.get_player(player_id)
        if player is None:
            return

        if self.phase == PHASE_IN_PROGRESS:
            self.engine.forfeit(player_id)
            self._check_round_over()
            return

        self.roster.remove(player)
        logger.info(f"{player.name} ({player_id}) left, {len(self.roster)} players remain")
        if self.phase == PHASE_COUNTDOWN and not self.rules.can_start(len(self.roster)):
            self.cancel_countdown()
        self.broadcast_game_info()

    # Countdown

    def start_countdown(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Task:
        loop = loop or asyncio.get_running_loop()
        self._countdown_task = loop.create_task(self._run_countdown())
        self.phase = PHASE_COUNTDOWN
        logger.info("Countdown started")
        return self._countdown_task

    async def _run_countdown(self) -> None:
        for remaining in range(self.rules.countdown_seconds, 0, -1):
            self._broadcast(CountDownEvent(data=remaining))
            await self._sleep(1)
        self._countdown_task = None
        try:
            self.start_game()
        except Exception:
            # Nothing awaits this task, so the failure ends here
            logger.exception("Failed to start the game")
            self._abort_start()

    def _abort_start(self) -> None:
        self.engine = None
        for player in self.roster:
            player.hand = []
        self.phase = PHASE_LOBBY
        self._broadcast(CountDownEvent(data=0))
        self.broadcast_game_info()

    def cancel_countdown(self) -> None:
        if self._countdown_task is not None:
            self._countdown_task.cancel()
            self._countdown_task = None
        self.phase = PHASE_LOBBY
        self._broadcast(CountDownEvent(data=0))
        logger.info("Countdown cancelled, back to lobby")

    # Game

    def start_game(self) -> RoundState:
        self.phase = PHASE_IN_PROGRESS
        self._broadcast(CountDownEvent(data=0))
        self.engine = TurnEngine(self.roster, self.relay, self.rules, seed=self.seed)
        return self.engine.start()

    def handle_action(self, player_id: str, event: InboundEvent) -> None:
        """Route a validated inbound action to the turn engine."""
        if self.phase == PHASE_ENDED:
            raise_error(ROUND_OVER, "The round is over")
        if self.phase != PHASE_IN_PROGRESS:
            raise_error(GAME_NOT_STARTED, "The game is not in progress")

        if isinstance(event, PlayCardEvent):
            self.engine.play_card(player_id, event.data)
        elif isinstance(event, DrawCardEvent):
            self.engine.draw_card(player_id)
        elif isinstance(event, EndTurnEvent):
            self.engine.end_turn(player_id)
        elif isinstance(event, SelectWildColorEvent):
            self.engine.select_wild_color(player_id, event.data)
        else:
            raise ValueError(f"Unhandled event type: {type(event).__name__}")

        self._check_round_over()

    def close(self) -> None:
        if self._countdown_task is not None:
            self._countdown_task.cancel()
            self._countdown_task = None

    def snapshot(self) -> bytes:
        deck = self.engine.deck.cards if self.engine is not None else []
        return snapshot_bytes(deck, self.roster, self.state, phase=self.phase)

    def broadcast_game_info(self) -> None:
        active_color = self.state.active_color if self.state is not None else None
        self._broadcast(create_game_info_event(summarize_players(self.roster), active_color))

    def _check_round_over(self) -> None:
        if self.state is not None and self.state.is_over and self.phase != PHASE_ENDED:
            self.phase = PHASE_ENDED
            logger.info("Session ended")

    def _broadcast(self, event) -> None:
        self.relay.broadcast([p.id for p in self.roster], event)
