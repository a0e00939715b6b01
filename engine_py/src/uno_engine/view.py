"""
Peer-side view of the game, built only from what the authority broadcasts.
"""

import logging
from typing import Any, Dict, List, Optional

from .constants import is_wild
from .ws.events import (
    CountDownEvent, ErrorEvent, HaveCardEvent, OutboundEvent, RoundOverEvent,
    SendCardEvent, TurnPlayerEvent, UpdateGameInfoEvent, WildColorSelectedEvent
)

logger = logging.getLogger(__name__)


class PeerView:
    """What one peer knows. The host's own player uses one of these too,
    fed through its loop-back sink."""

    def __init__(self, local_id: str):
        self.local_id = local_id
        self.hand: List[int] = []
        self.discard_top: Optional[int] = None
        self.turn_player: Optional[str] = None
        self.active_color: Optional[str] = None
        self.players: List[Dict[str, Any]] = []
        self.countdown: int = 0
        self.color_picker_active = False
        self.last_error: Optional[str] = None
        self.last_error_code: Optional[str] = None
        self.winner_id: Optional[str] = None

    @property
    def is_my_turn(self) -> bool:
        return self.turn_player == self.local_id

    def apply(self, event: OutboundEvent) -> None:
        if isinstance(event, UpdateGameInfoEvent):
            self.players = [p.model_dump() for p in event.data.players]
            self.active_color = event.data.active_color
        elif isinstance(event, CountDownEvent):
            self.countdown = event.data
        elif isinstance(event, HaveCardEvent):
            self.hand = list(event.data)
        elif isinstance(event, SendCardEvent):
            self.discard_top = event.data
            self.active_color = None
            # Our own wild just landed: we owe a colour
            if is_wild(event.data) and self.is_my_turn:
                self.color_picker_active = True
        elif isinstance(event, TurnPlayerEvent):
            self.turn_player = event.data
            if not self.is_my_turn:
                self.color_picker_active = False
        elif isinstance(event, WildColorSelectedEvent):
            self.color_picker_active = False
            self.active_color = event.data
        elif isinstance(event, ErrorEvent):
            self.last_error = event.data
            self.last_error_code = event.code
            logger.info(f"[{self.local_id}] {event.data}")
        elif isinstance(event, RoundOverEvent):
            self.winner_id = event.data.winner_id
            self.turn_player = None
            self.color_picker_active = False

    def hand_size_of(self, player_id: str) -> Optional[int]:
        for player in self.players:
            if player["id"] == player_id:
                return player["hand_size"]
        return None

    def as_dict(self) -> Dict[str, Any]:
        """Public board plus this peer's own hand."""
        return {
            "players": list(self.players),
            "hand": list(self.hand),
            "discard_top": self.discard_top,
            "turn_player": self.turn_player,
            "active_color": self.active_color,
        }
