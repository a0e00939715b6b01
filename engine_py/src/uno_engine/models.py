"""Game models and data structures"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

Rank = Union[int, str]  # 0-9, Skip, Reverse, Draw2, Wild, Draw4


class TurnPhase(str, Enum):
    """Where the current turn holder is within their turn."""
    NOT_ACTED = 'not_acted'
    DREW = 'drew'
    PLAYED = 'played'
    AWAITING_COLOR = 'awaiting_color'
    DONE = 'done'


@dataclass
class Player:
    id: str
    name: str
    hand: List[int] = field(default_factory=list)  # card ids

    @property
    def hand_size(self) -> int:
        return len(self.hand)


@dataclass
class RoundState:
    discard_top: int
    turn_index: int = 0
    direction: int = 1  # 1 or -1 (reverse)
    pending_draw_stack: int = 0
    active_color: Optional[str] = None
    turn_phase: TurnPhase = TurnPhase.NOT_ACTED
    last_played_rank: Optional[Rank] = None
    skip_pending: bool = False
    buried: List[int] = field(default_factory=list)  # cards covered by later plays
    winner_id: Optional[str] = None

    @property
    def has_played_this_turn(self) -> bool:
        return self.turn_phase in (TurnPhase.PLAYED, TurnPhase.AWAITING_COLOR)

    @property
    def has_acted_this_turn(self) -> bool:
        return self.has_played_this_turn

    @property
    def color_pending(self) -> bool:
        return self.turn_phase == TurnPhase.AWAITING_COLOR

    @property
    def is_over(self) -> bool:
        return self.turn_phase == TurnPhase.DONE

    def reset_turn(self) -> None:
        self.turn_phase = TurnPhase.NOT_ACTED
        self.last_played_rank = None
        self.skip_pending = False
