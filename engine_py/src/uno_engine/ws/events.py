"""
Relay event models and validation.

Every frame on the wire is an envelope ``{"type": ..., "data": ...}``.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..constants import is_valid_card


class EventType(str, Enum):
    """Inbound (peer to authority) event types."""
    JOIN_ROOM = "joinRoom"
    DRAW_CARD = "drawCard"
    PLAY_CARD = "playCard"
    END_TURN = "endTurn"
    SELECT_WILD_COLOR = "selectWildColor"


class OutboundEventType(str, Enum):
    """Outbound (authority to peer) event types."""
    HAVE_CARD = "haveCard"
    SEND_CARD = "sendCard"
    TURN_PLAYER = "turnPlayer"
    WILD_COLOR_SELECTED = "wildColorSelected"
    UPDATE_GAME_INFO = "updateGameInfo"
    COUNT_DOWN = "countDown"
    ERROR = "error"
    ROUND_OVER = "roundOver"


class Payload(BaseModel):
    """Payload objects use camelCase keys on the wire."""
    model_config = ConfigDict(populate_by_name=True)


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class JoinRoomData(Payload):
    player_name: str = Field(..., alias="playerName", min_length=1, max_length=30)


class JoinRoomEvent(BaseEvent):
    """Join room event."""
    type: EventType = EventType.JOIN_ROOM
    data: JoinRoomData


class DrawCardEvent(BaseEvent):
    """Draw one card event."""
    type: EventType = EventType.DRAW_CARD
    data: Optional[Any] = None


class PlayCardEvent(BaseEvent):
    """Play card event."""
    type: EventType = EventType.PLAY_CARD
    data: int

    @field_validator('data', mode='before')
    @classmethod
    def validate_card(cls, v):
        # Clients may send the id as a string ("Number(data)" on the other side)
        if isinstance(v, str) and v.strip().isdigit():
            v = int(v)
        if not is_valid_card(v):
            raise ValueError(f"Unknown card: {v!r}")
        return v


class EndTurnEvent(BaseEvent):
    """End turn event."""
    type: EventType = EventType.END_TURN
    data: Optional[Any] = None


class SelectWildColorEvent(BaseEvent):
    """Wild colour selection event."""
    type: EventType = EventType.SELECT_WILD_COLOR
    data: str = Field(..., min_length=1, max_length=16)


# Union type for all inbound events
InboundEvent = Union[
    JoinRoomEvent,
    DrawCardEvent,
    PlayCardEvent,
    EndTurnEvent,
    SelectWildColorEvent
]


# Outbound event models
class OutboundEvent(BaseModel):
    type: OutboundEventType

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)


class HaveCardEvent(OutboundEvent):
    """Private: replace the recipient's hand."""
    type: OutboundEventType = OutboundEventType.HAVE_CARD
    data: List[int]


class SendCardEvent(OutboundEvent):
    """Public: new discard top."""
    type: OutboundEventType = OutboundEventType.SEND_CARD
    data: int


class TurnPlayerEvent(OutboundEvent):
    """Public: whose turn it is."""
    type: OutboundEventType = OutboundEventType.TURN_PLAYER
    data: str


class WildColorSelectedEvent(OutboundEvent):
    """Public: board colour chosen for a wild."""
    type: OutboundEventType = OutboundEventType.WILD_COLOR_SELECTED
    data: str


class PlayerSummary(Payload):
    name: str
    id: str
    hand_size: int = Field(..., alias="handSize")


class GameInfo(Payload):
    players: List[PlayerSummary]
    active_color: Optional[str] = Field(None, alias="activeColor")


class UpdateGameInfoEvent(OutboundEvent):
    """Public: roster summary and active colour."""
    type: OutboundEventType = OutboundEventType.UPDATE_GAME_INFO
    data: GameInfo


class CountDownEvent(OutboundEvent):
    """Public: lobby countdown, 0 clears it."""
    type: OutboundEventType = OutboundEventType.COUNT_DOWN
    data: int = Field(..., ge=0)


class ErrorEvent(OutboundEvent):
    """Private: a rejected action."""
    type: OutboundEventType = OutboundEventType.ERROR
    data: str
    code: Optional[str] = None


class RoundOverData(Payload):
    winner_id: str = Field(..., alias="winnerId")
    winner_name: str = Field(..., alias="winnerName")


class RoundOverEvent(OutboundEvent):
    """Public: a player emptied their hand, or was the last one seated."""
    type: OutboundEventType = OutboundEventType.ROUND_OVER
    data: RoundOverData


OUTBOUND_MODELS = {
    OutboundEventType.HAVE_CARD: HaveCardEvent,
    OutboundEventType.SEND_CARD: SendCardEvent,
    OutboundEventType.TURN_PLAYER: TurnPlayerEvent,
    OutboundEventType.WILD_COLOR_SELECTED: WildColorSelectedEvent,
    OutboundEventType.UPDATE_GAME_INFO: UpdateGameInfoEvent,
    OutboundEventType.COUNT_DOWN: CountDownEvent,
    OutboundEventType.ERROR: ErrorEvent,
    OutboundEventType.ROUND_OVER: RoundOverEvent,
}

INBOUND_MODELS = {
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.DRAW_CARD: DrawCardEvent,
    EventType.PLAY_CARD: PlayCardEvent,
    EventType.END_TURN: EndTurnEvent,
    EventType.SELECT_WILD_COLOR: SelectWildColorEvent,
}


def _decode(raw: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValueError(f"Malformed frame: {e}")
    if not isinstance(data, dict):
        raise ValueError("Frame must be a JSON object")
    return data


def parse_inbound_event(raw: Union[str, bytes, Dict[str, Any]]) -> InboundEvent:
    """
    Parse a raw frame into the matching inbound event model.

    Args:
        raw: JSON text, bytes, or an already decoded envelope

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    data = _decode(raw)
    event_type = data.get("type")

    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    try:
        return INBOUND_MODELS[event_type](**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e.errors()[0]['msg']}")


def parse_outbound_event(raw: Union[str, bytes, Dict[str, Any]]) -> OutboundEvent:
    """Parse a frame received from the authority (the peer side)."""
    data = _decode(raw)
    try:
        event_type = OutboundEventType(data.get("type"))
    except ValueError:
        raise ValueError(f"Invalid event type: {data.get('type')}")

    try:
        return OUTBOUND_MODELS[event_type](**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e.errors()[0]['msg']}")


def encode_event(event: BaseModel) -> bytes:
    """Serialise an event envelope for the wire."""
    return orjson.dumps(event.model_dump(mode="json", by_alias=True))


def create_error_event(message: str, code: Optional[str] = None) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(data=message, code=code)


def create_game_info_event(players: List[Dict[str, Any]], active_color: Optional[str]) -> UpdateGameInfoEvent:
    """Create a roster/HUD refresh event."""
    return UpdateGameInfoEvent(
        data=GameInfo(
            players=[PlayerSummary(**p) for p in players],
            active_color=active_color
        )
    )


def create_round_over_event(winner_id: str, winner_name: str) -> RoundOverEvent:
    """Create a round over event."""
    return RoundOverEvent(data=RoundOverData(winner_id=winner_id, winner_name=winner_name))
