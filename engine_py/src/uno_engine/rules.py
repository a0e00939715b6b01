"""
Game rule configuration and validation.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .constants import DECK_SIZE


class RuleConfig(BaseModel):
    """Configuration for a hosted session."""

    min_players: int = Field(
        default=2,
        ge=2,
        le=10,
        description="Players needed before the start countdown runs"
    )
    max_players: int = Field(
        default=4,
        ge=2,
        le=10,
        description="Maximum number of players allowed in the room"
    )
    hand_size: int = Field(
        default=7,
        ge=1,
        le=15,
        description="Cards dealt to each player at game start"
    )
    countdown_seconds: int = Field(
        default=3,
        ge=0,
        le=30,
        description="Length of the lobby countdown, one tick per second"
    )
    reshuffle_policy: Literal['rebuild', 'recycle'] = Field(
        default='rebuild',
        description="How an empty deck is refilled: a fresh 108-card deck, or the buried discards"
    )
    end_round_on_empty_hand: bool = Field(
        default=True,
        description="Declare a winner when a player ends their turn with no cards"
    )
    room_prefix: str = Field(
        default='UNO-',
        min_length=1,
        max_length=16,
        description="Namespace tag prepended to room codes to form a peer id"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't fall below minimum."""
        min_players = info.data.get('min_players', 2)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    @field_validator('hand_size')
    @classmethod
    def validate_hand_size(cls, v, info):
        """A full table must be dealable from one deck."""
        max_players = info.data.get('max_players', 4)
        if v * max_players + 1 > DECK_SIZE:
            raise ValueError(f'hand_size ({v}) is too large for {max_players} players')
        return v

    def can_start(self, player_count: int) -> bool:
        return self.min_players <= player_count <= self.max_players


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)
