"""
State serialization utilities.
"""

from typing import Any, Dict, List, Optional

import orjson

from .models import Player, RoundState


def summarize_players(roster: List[Player]) -> List[Dict[str, Any]]:
    """Public roster summary: hands are reduced to their size."""
    return [
        {"name": player.name, "id": player.id, "hand_size": len(player.hand)}
        for player in roster
    ]


def serialize_round(state: Optional[RoundState]) -> Optional[Dict[str, Any]]:
    """Full (host-only) view of the round state."""
    if state is None:
        return None
    return {
        "discard_top": state.discard_top,
        "turn_index": state.turn_index,
        "direction": state.direction,
        "pending_draw_stack": state.pending_draw_stack,
        "active_color": state.active_color,
        "turn_phase": state.turn_phase.value,
        "last_played_rank": state.last_played_rank,
        "skip_pending": state.skip_pending,
        "buried": list(state.buried),
        "winner_id": state.winner_id,
    }


def snapshot_bytes(deck: List[int], roster: List[Player], state: Optional[RoundState], **extra) -> bytes:
    """
    Canonical byte encoding of the authoritative state.

    Two snapshots compare equal iff deck order, every hand, and every round
    field are equal.
    """
    document = {
        "deck": list(deck),
        "roster": [{"id": p.id, "name": p.name, "hand": list(p.hand)} for p in roster],
        "round": serialize_round(state),
    }
    document.update(extra)
    return orjson.dumps(document, option=orjson.OPT_SORT_KEYS)
