"""
Wire events and the WebSocket transport for a hosted game.
"""

from .events import encode_event, parse_inbound_event, parse_outbound_event

__all__ = ["encode_event", "parse_inbound_event", "parse_outbound_event"]
