"""FastAPI application for a hosted UNO room"""

import logging
import os
import uuid

from fastapi import FastAPI

from .relay import create_host
from .room_code import generate_room_code, normalize_room_code, to_peer_id
from .rules import create_rules
from .ws.server import create_app

logger = logging.getLogger(__name__)


def create_app_from_env() -> FastAPI:
    """Build a host from environment settings (used as a uvicorn factory)."""
    rules = create_rules(max_players=int(os.getenv("MAX_PLAYERS", "4")))

    room_code = os.getenv("ROOM_CODE")
    room_code = normalize_room_code(room_code, rules.room_prefix) if room_code else generate_room_code()

    host_id = os.getenv("HOST_ID") or str(uuid.uuid4())[:8]
    host_name = os.getenv("HOST_NAME", "Host")

    ctx = create_host(host_id, host_name, rules)
    logger.info(f"Hosting room {room_code} as {to_peer_id(room_code, rules.room_prefix)}")
    return create_app(ctx, room_code)
