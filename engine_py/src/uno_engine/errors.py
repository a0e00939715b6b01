# engine_py/src/uno_engine/errors.py

from typing import NoReturn


class GameError(Exception):
    """A rejected action. ``code`` is sent to the submitter with ``message``."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Turn and card errors
NOT_YOUR_TURN = "NOT_YOUR_TURN"
NOT_IN_HAND = "NOT_IN_HAND"
ILLEGAL_PLAY = "ILLEGAL_PLAY"
MULTI_PLAY_MISMATCH = "MULTI_PLAY_MISMATCH"
ALREADY_PLAYED = "ALREADY_PLAYED"
NOT_ACTED = "NOT_ACTED"

# Wild colour errors
COLOR_PENDING = "COLOR_PENDING"
NO_COLOR_PENDING = "NO_COLOR_PENDING"
INVALID_COLOR = "INVALID_COLOR"

# Session errors
ROOM_FULL = "ROOM_FULL"
NOT_IN_LOBBY = "NOT_IN_LOBBY"
ALREADY_JOINED = "ALREADY_JOINED"
GAME_NOT_STARTED = "GAME_NOT_STARTED"
ROUND_OVER = "ROUND_OVER"

# Transport errors
INVALID_EVENT = "INVALID_EVENT"
INTERNAL_ERROR = "INTERNAL_ERROR"


def raise_error(code: str, message: str) -> NoReturn:
    raise GameError(code, message)
