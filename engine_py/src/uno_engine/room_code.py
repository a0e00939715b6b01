"""Room codes and the peer ids they map to"""

import random
import string
from typing import Optional

ROOM_CODE_LENGTH = 4
ROOM_CODE_ALPHABET = string.ascii_uppercase
# Typed codes may also carry digits
ROOM_CODE_CHARACTERS = ROOM_CODE_ALPHABET + string.digits
DEFAULT_PREFIX = 'UNO-'


def generate_room_code(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(code: str, prefix: str = DEFAULT_PREFIX) -> str:
    """
    Clean up a code typed by a player.

    Accepts lower case, surrounding whitespace and an already prefixed id.

    Raises:
        ValueError: If what remains is not a valid room code
    """
    clean = code.strip().upper()
    if clean.startswith(prefix.upper()):
        clean = clean[len(prefix):]
    if len(clean) != ROOM_CODE_LENGTH or any(c not in ROOM_CODE_CHARACTERS for c in clean):
        raise ValueError(f"Invalid room code: {code!r}")
    return clean


def to_peer_id(code: str, prefix: str = DEFAULT_PREFIX) -> str:
    return prefix + normalize_room_code(code, prefix)

