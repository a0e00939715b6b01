"""Game constants and card semantics"""

from typing import List

# Card identifiers are positions in the unfiltered 8 x 14 construction.
GROUP_SIZE = 14
GROUP_COUNT = 8
RAW_DECK_SIZE = GROUP_SIZE * GROUP_COUNT  # 112

# Second copy of each colour's zero, removed from the raw construction
DUPLICATE_ZEROS = (56, 70, 84, 98)
DECK_SIZE = RAW_DECK_SIZE - len(DUPLICATE_ZEROS)  # 108

# Colours
RED = 'red'
YELLOW = 'yellow'
GREEN = 'green'
BLUE = 'blue'
BLACK = 'black'
COLORS = [RED, YELLOW, GREEN, BLUE]
COLOR_ALIASES = {'gold': YELLOW}

# Ranks 0-9 are plain numbers, the rest are action ranks
SKIP = 'Skip'
REVERSE = 'Reverse'
DRAW_TWO = 'Draw2'
WILD = 'Wild'
DRAW_FOUR = 'Draw4'
ACTION_RANKS = {10: SKIP, 11: REVERSE, 12: DRAW_TWO}
WILD_RANKS = (WILD, DRAW_FOUR)

DRAW_PENALTY = {DRAW_TWO: 2, DRAW_FOUR: 4}

# Session phases
PHASE_LOBBY = 'lobby'
PHASE_COUNTDOWN = 'countdown'
PHASE_IN_PROGRESS = 'in_progress'
PHASE_ENDED = 'ended'


def create_deck() -> List[int]:
    deck = [card for card in range(RAW_DECK_SIZE) if card not in DUPLICATE_ZEROS]
    return deck


def card_color(card: int) -> str:
    if card % GROUP_SIZE == 13:
        return BLACK
    return COLORS[(card // GROUP_SIZE) % 4]


def card_rank(card: int):
    n = card % GROUP_SIZE
    if n < 10:
        return n
    if n in ACTION_RANKS:
        return ACTION_RANKS[n]
    return DRAW_FOUR if card // GROUP_SIZE >= 4 else WILD


def is_wild(card: int) -> bool:
    return card_color(card) == BLACK


def is_valid_card(card) -> bool:
    if isinstance(card, bool) or not isinstance(card, int):
        return False
    return 0 <= card < RAW_DECK_SIZE and card not in DUPLICATE_ZEROS


def describe_card(card: int) -> str:
    rank = card_rank(card)
    if rank in WILD_RANKS:
        return rank
    return f"{card_color(card)} {rank}"


def normalize_color(name: str) -> str:
    """Map a colour name (or alias) onto one of the four playable colours."""
    if not isinstance(name, str):
        raise ValueError(f"Invalid colour: {name!r}")
    key = name.strip().lower()
    key = COLOR_ALIASES.get(key, key)
    if key not in COLORS:
        raise ValueError(f"Invalid colour: {name!r}")
    return key
