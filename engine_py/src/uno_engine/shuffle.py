"""
Deck construction, shuffling and drawing.
"""

import logging
import random
from typing import Callable, List, Optional

from .constants import create_deck

logger = logging.getLogger(__name__)


def shuffle_cards(cards: List[int], rng: random.Random) -> None:
    """
    Shuffle a list of cards in place (Fisher-Yates).

    Args:
        cards: Cards to permute
        rng: Random source; not required to be cryptographic
    """
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]


class Deck:
    """The stock of unseen cards.

    When a draw finds the deck empty, it is refilled before the draw
    completes. With the ``rebuild`` policy the refill is a fresh 108-card
    deck, so cards already in play can reappear. With ``recycle`` the refill
    comes from ``recycle_source`` (the buried discards) and only falls back
    to a rebuild when that is empty too.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        policy: str = 'rebuild',
        recycle_source: Optional[Callable[[], List[int]]] = None
    ):
        self.rng = random.Random(seed)
        self.policy = policy
        self.recycle_source = recycle_source
        self.cards: List[int] = []
        self.rebuilds = 0

    def __len__(self) -> int:
        return len(self.cards)

    def build(self) -> None:
        self.cards = create_deck()

    def shuffle(self) -> None:
        shuffle_cards(self.cards, self.rng)

    def reset(self) -> None:
        """Build a fresh deck and shuffle it."""
        self.build()
        self.shuffle()

    def draw(self) -> int:
        if not self.cards:
            self._refill()
        return self.cards.pop(0)

    def draw_many(self, count: int) -> List[int]:
        return [self.draw() for _ in range(count)]

    def put_back(self, card: int, reshuffle: bool = True) -> None:
        self.cards.append(card)
        if reshuffle:
            self.shuffle()

    def _refill(self) -> None:
        if self.policy == 'recycle' and self.recycle_source is not None:
            recycled = self.recycle_source()
            if recycled:
                logger.info(f"Deck empty, recycling {len(recycled)} buried cards")
                self.cards = list(recycled)
                self.shuffle()
                return
        logger.info("Deck empty, rebuilding a fresh deck")
        self.rebuilds += 1
        self.reset()
