import random
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import EmptyDeck

RED = 'red'
GREEN = 'green'
BLUE = 'blue'
YELLOW = 'yellow'
WILD = 'wild'

# Order matters: deck layout and wild color tie-breaks both follow it
COLORS = (RED, GREEN, BLUE, YELLOW)

NUMBER_KINDS = tuple(str(n) for n in range(10))
SKIP = 'skip'
REVERSE = 'reverse'
DRAW2 = 'draw2'
DISCARD_ALL = 'discard_all'
WILD4 = 'wild4'
WILD_DISCARD_ALL = 'wild_discard_all'

ACTION_KINDS = (SKIP, REVERSE, DRAW2, DISCARD_ALL)
WILD_KINDS = (WILD, WILD4, WILD_DISCARD_ALL)
WILD_COUNTS = {WILD: 4, WILD4: 4, WILD_DISCARD_ALL: 2}


@dataclass(frozen=True)
class Card:
    id: int
    color: str
    kind: str
    number: Optional[int] = None

    @property
    def is_wild(self) -> bool:
        return self.color == WILD

    def to_dict(self):
        return {
            'id': self.id,
            'color': self.color,
            'kind': self.kind,
            'number': self.number,
        }

    def __str__(self):
        if self.is_wild:
            return self.kind.replace('_', ' ')
        return f"{self.color} {self.kind}"


class Deck:
    """Draw pile for a single match. The end of ``cards`` is the top."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.cards: List[Card] = []
        self.reset()

    def reset(self) -> None:
        """Rebuild the full card set in a fixed order with sequential ids."""
        cards = []
        next_id = 0
        for color in COLORS:
            cards.append(Card(next_id, color, '0', 0))
            next_id += 1
            for n in range(1, 10):
                for _ in range(2):
                    cards.append(Card(next_id, color, str(n), n))
                    next_id += 1
            for kind in ACTION_KINDS:
                for _ in range(2):
                    cards.append(Card(next_id, color, kind))
                    next_id += 1
        for kind in WILD_KINDS:
            for _ in range(WILD_COUNTS[kind]):
                cards.append(Card(next_id, WILD, kind))
                next_id += 1
        self.cards = cards

    def shuffle(self) -> None:
        # Fisher-Yates, drawing from the deck's own generator so a seed fixes the order
        cards = self.cards
        for i in range(len(cards) - 1, 0, -1):
            j = self.rng.randint(0, i)
            cards[i], cards[j] = cards[j], cards[i]

    def draw(self) -> Card:
        if not self.cards:
            raise EmptyDeck()
        return self.cards.pop()

    def refill(self, cards: Iterable[Card]) -> None:
        """Put recycled cards back under the pile and reshuffle."""
        self.cards[:0] = list(cards)
        self.shuffle()

    @property
    def count(self) -> int:
        return len(self.cards)

    def __len__(self):
        return len(self.cards)
