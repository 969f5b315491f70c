from typing import List, Optional

from .cards import COLORS, WILD_KINDS, Card, Deck
from .errors import EmptyDeck, InvalidIndex


class Player:
    def __init__(self, name: str, is_computer: bool = False):
        self.name = name
        self.is_computer = is_computer
        self.hand: List[Card] = []

    def draw(self, deck: Deck, count: int = 1) -> List[Card]:
        """Pull up to ``count`` cards; a short deck just yields fewer."""
        drawn = []
        for _ in range(count):
            try:
                card = deck.draw()
            except EmptyDeck:
                break
            self.hand.append(card)
            drawn.append(card)
        return drawn

    def card_at(self, index: int) -> Card:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.hand):
            raise InvalidIndex(f"No card at position {index}")
        return self.hand[index]

    def play(self, index: int) -> Card:
        self.card_at(index)
        return self.hand.pop(index)

    def discard_color(self, color: str) -> List[Card]:
        removed = [c for c in self.hand if c.color == color]
        self.hand = [c for c in self.hand if c.color != color]
        return removed

    def find_playable_card(self, top_card: Card, current_color: str) -> Optional[int]:
        """Computer strategy: color match, then kind match, then any wild."""
        for idx, card in enumerate(self.hand):
            if card.color == current_color:
                return idx
        for idx, card in enumerate(self.hand):
            if not card.is_wild and card.kind == top_card.kind:
                return idx
        for idx, card in enumerate(self.hand):
            if card.kind in WILD_KINDS:
                return idx
        return None

    def choose_wild_color(self) -> str:
        counts = {color: 0 for color in COLORS}
        for card in self.hand:
            if not card.is_wild:
                counts[card.color] += 1
        best = COLORS[0]
        for color in COLORS[1:]:
            if counts[color] > counts[best]:
                best = color
        return best

    def to_dict(self):
        return {
            'name': self.name,
            'hand_size': len(self.hand),
            'is_computer': self.is_computer,
            'hand': [c.to_dict() for c in self.hand],
        }

    def __repr__(self):
        return f"<Player {self.name!r} cards={len(self.hand)}{' bot' if self.is_computer else ''}>"
