from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .cards import Card, Suit


@dataclass(frozen=True)
class Play:
    seat: int
    card: Card

    def to_dict(self) -> Dict[str, object]:
        return {"seat": self.seat, "card": self.card.to_dict()}


def evaluate(trump: Optional[Suit], plays: Sequence[Play]) -> Play:
    """Return the play currently winning the trick.

    A challenger takes over only by trumping a non-trump winner or by
    following the winner's suit with a higher card. ``trump=None`` is a
    no-trump round.
    """
    if not plays:
        raise ValueError("Cannot evaluate an empty trick")
    winner = plays[0]
    for play in plays[1:]:
        if winner.card.suit != trump and play.card.suit == trump:
            winner = play
        elif play.card.suit == winner.card.suit and play.card.value > winner.card.value:
            winner = play
    return winner


def legal_cards(hand: Sequence[Card], lead_suit: Optional[Suit]) -> List[Card]:
    if lead_suit is None:
        return list(hand)
    matching = [card for card in hand if card.suit == lead_suit]
    return matching if matching else list(hand)
