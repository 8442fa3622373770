from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional


class Suit(str, Enum):
    SPADES = "Spades"
    HEARTS = "Hearts"
    DIAMONDS = "Diamonds"
    CLUBS = "Clubs"


SUITS = (Suit.SPADES, Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS)
RANKS = ("2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A")
RANK_VALUES = {rank: idx for idx, rank in enumerate(RANKS, start=2)}


@dataclass(frozen=True)
class Card:
    suit: Suit
    rank: str

    def __post_init__(self) -> None:
        if not isinstance(self.suit, Suit):
            raise ValueError(f"Invalid suit: {self.suit}")
        if self.rank not in RANK_VALUES:
            raise ValueError(f"Invalid rank: {self.rank}")

    @property
    def value(self) -> int:
        return RANK_VALUES[self.rank]

    @property
    def label(self) -> str:
        return f"{self.rank} of {self.suit.value}"

    def to_dict(self) -> Dict[str, object]:
        return {"suit": self.suit.value, "rank": self.rank, "value": self.value}


def build_deck(rng: Optional[random.Random] = None) -> List[Card]:
    rng = rng or random.Random()
    deck = [Card(suit, rank) for suit in SUITS for rank in RANKS]
    rng.shuffle(deck)
    return deck


def deal(deck: List[Card], count: int) -> List[Card]:
    if len(deck) < count:
        raise ValueError("Not enough cards left in deck")
    cards = deck[:count]
    del deck[:count]
    return cards


def parse_card(raw: Mapping[str, object]) -> Card:
    """Build a card from its wire form; ``value`` is ignored if present."""
    suit_raw = raw.get("suit")
    rank_raw = raw.get("rank")
    try:
        suit = Suit(suit_raw)
    except ValueError:
        raise ValueError(f"Invalid suit: {suit_raw}") from None
    if not isinstance(rank_raw, str):
        raise ValueError(f"Invalid rank: {rank_raw}")
    return Card(suit, rank_raw)


def cards_to_dicts(cards: List[Card]) -> List[Dict[str, object]]:
    return [card.to_dict() for card in cards]
