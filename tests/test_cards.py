import random

import pytest

from judgment.cards import RANK_VALUES, SUITS, Card, Suit, build_deck, deal, parse_card


def test_build_deck_has_fifty_two_unique_cards():
    deck = build_deck(random.Random(3))
    assert len(deck) == 52
    assert len(set(deck)) == 52
    for suit in SUITS:
        assert sum(1 for card in deck if card.suit == suit) == 13


def test_build_deck_is_reproducible_for_a_seeded_rng():
    assert build_deck(random.Random(99)) == build_deck(random.Random(99))
    assert build_deck(random.Random(1)) != build_deck(random.Random(2))


def test_card_values_run_from_two_to_ace():
    assert Card(Suit.CLUBS, "2").value == 2
    assert Card(Suit.CLUBS, "10").value == 10
    assert Card(Suit.CLUBS, "J").value == 11
    assert Card(Suit.CLUBS, "A").value == 14
    assert sorted(RANK_VALUES.values()) == list(range(2, 15))


def test_card_validation_rejects_invalid_fields():
    with pytest.raises(ValueError, match="Invalid rank"):
        Card(Suit.HEARTS, "1")
    with pytest.raises(ValueError, match="Invalid suit"):
        Card("Hearts", "A")  # type: ignore[arg-type]


def test_parse_card_reads_wire_form_and_ignores_value():
    card = parse_card({"suit": "Diamonds", "rank": "Q", "value": 2})
    assert card == Card(Suit.DIAMONDS, "Q")
    assert card.to_dict() == {"suit": "Diamonds", "rank": "Q", "value": 12}


def test_parse_card_rejects_unknown_suit():
    with pytest.raises(ValueError, match="Invalid suit"):
        parse_card({"suit": "Stars", "rank": "Q"})
    with pytest.raises(ValueError, match="Invalid rank"):
        parse_card({"suit": "Clubs", "rank": 5})


def test_deal_raises_when_deck_exhausted():
    deck = [Card(Suit.HEARTS, "A"), Card(Suit.DIAMONDS, "K")]
    assert deal(deck, 2) == [Card(Suit.HEARTS, "A"), Card(Suit.DIAMONDS, "K")]
    assert deck == []
    with pytest.raises(ValueError, match="Not enough cards"):
        deal(deck, 1)
