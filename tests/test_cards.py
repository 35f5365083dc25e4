import pytest

from deck_engine.cards import card_str, make_deck, parse_card, parse_cards, pretty_card, suit_name


def test_make_deck_has_52_unique_cards():
    deck = make_deck()
    assert len(deck) == 52
    assert len(set(deck)) == 52
    assert (14, 's') in deck
    assert (2, 'c') in deck


def test_card_str_and_pretty_card():
    assert card_str((14, 's')) == "As"
    assert card_str((10, 'h')) == "10h"
    assert card_str((2, 'c')) == "2c"
    assert pretty_card((12, 'h')) == "Q♥"


@pytest.mark.parametrize("text,expected", [
    ("As", (14, 's')),
    ("Kd", (13, 'd')),
    ("10h", (10, 'h')),
    ("Tc", (10, 'c')),
    ("2S", (2, 's')),
])
def test_parse_card(text, expected):
    assert parse_card(text) == expected


@pytest.mark.parametrize("text", ["A", "Zz", "1s", "11h", "Ax"])
def test_parse_card_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_card(text)


def test_parse_cards_and_suit_name():
    assert parse_cards("As Ks 10d") == [(14, 's'), (13, 's'), (10, 'd')]
    assert suit_name('d') == "Diamonds"
