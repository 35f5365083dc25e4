"""
Card representation for the resolution engine.
"""

from typing import List, Tuple

# Card representation: tuple (rank:int 2..14, suit:str one of 'cdhs')
Rank = int
Suit = str
Card = Tuple[Rank, Suit]

RANKS = list(range(2, 15))  # 2-14 (where 11=J, 12=Q, 13=K, 14=A)
SUITS = list('cdhs')  # clubs, diamonds, hearts, spades

SUIT_NAMES = {
    'c': 'Clubs',
    'd': 'Diamonds',
    'h': 'Hearts',
    's': 'Spades',
}

SUIT_SYMBOLS = {'s': '♠', 'h': '♥', 'd': '♦', 'c': '♣'}

_FACE_NAMES = {11: 'J', 12: 'Q', 13: 'K', 14: 'A'}
_FACE_RANKS = {name: rank for rank, name in _FACE_NAMES.items()}


def make_deck() -> List[Card]:
    """Create a standard 52-card deck."""
    return [(r, s) for r in RANKS for s in SUITS]


def card_str(card: Card) -> str:
    """Convert a card to its string representation."""
    r, s = card
    return f"{_FACE_NAMES.get(r, r)}{s}"


def pretty_card(card: Card) -> str:
    r, s = card
    return f"{_FACE_NAMES.get(r, r)}{SUIT_SYMBOLS[s]}"


def parse_card(text: str) -> Card:
    """Parse strings like 'As', '10h' or 'Tc' into a card tuple."""
    text = text.strip()
    if len(text) < 2:
        raise ValueError(f"Invalid card: {text!r}")
    rank_part, suit = text[:-1].upper(), text[-1].lower()
    if suit not in SUITS:
        raise ValueError(f"Invalid suit in card: {text!r}")
    if rank_part == 'T':
        rank = 10
    elif rank_part in _FACE_RANKS:
        rank = _FACE_RANKS[rank_part]
    elif rank_part.isdigit() and 2 <= int(rank_part) <= 10:
        rank = int(rank_part)
    else:
        raise ValueError(f"Invalid rank in card: {text!r}")
    return (rank, suit)


def parse_cards(text: str) -> List[Card]:
    """Parse a space separated list of cards."""
    return [parse_card(part) for part in text.split()]


def suit_name(suit: Suit) -> str:
    return SUIT_NAMES[suit]
