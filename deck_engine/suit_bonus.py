"""
Suit bonus calculation.

Every suit feeds an independent effect channel; all four channels are
always computed, so one hand can score on several suits at once.
"""

from typing import Dict, List, Optional, Sequence

from deck_engine.cards import Card, SUITS, Suit
from deck_engine.effects import Effect, SUIT_CHANNELS

# Spades -> crit chance, Hearts -> heal amount, Diamonds -> reward multiplier, Clubs -> mitigation
PER_CARD_BONUS: Dict[Suit, float] = {
    's': 0.05,
    'h': 5.0,
    'd': 0.1,
    'c': 0.08,
}


def suit_counts(hand: Sequence[Card]) -> Dict[Suit, int]:
    counts = {s: 0 for s in SUITS}
    for _, s in hand:
        counts[s] += 1
    return counts


def calculate_suit_bonus(hand: Sequence[Card], per_card: Optional[Dict[Suit, float]] = None) -> Dict[Suit, float]:
    """Return suit -> effect value, where effect = count * per-card bonus."""
    per_card = per_card or PER_CARD_BONUS
    counts = suit_counts(hand)
    return {s: counts[s] * per_card[s] for s in SUITS}


def suit_effects(hand: Sequence[Card], participant_id: str,
                 per_card: Optional[Dict[Suit, float]] = None) -> List[Effect]:
    """Wrap the per-suit values as tagged effects for the outcome resolver."""
    counts = suit_counts(hand)
    bonus = calculate_suit_bonus(hand, per_card)
    return [
        Effect(SUIT_CHANNELS[s], bonus[s], participant_id, f'suit:{s}', {'count': counts[s]})
        for s in SUITS
    ]
