"""
Deck management for the resolution engine.

A WeightedDeck is a session-scoped 52-card pool. Each suit carries a draw
weight derived from participant modifiers; cards are drawn without
replacement using sequential weighted sampling over the remaining pool.
"""

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional

from deck_engine.cards import Card, SUITS, Suit, card_str, make_deck
from deck_engine.errors import DeckExhausted
from deck_engine.rng import RandomSource

BASE_SUIT_WEIGHT = 1.0
MIN_SUIT_WEIGHT = 0.01
DEFAULT_SKILL_WEIGHT = 0.01


class Modifier(NamedTuple):
    """Shift in draw probability mass for one suit."""
    suit: Suit
    magnitude: float
    source: str = 'external'


def suit_weights(modifiers: Iterable[Modifier]) -> Dict[Suit, float]:
    """Compute base + sum(magnitude) per suit, floored so no suit becomes undrawable."""
    weights = {s: BASE_SUIT_WEIGHT for s in SUITS}
    for mod in modifiers:
        if mod.suit not in weights:
            raise ValueError(f"Unknown suit in modifier: {mod.suit!r}")
        weights[mod.suit] += mod.magnitude
    return {s: max(w, MIN_SUIT_WEIGHT) for s, w in weights.items()}


class WeightedDeck:
    """Logical 52-card pool with per-participant suit bias."""

    def __init__(self, rng: RandomSource,
                 weights: Optional[Dict[Suit, float]] = None,
                 participant_weights: Optional[Dict[str, Dict[Suit, float]]] = None):
        self.rng = rng
        self.cards: List[Card] = make_deck()
        self.dealt: List[Card] = []
        self.weights: Dict[Suit, float] = weights or {s: BASE_SUIT_WEIGHT for s in SUITS}
        self.participant_weights: Dict[str, Dict[Suit, float]] = participant_weights or {}

    def remaining(self) -> int:
        return len(self.cards)

    def weights_for(self, participant_id: Optional[str] = None) -> Dict[Suit, float]:
        if participant_id is not None and participant_id in self.participant_weights:
            return self.participant_weights[participant_id]
        return self.weights

    def suit_probabilities(self, participant_id: Optional[str] = None) -> Dict[Suit, float]:
        """Probability that the next draw lands on each suit, over the remaining pool."""
        weights = self.weights_for(participant_id)
        mass = {s: 0.0 for s in SUITS}
        for _, s in self.cards:
            mass[s] += weights[s]
        total = sum(mass.values())
        if total == 0:
            return mass
        return {s: m / total for s, m in mass.items()}

    def draw(self, n: int, participant_id: Optional[str] = None) -> List[Card]:
        """Remove and return n cards without replacement."""
        if n < 0:
            raise ValueError(f"Cannot draw a negative number of cards: {n}")
        if n > len(self.cards):
            logging.critical(f"Deck exhausted: requested {n} cards with {len(self.cards)} remaining")
            raise DeckExhausted(n, len(self.cards))

        weights = self.weights_for(participant_id)
        drawn = []
        for _ in range(n):
            idx = self.rng.weighted_index([weights[s] for _, s in self.cards])
            card = self.cards.pop(idx)
            drawn.append(card)
            self.dealt.append(card)
        logging.debug("Drew %s for %s (%d left)", [card_str(c) for c in drawn], participant_id, len(self.cards))
        return drawn


def build_deck(participants, rng: RandomSource, skill_weight: float = DEFAULT_SKILL_WEIGHT) -> WeightedDeck:
    """Build a fresh session deck weighted by the participants' modifiers.

    Each participant also gets its own weight table so that in a contest
    every leg draws with its own bias from the shared pool.
    """
    all_modifiers: List[Modifier] = []
    per_participant: Dict[str, Dict[Suit, float]] = {}
    for participant in participants:
        mods = participant.suit_modifiers(skill_weight)
        all_modifiers.extend(mods)
        per_participant[participant.participant_id] = suit_weights(mods)
    return WeightedDeck(rng, weights=suit_weights(all_modifiers), participant_weights=per_participant)


def draw(deck: WeightedDeck, n: int, participant_id: Optional[str] = None) -> List[Card]:
    """Module-level alias for WeightedDeck.draw."""
    return deck.draw(n, participant_id)
