"""
Simple NPC hold policy.

Naive rules: keep any made hand worth keeping, chase four-card flushes
and straights, otherwise keep face cards and aces.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from deck_engine.cards import Card
from deck_engine.hand_evaluation import HAND_RANKS, evaluate_5cards


def choose_hold(hand: Sequence[Card]) -> List[int]:
    """Pick the card positions to keep."""
    value = evaluate_5cards(hand)

    # Straights and better are complete hands
    if value.category >= HAND_RANKS['straight']:
        return list(range(len(hand)))

    ranks = [r for r, _ in hand]
    counts: Dict[int, int] = {}
    for r in ranks:
        counts[r] = counts.get(r, 0) + 1

    if value.category >= HAND_RANKS['pair']:
        return [i for i, r in enumerate(ranks) if counts[r] >= 2]

    # Four to a flush
    suits = [s for _, s in hand]
    for suit in set(suits):
        if suits.count(suit) == 4:
            return [i for i, s in enumerate(suits) if s == suit]

    # Four to an open straight
    unique = sorted(set(ranks))
    for i in range(len(unique) - 3):
        window = unique[i:i + 4]
        if window[-1] - window[0] == 3:
            keep = set(window)
            held, seen = [], set()
            for idx, r in enumerate(ranks):
                if r in keep and r not in seen:
                    held.append(idx)
                    seen.add(r)
            return held

    return [i for i, r in enumerate(ranks) if r >= 11]


class NPCPolicy:
    """Actor callable for non-player participants."""

    def __init__(self, abilities: Optional[Sequence[str]] = None, thinking_delay: float = 0.0):
        self.abilities = list(abilities or [])
        self.thinking_delay = thinking_delay

    async def __call__(self, view: Dict[str, Any]) -> Dict[str, Any]:
        if self.thinking_delay:
            await asyncio.sleep(self.thinking_delay)
        action: Dict[str, Any] = {'hold': choose_hold(view['hand'])}
        # Only spend abilities on the first decision of the session
        if self.abilities and view.get('redraws_used', 0) == 0:
            action['abilities'] = [a for a in self.abilities if a not in view.get('abilities_used', [])]
        return action
