"""
Hand evaluation for the resolution engine.

Ranks a 5-card hand into one of the ten poker categories, produces
tie-breakers for contests and maps each category to its multiplier.
"""

from typing import Dict, List, NamedTuple, Sequence, Tuple

from deck_engine.cards import Card


# Hand ranking constants
HAND_RANKS = {
    'highcard': 0,
    'pair': 1,
    'two_pair': 2,
    'trips': 3,
    'straight': 4,
    'flush': 5,
    'fullhouse': 6,
    'quads': 7,
    'straight_flush': 8,
    'royal_flush': 9,
}

CATEGORY_NAMES = {
    HAND_RANKS['highcard']: 'High Card',
    HAND_RANKS['pair']: 'Pair',
    HAND_RANKS['two_pair']: 'Two Pair',
    HAND_RANKS['trips']: 'Three of a Kind',
    HAND_RANKS['straight']: 'Straight',
    HAND_RANKS['flush']: 'Flush',
    HAND_RANKS['fullhouse']: 'Full House',
    HAND_RANKS['quads']: 'Four of a Kind',
    HAND_RANKS['straight_flush']: 'Straight Flush',
    HAND_RANKS['royal_flush']: 'Royal Flush',
}

MULTIPLIERS: Dict[int, float] = {
    HAND_RANKS['highcard']: 1.0,
    HAND_RANKS['pair']: 1.25,
    HAND_RANKS['two_pair']: 1.5,
    HAND_RANKS['trips']: 1.75,
    HAND_RANKS['straight']: 2.0,
    HAND_RANKS['flush']: 2.25,
    HAND_RANKS['fullhouse']: 2.5,
    HAND_RANKS['quads']: 3.0,
    HAND_RANKS['straight_flush']: 4.0,
    HAND_RANKS['royal_flush']: 5.0,
}

HAND_SIZE = 5


class HandValue(NamedTuple):
    """Evaluated hand. Higher tuple sorts as better hand."""
    category: int
    tiebreakers: Tuple[int, ...]

    @property
    def name(self) -> str:
        return CATEGORY_NAMES[self.category]

    @property
    def multiplier(self) -> float:
        return MULTIPLIERS[self.category]


def _is_straight(ranks: List[int]) -> Tuple[bool, List[int]]:
    """Check if ranks form a straight. Returns (is_straight, [high_card])."""
    # ranks sorted desc, unique
    rset = sorted(set(ranks), reverse=True)
    # Ace also plays low: A-2-3-4-5 is a 5-high straight
    if 14 in rset:
        rset.append(1)

    consec = 1
    best_high = None
    for i in range(len(rset) - 1):
        if rset[i] - 1 == rset[i + 1]:
            consec += 1
            if consec >= 5 and best_high is None:
                best_high = rset[i - 3]
        else:
            consec = 1
    if best_high is None:
        return False, []
    return True, [best_high]


def evaluate_5cards(cards: Sequence[Card]) -> HandValue:
    """Evaluate exactly 5 cards and return (category, tiebreaker ranks)."""
    if len(cards) != HAND_SIZE:
        raise ValueError(f"Hand must contain exactly {HAND_SIZE} cards, got {len(cards)}")
    if len(set(cards)) != HAND_SIZE:
        raise ValueError("Hand contains duplicate cards")

    ranks = sorted([r for r, _ in cards], reverse=True)
    suits = [s for _, s in cards]

    # counts
    counts: Dict[int, int] = {}
    for r in ranks:
        counts[r] = counts.get(r, 0) + 1
    counts_items = sorted(((cnt, r) for r, cnt in counts.items()), reverse=True)

    is_flush = len(set(suits)) == 1
    is_str, str_high = _is_straight(ranks)

    if is_flush and is_str:
        if str_high[0] == 14:
            return HandValue(HAND_RANKS['royal_flush'], tuple(str_high))
        return HandValue(HAND_RANKS['straight_flush'], tuple(str_high))

    # Quads
    if counts_items[0][0] == 4:
        quad_rank = counts_items[0][1]
        kicker = max(r for r in ranks if r != quad_rank)
        return HandValue(HAND_RANKS['quads'], (quad_rank, kicker))

    # Full house
    if counts_items[0][0] == 3 and counts_items[1][0] == 2:
        return HandValue(HAND_RANKS['fullhouse'], (counts_items[0][1], counts_items[1][1]))

    if is_flush:
        return HandValue(HAND_RANKS['flush'], tuple(ranks))

    if is_str:
        return HandValue(HAND_RANKS['straight'], tuple(str_high))

    if counts_items[0][0] == 3:
        trips = counts_items[0][1]
        kickers = [r for r in ranks if r != trips][:2]
        return HandValue(HAND_RANKS['trips'], tuple([trips] + kickers))

    if counts_items[0][0] == 2 and counts_items[1][0] == 2:
        high_pair = max(counts_items[0][1], counts_items[1][1])
        low_pair = min(counts_items[0][1], counts_items[1][1])
        kicker = max(r for r in ranks if r != high_pair and r != low_pair)
        return HandValue(HAND_RANKS['two_pair'], (high_pair, low_pair, kicker))

    if counts_items[0][0] == 2:
        pair = counts_items[0][1]
        kickers = [r for r in ranks if r != pair][:3]
        return HandValue(HAND_RANKS['pair'], tuple([pair] + kickers))

    return HandValue(HAND_RANKS['highcard'], tuple(ranks))


def compare_hands(first: Sequence[Card], second: Sequence[Card]) -> int:
    """Return 1 if first wins, -1 if second wins, 0 on an exact tie."""
    a = evaluate_5cards(first)
    b = evaluate_5cards(second)
    if a > b:
        return 1
    if a < b:
        return -1
    return 0


def hand_description(hand_rank: int, tiebreakers: Sequence[int]) -> str:
    """Convert hand evaluation result to human-readable description."""

    def rank_name(r: int) -> str:
        names = {11: 'Jack', 12: 'Queen', 13: 'King', 14: 'Ace'}
        return names.get(r, str(r))

    def rank_name_plural(r: int) -> str:
        names = {11: 'Jacks', 12: 'Queens', 13: 'Kings', 14: 'Aces'}
        return names.get(r, f"{r}s")

    if hand_rank == HAND_RANKS['royal_flush']:
        return "Royal Flush"

    elif hand_rank == HAND_RANKS['straight_flush']:
        if tiebreakers[0] == 5:
            return "Straight Flush, 5 high (Steel Wheel)"
        return f"Straight Flush, {rank_name(tiebreakers[0])} high"

    elif hand_rank == HAND_RANKS['quads']:
        return f"Four of a Kind, {rank_name_plural(tiebreakers[0])}"

    elif hand_rank == HAND_RANKS['fullhouse']:
        return f"Full House, {rank_name_plural(tiebreakers[0])} over {rank_name_plural(tiebreakers[1])}"

    elif hand_rank == HAND_RANKS['flush']:
        return f"Flush, {rank_name(tiebreakers[0])} high"

    elif hand_rank == HAND_RANKS['straight']:
        if tiebreakers[0] == 5:  # Wheel (A-2-3-4-5)
            return "Straight, 5 high (Wheel)"
        return f"Straight, {rank_name(tiebreakers[0])} high"

    elif hand_rank == HAND_RANKS['trips']:
        return f"Three of a Kind, {rank_name_plural(tiebreakers[0])}"

    elif hand_rank == HAND_RANKS['two_pair']:
        return f"Two Pair, {rank_name_plural(tiebreakers[0])} and {rank_name_plural(tiebreakers[1])}"

    elif hand_rank == HAND_RANKS['pair']:
        return f"Pair of {rank_name_plural(tiebreakers[0])}"

    else:  # high card
        return f"High Card, {rank_name(tiebreakers[0])}"
