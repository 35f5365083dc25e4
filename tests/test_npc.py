import pytest

from deck_engine.cards import parse_cards
from deck_engine.npc import NPCPolicy, choose_hold


@pytest.mark.parametrize("hand,expected", [
    ("As Ks Qs Js 10s", [0, 1, 2, 3, 4]),
    ("10c 9d 8h 7s 6c", [0, 1, 2, 3, 4]),
    ("8c 3d 8h Ks 2c", [0, 2]),
    ("Jc Jd 4h 4s Ac", [0, 1, 2, 3]),
    ("2h 5h 9h Kh 3c", [0, 1, 2, 3]),
    ("5c 6d 7h 8s Kc", [0, 1, 2, 3]),
    ("Kc Jd 7h 4s 2c", [0, 1]),
    ("9c 7d 5h 4s 2c", []),
])
def test_choose_hold(hand, expected):
    assert choose_hold(parse_cards(hand)) == expected


@pytest.mark.asyncio
async def test_policy_spends_abilities_on_first_decision_only():
    policy = NPCPolicy(abilities=["reroll", "quick_draw"])
    hand = parse_cards("Kc Jd 7h 4s 2c")

    first = await policy({"hand": hand, "redraws_used": 0, "abilities_used": ["reroll"]})
    assert first == {"hold": [0, 1], "abilities": ["quick_draw"]}

    later = await policy({"hand": hand, "redraws_used": 1, "abilities_used": []})
    assert later == {"hold": [0, 1]}
