import pytest

from deck_engine.deck import Modifier
from deck_engine.outcome import OutcomeSequence, ParticipantResult, decide_winner, initiative_order
from deck_engine.participant import ParticipantContext


def make_result(pid, category_rank=None, tiebreakers=(), forfeited=False, quick_draw=False):
    return ParticipantResult(
        participant_id=pid,
        category_rank=category_rank,
        tiebreakers=tiebreakers,
        forfeited=forfeited,
        quick_draw=quick_draw,
    )


def test_decide_winner():
    assert decide_winner([make_result("a", 1, (9,)), make_result("b", 1, (8,))]) == "a"
    assert decide_winner([make_result("a", 1, (9,)), make_result("b", 2, (3, 2, 4))]) == "b"
    assert decide_winner([make_result("a", 4, (9,)), make_result("b", 4, (9,))]) is None
    assert decide_winner([make_result("a", 9, (14,), forfeited=True), make_result("b", 0, (7,))]) == "b"
    assert decide_winner([make_result("a", forfeited=True), make_result("b", forfeited=True)]) is None


def test_initiative_order():
    results = [make_result("a"), make_result("b", quick_draw=True)]
    assert initiative_order(results) == ("b", "a")
    assert initiative_order([make_result("a"), make_result("b")]) == ("a", "b")


def test_sequence_is_monotonic():
    seq = OutcomeSequence(41)
    assert [seq.next(), seq.next(), seq.next()] == [42, 43, 44]


def test_participant_context_validation():
    with pytest.raises(ValueError):
        ParticipantContext("")
    with pytest.raises(ValueError):
        ParticipantContext("hero", skill_levels={"x": 3})


def test_participant_suit_modifiers():
    hero = ParticipantContext("hero", skill_levels={"s": 20, "h": 0}, modifiers=[Modifier("d", 0.3, "reputation")])
    mods = hero.suit_modifiers(0.01)
    assert Modifier("d", 0.3, "reputation") in mods
    skill = [m for m in mods if m.source == "skill"]
    assert len(skill) == 1
    assert skill[0].suit == "s"
    assert skill[0].magnitude == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_take_decision_supports_sync_and_async_actors():
    hero = ParticipantContext("hero")
    with pytest.raises(NotImplementedError):
        await hero.take_decision({})

    hero.actor = lambda view: {"hold": [1]}
    assert await hero.take_decision({}) == {"hold": [1]}

    async def actor(view):
        return {"hold": [2]}

    hero.actor = actor
    assert await hero.take_decision({}) == {"hold": [2]}
