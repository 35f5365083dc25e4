import pytest

from deck_engine.participant import ParticipantContext
from deck_engine.skills import calculate_skill_modifiers, clamp_skill, difficulty_scale


@pytest.mark.parametrize("skill,reduction,bonus,rerolls", [
    (0, 0, 0, 0),
    (10, 3, 2, 0),
    (50, 18, 13, 1),
    (100, 36, 27, 3),
])
def test_modifiers_at_difficulty_three(skill, reduction, bonus, rerolls):
    mods = calculate_skill_modifiers(skill, 3)
    assert mods.threshold_reduction == reduction
    assert mods.card_bonus == bonus
    assert mods.rerolls_available == rerolls


def test_threshold_reduction_grows_with_skill():
    reductions = [calculate_skill_modifiers(level, 3).threshold_reduction for level in range(0, 101, 10)]
    assert all(b > a for a, b in zip(reductions, reductions[1:]))


@pytest.mark.parametrize("skill,rerolls", [(0, 0), (29, 0), (30, 1), (59, 1), (60, 2), (89, 2), (90, 3), (100, 3)])
def test_rerolls_unlock_every_thirty_points(skill, rerolls):
    assert calculate_skill_modifiers(skill).rerolls_available == rerolls


def test_danger_avoid_chance_is_capped():
    assert calculate_skill_modifiers(0).danger_avoid_chance == 0
    assert calculate_skill_modifiers(50).danger_avoid_chance == pytest.approx(0.35)
    assert calculate_skill_modifiers(71).danger_avoid_chance == pytest.approx(0.497)
    assert calculate_skill_modifiers(72).danger_avoid_chance == 0.5
    assert calculate_skill_modifiers(100).danger_avoid_chance == 0.5


def test_skill_is_clamped():
    assert clamp_skill(-50) == 0
    assert clamp_skill(150) == 100
    assert clamp_skill(42) == 42
    assert calculate_skill_modifiers(-50, 3) == calculate_skill_modifiers(0, 3)
    assert calculate_skill_modifiers(150, 3) == calculate_skill_modifiers(100, 3)


def test_harder_actions_make_skill_matter_more():
    assert difficulty_scale(1) == pytest.approx(0.9)
    assert difficulty_scale(5) == pytest.approx(1.3)
    by_difficulty = [calculate_skill_modifiers(50, d) for d in range(1, 6)]
    for easier, harder in zip(by_difficulty, by_difficulty[1:]):
        assert harder.threshold_reduction >= easier.threshold_reduction
        assert harder.card_bonus >= easier.card_bonus


def test_participant_skill_levels_are_clamped():
    hero = ParticipantContext("hero", skill_levels={"s": -20, "h": 250, "d": 40})
    assert hero.skill_levels == {"s": 0, "h": 100, "d": 40}
    # A negative skill never turns into a negative suit bias
    assert all(m.magnitude > 0 for m in hero.suit_modifiers(0.01))
    assert hero.action_skill == 100
    assert ParticipantContext("novice").action_skill == 0
