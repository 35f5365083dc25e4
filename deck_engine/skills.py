"""
Skill-driven modifiers.

Skill levels live on a 0-100 scale. Beyond biasing the deck toward a
suit, the skill relevant to an action lowers the success threshold and
earns a flat card bonus, both scaled by the action's difficulty (1-5).
"""

import math
from typing import NamedTuple

MIN_SKILL = 0
MAX_SKILL = 100
DEFAULT_DIFFICULTY = 3

# One extra redraw per this many skill points
SKILL_PER_REROLL = 30
DANGER_AVOID_PER_SKILL = 0.007
DANGER_AVOID_CAP = 0.5


class SkillModifiers(NamedTuple):
    threshold_reduction: int
    card_bonus: int
    rerolls_available: int
    danger_avoid_chance: float


def clamp_skill(level) -> int:
    return int(max(MIN_SKILL, min(MAX_SKILL, level)))


def difficulty_scale(difficulty: int) -> float:
    # Harder actions make skill matter more: 0.9 at difficulty 1, 1.3 at 5
    return 0.8 + difficulty * 0.1


def calculate_skill_modifiers(skill: int, difficulty: int = DEFAULT_DIFFICULTY) -> SkillModifiers:
    """Modifiers earned by a skill level at a given difficulty.

    The raw power is mostly linear with a small exponential tail so the
    top of the range still rewards training.
    """
    skill = clamp_skill(skill)
    power = skill * 0.75 + (skill ** 1.1) * 0.05
    scale = difficulty_scale(difficulty)
    return SkillModifiers(
        threshold_reduction=math.floor(power * 0.4 * scale),
        card_bonus=math.floor(power * 0.3 * scale),
        rerolls_available=skill // SKILL_PER_REROLL,
        danger_avoid_chance=min(DANGER_AVOID_CAP, skill * DANGER_AVOID_PER_SKILL),
    )
