"""
Special abilities that bend the draw/redraw/ordering rules.

Cooldowns are tracked per participant in an ability store (shared across
sessions); single-use is tracked per session on the participant's hand
pipeline.
"""

import logging
import time
from typing import Any, Callable, Dict, FrozenSet, List, NamedTuple, Optional, Sequence

from deck_engine.cards import Card
from deck_engine.effects import Effect, EffectKind
from deck_engine.errors import (
    AbilityAlreadyUsed,
    AbilityError,
    AbilityInvalidContext,
    AbilityLocked,
    AbilityOnCooldown,
    WrongPhase,
)

REROLL = 'reroll'
PEEK = 'peek'
QUICK_DRAW = 'quick_draw'
DEADLY_AIM = 'deadly_aim'

DECISION = 'decision'
RESOLUTION = 'resolution'


class AbilityDefinition(NamedTuple):
    ability_id: str
    name: str
    unlock_level: int
    cooldown: float
    phases: FrozenSet[str]
    effect: EffectKind


ABILITIES: Dict[str, AbilityDefinition] = {
    REROLL: AbilityDefinition(REROLL, 'Reroll', 30, 300.0, frozenset({DECISION}), EffectKind.REROLL_GRANT),
    PEEK: AbilityDefinition(PEEK, 'Peek', 50, 600.0, frozenset({DECISION}), EffectKind.REVEAL_GRANT),
    QUICK_DRAW: AbilityDefinition(QUICK_DRAW, 'Quick Draw', 60, 300.0,
                                  frozenset({DECISION, RESOLUTION}), EffectKind.ORDER_OVERRIDE),
    DEADLY_AIM: AbilityDefinition(DEADLY_AIM, 'Deadly Aim', 75, 900.0,
                                  frozenset({DECISION, RESOLUTION}), EffectKind.GUARANTEED_CRIT),
}


class AbilityResult(NamedTuple):
    ability: str
    participant_id: str
    effect: Effect
    cooldown_until: float
    revealed: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'ability': self.ability,
            'participant_id': self.participant_id,
            'effect': self.effect.to_dict(),
            'cooldown_until': self.cooldown_until,
        }
        if self.revealed is not None:
            data['revealed'] = self.revealed
        return data


def unlocked_abilities(participant) -> List[str]:
    """Abilities the participant can use at its current level."""
    return [a.ability_id for a in ABILITIES.values() if participant.has_unlocked(a.ability_id, a.unlock_level)]


class AbilityEngine:
    """Gate, trigger and cool down abilities."""

    def __init__(self, store, cooldowns: Optional[Dict[str, float]] = None,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock
        self.cooldowns = {a.ability_id: a.cooldown for a in ABILITIES.values()}
        if cooldowns:
            self.cooldowns.update(cooldowns)

    def remaining_cooldown(self, participant_id: str, ability: str) -> float:
        return self.store.remaining(participant_id, ability, self.clock(), self.cooldowns[ability])

    def invoke(self, session, participant_id: str, ability: str) -> AbilityResult:
        definition = ABILITIES.get(ability)
        if definition is None:
            raise AbilityError(f"Unknown ability: {ability}", ability)

        leg = session.leg(participant_id)
        phase = session.phase.value
        if phase not in definition.phases:
            raise WrongPhase(f"{definition.name} cannot be used during {phase}", phase)

        if not leg.participant.has_unlocked(ability, definition.unlock_level):
            raise AbilityLocked(
                f"{definition.name} unlocks at level {definition.unlock_level} "
                f"(participant is level {leg.participant.level})", ability)

        opponent = None
        if ability == PEEK:
            opponent = session.opponent_of(participant_id)
            if opponent is None:
                raise AbilityInvalidContext("Peek needs an opponent hand; this session has a single participant", ability)
            if leg.committed:
                raise WrongPhase("Peek must be used before your decision is committed", phase)
        elif ability == REROLL and leg.forfeited:
            raise AbilityInvalidContext("Cannot reroll a forfeited hand", ability)

        if ability in leg.abilities_used:
            raise AbilityAlreadyUsed(f"{definition.name} was already used this session", ability)

        now = self.clock()
        cooldown = self.cooldowns[ability]
        accepted, remaining = self.store.try_acquire(participant_id, ability, now, cooldown)
        if not accepted:
            raise AbilityOnCooldown(
                f"{definition.name} on cooldown for {remaining:.1f} more seconds", ability, remaining)

        leg.abilities_used.add(ability)
        revealed = None

        if ability == REROLL:
            leg.cycles_allowed += 1
            effect = Effect(EffectKind.REROLL_GRANT, 1, participant_id, ability)
        elif ability == PEEK:
            revealed = {
                'participant_id': opponent.participant.participant_id,
                'hand': list(opponent.hand),
                'hold': list(opponent.pending_hold) if opponent.committed else None,
                'committed': opponent.committed,
            }
            session.reveals.append({'viewer': participant_id, **revealed})
            effect = Effect(EffectKind.REVEAL_GRANT, 1, participant_id, ability,
                            {'target': opponent.participant.participant_id})
        elif ability == QUICK_DRAW:
            leg.quick_draw = True
            effect = Effect(EffectKind.ORDER_OVERRIDE, 1, participant_id, ability)
        else:
            # Deadly Aim persists across sessions until a qualifying resolution consumes it
            self.store.arm(participant_id, DEADLY_AIM)
            effect = Effect(EffectKind.GUARANTEED_CRIT, 1.0, participant_id, ability, {'armed': True})

        session.ability_log.append({
            'ability': ability,
            'participant_id': participant_id,
            'phase': phase,
            'at': now,
            'effect': effect.kind.value,
        })
        logging.info(f"Participant {participant_id} used {definition.name} in session {session.session_id}")
        return AbilityResult(ability, participant_id, effect, now + cooldown, revealed)

    def resolution_effects(self, leg, hand: Sequence[Card]) -> List[Effect]:
        """Effects the ability layer contributes when a hand is resolved.

        Deadly Aim is consumed only when the final hand holds at least one
        Spade, and the armed flag is explicitly cleared afterwards.
        """
        participant_id = leg.participant.participant_id
        effects = []
        if REROLL in leg.abilities_used:
            effects.append(Effect(EffectKind.REROLL_GRANT, 1, participant_id, REROLL))
        if PEEK in leg.abilities_used:
            effects.append(Effect(EffectKind.REVEAL_GRANT, 1, participant_id, PEEK))
        if leg.quick_draw:
            effects.append(Effect(EffectKind.ORDER_OVERRIDE, 1, participant_id, QUICK_DRAW))

        if any(s == 's' for _, s in hand) and self.store.is_armed(participant_id, DEADLY_AIM):
            if self.store.disarm(participant_id, DEADLY_AIM):
                effects.append(Effect(EffectKind.GUARANTEED_CRIT, 1.0, participant_id, DEADLY_AIM, {'consumed': True}))
                logging.info(f"Deadly Aim consumed for {participant_id}")
        return effects
