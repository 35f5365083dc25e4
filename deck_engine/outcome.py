"""
Outcome resolution.

Combines the hand multiplier, suit bonus effects and ability effects
with the caller-supplied base value into one immutable OutcomeRecord.
Collaborator modifiers (corruption, reputation, ...) are carried through
as annotations and never recomputed here.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from deck_engine.cards import Card, SUIT_NAMES, card_str
from deck_engine.effects import Effect, EffectKind
from deck_engine.hand_evaluation import CATEGORY_NAMES, evaluate_5cards, hand_description
from deck_engine.skills import calculate_skill_modifiers
from deck_engine.suit_bonus import PER_CARD_BONUS, suit_counts, suit_effects

RESOLVED = 'resolved'
TIMEOUT = 'timeout'
CANCELLED = 'cancelled'

CRITICAL_MULTIPLIER = 1.5
MITIGATION_CAP = 0.4


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ParticipantResult:
    participant_id: str
    hand: Tuple[Card, ...] = ()
    category: Optional[str] = None
    category_rank: Optional[int] = None
    tiebreakers: Tuple[int, ...] = ()
    description: Optional[str] = None
    multiplier: float = 0.0
    suit_counts: Mapping[str, int] = field(default_factory=dict)
    suit_bonus: Mapping[str, float] = field(default_factory=dict)
    effects: Tuple[Effect, ...] = ()
    critical_chance: float = 0.0
    critical_hit: bool = False
    heal: float = 0.0
    reward_multiplier: float = 1.0
    mitigation: float = 0.0
    base_value: float = 0.0
    value: float = 0.0
    final_value: float = 0.0
    success: Optional[bool] = None
    threshold_reduction: int = 0
    quick_draw: bool = False
    redraws_used: int = 0
    decisions: Tuple[Tuple[int, ...], ...] = ()
    forfeited: bool = False
    timed_out: bool = False
    annotations: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for name in ('suit_counts', 'suit_bonus', 'annotations'):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    @property
    def hand_value(self) -> Tuple[int, Tuple[int, ...]]:
        return (self.category_rank if self.category_rank is not None else -1, self.tiebreakers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'participant_id': self.participant_id,
            'hand': [card_str(c) for c in self.hand],
            'category': self.category,
            'category_rank': self.category_rank,
            'tiebreakers': list(self.tiebreakers),
            'description': self.description,
            'multiplier': self.multiplier,
            'suit_counts': {SUIT_NAMES[s]: n for s, n in self.suit_counts.items()},
            'suit_bonus': {SUIT_NAMES[s]: v for s, v in self.suit_bonus.items()},
            'effects': [e.to_dict() for e in self.effects],
            'critical_chance': self.critical_chance,
            'critical_hit': self.critical_hit,
            'heal': self.heal,
            'reward_multiplier': self.reward_multiplier,
            'mitigation': self.mitigation,
            'base_value': self.base_value,
            'value': self.value,
            'final_value': self.final_value,
            'success': self.success,
            'threshold_reduction': self.threshold_reduction,
            'quick_draw': self.quick_draw,
            'redraws_used': self.redraws_used,
            'decisions': [list(d) for d in self.decisions],
            'forfeited': self.forfeited,
            'timed_out': self.timed_out,
            'annotations': dict(self.annotations),
        }


@dataclass(frozen=True)
class OutcomeRecord:
    sequence: int
    session_id: str
    action_kind: str
    status: str
    seed: int
    results: Tuple[ParticipantResult, ...]
    winner: Optional[str] = None
    initiative: Tuple[str, ...] = ()
    abilities_invoked: Tuple[Mapping[str, Any], ...] = ()
    reveals: Tuple[Mapping[str, Any], ...] = ()
    reason: Optional[str] = None
    resolved_at: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'abilities_invoked', tuple(_frozen(a) for a in self.abilities_invoked))
        object.__setattr__(self, 'reveals', tuple(_frozen(r) for r in self.reveals))

    def result_for(self, participant_id: str) -> ParticipantResult:
        for result in self.results:
            if result.participant_id == participant_id:
                return result
        raise KeyError(participant_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sequence': self.sequence,
            'session_id': self.session_id,
            'action_kind': self.action_kind,
            'status': self.status,
            'seed': str(self.seed),
            'results': [r.to_dict() for r in self.results],
            'winner': self.winner,
            'initiative': list(self.initiative),
            'abilities_invoked': [dict(a) for a in self.abilities_invoked],
            'reveals': [
                {**r, 'hand': [card_str(c) for c in r['hand']]} for r in self.reveals
            ],
            'reason': self.reason,
            'resolved_at': self.resolved_at,
        }


class OutcomeSequence:
    """Process-wide monotonically increasing sequence numbers."""

    def __init__(self, start: int = 0):
        self._lock = threading.Lock()
        self._counter = itertools.count(start + 1)

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


def _critical(acc, m, effect):
    acc['critical_chance'] += m


def _heal(acc, m, effect):
    acc['heal'] += m


def _reward(acc, m, effect):
    acc['reward_multiplier'] += m


def _mitigation(acc, m, effect):
    acc['mitigation'] += m


def _guaranteed_crit(acc, m, effect):
    acc['guaranteed_crit'] = True


def _order_override(acc, m, effect):
    acc['quick_draw'] = True


def _noop(acc, m, effect):
    pass


EFFECT_HANDLERS: Dict[EffectKind, Callable[[Dict[str, Any], float, Effect], None]] = {
    EffectKind.CRITICAL_CHANCE: _critical,
    EffectKind.HEAL: _heal,
    EffectKind.REWARD_MULTIPLIER: _reward,
    EffectKind.MITIGATION: _mitigation,
    EffectKind.GUARANTEED_CRIT: _guaranteed_crit,
    EffectKind.ORDER_OVERRIDE: _order_override,
    # Grants already acted on the session; they are recorded, not scored
    EffectKind.REROLL_GRANT: _noop,
    EffectKind.REVEAL_GRANT: _noop,
}


class OutcomeResolver:
    """Turns a finished session into an OutcomeRecord."""

    def __init__(self, ability_engine, per_card_bonus: Optional[Dict[str, float]] = None,
                 critical_multiplier: float = CRITICAL_MULTIPLIER,
                 mitigation_cap: float = MITIGATION_CAP):
        self.ability_engine = ability_engine
        self.per_card_bonus = dict(per_card_bonus or PER_CARD_BONUS)
        self.critical_multiplier = critical_multiplier
        self.mitigation_cap = mitigation_cap

    def score_leg(self, session, leg) -> ParticipantResult:
        participant_id = leg.participant_id
        annotations = leg.participant.annotations
        if leg.forfeited:
            return ParticipantResult(
                participant_id=participant_id,
                hand=tuple(leg.hand),
                redraws_used=leg.redraws_used,
                decisions=tuple(leg.decisions),
                forfeited=True,
                timed_out=leg.timed_out,
                success=False if session.threshold is not None else None,
                annotations=annotations,
            )

        hand = tuple(leg.hand)
        # Evaluator, then suit bonuses, then abilities
        hand_value = evaluate_5cards(hand)
        effects: List[Effect] = suit_effects(hand, participant_id, self.per_card_bonus)
        effects.extend(self.ability_engine.resolution_effects(leg, hand))

        acc = {
            'critical_chance': 0.0,
            'heal': 0.0,
            'reward_multiplier': 1.0,
            'mitigation': 0.0,
            'guaranteed_crit': False,
            'quick_draw': False,
        }
        for effect in effects:
            EFFECT_HANDLERS[effect.kind](acc, effect.magnitude, effect)

        critical_chance = 1.0 if acc['guaranteed_crit'] else min(1.0, acc['critical_chance'])
        critical_hit = session.rng.chance(critical_chance)
        mitigation = min(self.mitigation_cap, acc['mitigation'])

        value = session.base_value * hand_value.multiplier
        final_value = value * acc['reward_multiplier']
        if critical_hit:
            final_value *= self.critical_multiplier
        final_value = round(final_value, 4)

        success = None
        reduction = 0
        if session.threshold is not None:
            skill = calculate_skill_modifiers(leg.participant.action_skill, session.difficulty)
            reduction = skill.threshold_reduction
            success = final_value >= session.threshold - reduction

        return ParticipantResult(
            participant_id=participant_id,
            hand=hand,
            category=CATEGORY_NAMES[hand_value.category],
            category_rank=hand_value.category,
            tiebreakers=hand_value.tiebreakers,
            description=hand_description(hand_value.category, hand_value.tiebreakers),
            multiplier=hand_value.multiplier,
            suit_counts=suit_counts(hand),
            suit_bonus={e.source.split(':')[1]: e.magnitude for e in effects if e.source.startswith('suit:')},
            effects=tuple(effects),
            critical_chance=critical_chance,
            critical_hit=critical_hit,
            heal=acc['heal'],
            reward_multiplier=acc['reward_multiplier'],
            mitigation=mitigation,
            base_value=session.base_value,
            value=value,
            final_value=final_value,
            success=success,
            threshold_reduction=reduction,
            quick_draw=acc['quick_draw'],
            redraws_used=leg.redraws_used,
            decisions=tuple(leg.decisions),
            timed_out=leg.timed_out,
            annotations=annotations,
        )

    def resolve(self, session, sequence: int, status: str = RESOLVED,
                reason: Optional[str] = None, resolved_at: float = 0.0) -> OutcomeRecord:
        results = tuple(self.score_leg(session, leg) for leg in session.legs.values())
        return OutcomeRecord(
            sequence=sequence,
            session_id=session.session_id,
            action_kind=session.action_kind,
            status=status,
            seed=session.seed,
            results=results,
            winner=decide_winner(results) if session.is_pvp else None,
            initiative=initiative_order(results),
            abilities_invoked=tuple(session.ability_log),
            reveals=tuple(session.reveals),
            reason=reason,
            resolved_at=resolved_at,
        )

    def forfeit(self, session, sequence: int, forfeiting: Sequence[str], status: str = CANCELLED,
                reason: Optional[str] = None, resolved_at: float = 0.0) -> OutcomeRecord:
        """Seal a session without scoring the forfeiting legs."""
        for pid in forfeiting:
            session.leg(pid).forfeited = True
        return self.resolve(session, sequence, status=status, reason=reason, resolved_at=resolved_at)


def decide_winner(results: Sequence[ParticipantResult]) -> Optional[str]:
    """Best standing hand wins; a lone survivor of a forfeit wins; exact ties have no winner."""
    standing = [r for r in results if not r.forfeited]
    if not standing:
        return None
    if len(standing) == 1:
        return standing[0].participant_id
    ranked = sorted(standing, key=lambda r: r.hand_value, reverse=True)
    if ranked[0].hand_value == ranked[1].hand_value:
        return None
    return ranked[0].participant_id


def initiative_order(results: Sequence[ParticipantResult]) -> Tuple[str, ...]:
    """Quick Draw users act first; each group keeps participant order."""
    first = [r.participant_id for r in results if r.quick_draw]
    rest = [r.participant_id for r in results if not r.quick_draw]
    return tuple(first + rest)
