"""
Tagged effect variants produced by the suit bonus calculator and the
ability engine, and consumed generically by the outcome resolver.
"""

from enum import Enum
from typing import Any, Dict, NamedTuple, Optional


class EffectKind(Enum):
    CRITICAL_CHANCE = 'critical_chance'
    HEAL = 'heal'
    REWARD_MULTIPLIER = 'reward_multiplier'
    MITIGATION = 'mitigation'
    REROLL_GRANT = 'reroll_grant'
    REVEAL_GRANT = 'reveal_grant'
    ORDER_OVERRIDE = 'order_override'
    GUARANTEED_CRIT = 'guaranteed_crit'


# Channels fed by suit counts in the final hand
SUIT_CHANNELS = {
    's': EffectKind.CRITICAL_CHANCE,
    'h': EffectKind.HEAL,
    'd': EffectKind.REWARD_MULTIPLIER,
    'c': EffectKind.MITIGATION,
}


class Effect(NamedTuple):
    kind: EffectKind
    magnitude: float
    participant_id: str
    source: str
    detail: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'kind': self.kind.value,
            'magnitude': self.magnitude,
            'participant_id': self.participant_id,
            'source': self.source,
        }
        if self.detail:
            data['detail'] = dict(self.detail)
        return data
