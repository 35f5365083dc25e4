"""
Engine configuration.

Values come from the real environment first, then a .env file, then
defaults. Redraw cycles are configured per action kind.
"""

import os
from typing import Dict, Optional

from dotenv import dotenv_values

from deck_engine.abilities import ABILITIES
from deck_engine.deck import DEFAULT_SKILL_WEIGHT
from deck_engine.outcome import CRITICAL_MULTIPLIER, MITIGATION_CAP
from deck_engine.suit_bonus import PER_CARD_BONUS

DEFAULT_REDRAW_CYCLES = 1
DEFAULT_ACTION_KINDS = {
    'combat': 1,
    'crime': 1,
    'craft': 1,
    'duel': 1,
}


def parse_redraw_cycles(value: str) -> Dict[str, int]:
    """Parse 'combat:1,craft:2' into {'combat': 1, 'craft': 2}."""
    cycles = {}
    for part in value.split(','):
        part = part.strip()
        if not part:
            continue
        if ':' not in part:
            raise ValueError(f"Invalid redraw cycle entry: {part!r}")
        kind, count = part.split(':', 1)
        count = int(count)
        if count < 0:
            raise ValueError(f"Redraw cycles must be >= 0 for {kind.strip()}")
        cycles[kind.strip()] = count
    return cycles


class EngineConfig:
    def __init__(self, session_timeout: float = 60.0,
                 redraw_cycles: Optional[Dict[str, int]] = None,
                 default_redraw_cycles: int = DEFAULT_REDRAW_CYCLES,
                 cooldowns: Optional[Dict[str, float]] = None,
                 skill_weight: float = DEFAULT_SKILL_WEIGHT,
                 per_card_bonus: Optional[Dict[str, float]] = None,
                 critical_multiplier: float = CRITICAL_MULTIPLIER,
                 mitigation_cap: float = MITIGATION_CAP,
                 db_path: Optional[str] = None,
                 healthcheck_port: int = 22223):
        self.session_timeout = session_timeout
        self.redraw_cycles = dict(DEFAULT_ACTION_KINDS)
        if redraw_cycles:
            self.redraw_cycles.update(redraw_cycles)
        self.default_redraw_cycles = default_redraw_cycles
        self.cooldowns = {a.ability_id: a.cooldown for a in ABILITIES.values()}
        if cooldowns:
            self.cooldowns.update(cooldowns)
        self.skill_weight = skill_weight
        self.per_card_bonus = dict(PER_CARD_BONUS)
        if per_card_bonus:
            self.per_card_bonus.update(per_card_bonus)
        self.critical_multiplier = critical_multiplier
        self.mitigation_cap = mitigation_cap
        self.db_path = db_path
        self.healthcheck_port = healthcheck_port

    def cycles_for(self, action_kind: str) -> int:
        return self.redraw_cycles.get(action_kind, self.default_redraw_cycles)

    @classmethod
    def from_env(cls, env_file: str = ".env") -> "EngineConfig":
        """Build a config from the environment overlaid on a .env file."""
        file_vars = dotenv_values(env_file) if os.path.exists(env_file) else {}

        def get(key: str, default: Optional[str] = None) -> Optional[str]:
            return os.getenv(key) or file_vars.get(key) or default

        cooldowns = {}
        for ability_id in ABILITIES:
            raw = get(f"DECK_COOLDOWN_{ability_id.upper()}")
            if raw is not None:
                cooldowns[ability_id] = float(raw)

        redraw = get('DECK_REDRAW_CYCLES')
        return cls(
            session_timeout=float(get('DECK_SESSION_TIMEOUT', '60')),
            redraw_cycles=parse_redraw_cycles(redraw) if redraw else None,
            default_redraw_cycles=int(get('DECK_DEFAULT_REDRAW_CYCLES', str(DEFAULT_REDRAW_CYCLES))),
            cooldowns=cooldowns,
            skill_weight=float(get('DECK_SKILL_WEIGHT', str(DEFAULT_SKILL_WEIGHT))),
            db_path=get('DECK_DB_PATH'),
            healthcheck_port=int(get('HEALTHCHECK_PORT', '22223')),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            'session_timeout': self.session_timeout,
            'redraw_cycles': dict(self.redraw_cycles),
            'default_redraw_cycles': self.default_redraw_cycles,
            'cooldowns': dict(self.cooldowns),
            'skill_weight': self.skill_weight,
            'per_card_bonus': dict(self.per_card_bonus),
            'critical_multiplier': self.critical_multiplier,
            'mitigation_cap': self.mitigation_cap,
            'db_path': self.db_path,
        }
