"""
Participant context for resolution sessions.

A ParticipantContext is the snapshot collaborator systems hand to the
engine at session-open time: level, per-suit skill levels, unlocked
abilities and already-computed modifiers. It also carries a pluggable
`actor` used by the async runner to obtain decisions. Human callers may
set `actor` to a function that prompts the user; NPCs use
deck_engine.npc.NPCPolicy.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from deck_engine.cards import SUITS
from deck_engine.deck import DEFAULT_SKILL_WEIGHT, Modifier
from deck_engine.skills import clamp_skill


class ParticipantContext:
    def __init__(self, participant_id: str, level: int = 1,
                 skill_levels: Optional[Dict[str, int]] = None,
                 modifiers: Optional[Iterable[Modifier]] = None,
                 unlocked_abilities: Optional[Iterable[str]] = None,
                 annotations: Optional[Dict[str, Any]] = None):
        if not participant_id:
            raise ValueError("participant_id is required")
        for suit in (skill_levels or {}):
            if suit not in SUITS:
                raise ValueError(f"Unknown suit in skill levels: {suit!r}")
        self.participant_id = participant_id
        self.level = level
        # Skill lives on a 0-100 scale
        self.skill_levels: Dict[str, int] = {s: clamp_skill(v) for s, v in (skill_levels or {}).items()}
        self.modifiers: List[Modifier] = list(modifiers or [])
        # None means "everything the level allows"
        self.unlocked_abilities: Optional[FrozenSet[str]] = (
            frozenset(unlocked_abilities) if unlocked_abilities is not None else None
        )
        # Pass-through values from collaborator systems (corruption, reputation, ...)
        self.annotations: Dict[str, Any] = dict(annotations or {})
        # actor(view) -> {'hold': [int], 'abilities': [str]}
        # actor may be sync or async; typing is broad to accept both.
        self.actor: Optional[Callable[[dict], Any]] = None

    def suit_modifiers(self, skill_weight: float = DEFAULT_SKILL_WEIGHT) -> List[Modifier]:
        """Explicit modifiers plus the ones derived from per-suit skill levels."""
        mods = list(self.modifiers)
        for suit, level in self.skill_levels.items():
            if level:
                mods.append(Modifier(suit, level * skill_weight, 'skill'))
        return mods

    @property
    def action_skill(self) -> int:
        """The strongest suit skill, which drives threshold reduction."""
        return max(self.skill_levels.values(), default=0)

    def has_unlocked(self, ability: str, unlock_level: int) -> bool:
        if self.level < unlock_level:
            return False
        if self.unlocked_abilities is not None and ability not in self.unlocked_abilities:
            return False
        return True

    async def take_decision(self, view: dict) -> dict:
        if self.actor is None:
            raise NotImplementedError("No decision actor set for participant")
        # Support both sync and async actor callables
        result = self.actor(view)
        if asyncio.iscoroutine(result):
            return await result
        return result

    def __repr__(self) -> str:
        return f"ParticipantContext({self.participant_id!r}, level={self.level})"
