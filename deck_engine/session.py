"""
Resolution session state machine.

A session runs one hand pipeline per participant (one leg for PvE, two
for PvP) over a shared session deck:

    draw -> decision -> redraw -> resolution -> terminal

Hold-sets are buffered per leg and the redraw runs only once every leg
that still has a cycle left has committed, so in a contest neither side
sees the other's choices before both are locked in.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from deck_engine.cards import Card
from deck_engine.deck import WeightedDeck
from deck_engine.errors import InvalidDecision, WrongPhase
from deck_engine.hand_evaluation import HAND_SIZE
from deck_engine.participant import ParticipantContext
from deck_engine.rng import RandomSource
from deck_engine.skills import DEFAULT_DIFFICULTY


class Phase(Enum):
    DRAW = 'draw'
    DECISION = 'decision'
    REDRAW = 'redraw'
    RESOLUTION = 'resolution'
    TERMINAL = 'terminal'


VALID_TRANSITIONS = {
    Phase.DRAW: {Phase.DECISION, Phase.RESOLUTION, Phase.TERMINAL},
    Phase.DECISION: {Phase.REDRAW, Phase.RESOLUTION, Phase.TERMINAL},
    Phase.REDRAW: {Phase.DECISION, Phase.RESOLUTION, Phase.TERMINAL},
    Phase.RESOLUTION: {Phase.TERMINAL},
    Phase.TERMINAL: set(),
}


def validate_hold(hold_indices: Any) -> Tuple[int, ...]:
    """Check a hold-set and return it as a sorted tuple of positions."""
    if isinstance(hold_indices, (str, bytes)) or not hasattr(hold_indices, '__iter__'):
        raise InvalidDecision(f"Hold-set must be a list of card positions, got {hold_indices!r}")
    hold = list(hold_indices)
    if len(hold) > HAND_SIZE:
        raise InvalidDecision(f"Hold-set may contain at most {HAND_SIZE} positions, got {len(hold)}")
    for idx in hold:
        if isinstance(idx, bool) or not isinstance(idx, int):
            raise InvalidDecision(f"Hold position must be an integer, got {idx!r}")
        if not 0 <= idx < HAND_SIZE:
            raise InvalidDecision(f"Hold position {idx} is outside 0-{HAND_SIZE - 1}")
    if len(set(hold)) != len(hold):
        raise InvalidDecision(f"Hold-set contains duplicate positions: {hold}")
    return tuple(sorted(hold))


class HandPipeline:
    """One participant's leg of a session."""

    def __init__(self, participant: ParticipantContext, cycles_allowed: int):
        self.participant = participant
        self.hand: List[Card] = []
        self.cycles_allowed = cycles_allowed
        self.redraws_used = 0
        self.pending_hold: Optional[Tuple[int, ...]] = None
        self.committed = False
        self.decisions: List[Tuple[int, ...]] = []
        self.discarded: List[Card] = []
        self.abilities_used: Set[str] = set()
        self.quick_draw = False
        self.forfeited = False
        self.timed_out = False

    @property
    def participant_id(self) -> str:
        return self.participant.participant_id

    @property
    def cycles_remaining(self) -> int:
        return max(0, self.cycles_allowed - self.redraws_used)

    @property
    def awaiting_decision(self) -> bool:
        return not self.committed and not self.forfeited and self.cycles_remaining > 0

    def commit(self, hold: Tuple[int, ...]) -> None:
        self.pending_hold = hold
        self.committed = True

    def apply_redraw(self, deck: WeightedDeck) -> List[int]:
        """Replace the non-held positions in place. Returns the replaced positions."""
        hold = self.pending_hold or ()
        positions = [i for i in range(HAND_SIZE) if i not in hold]
        fresh = deck.draw(len(positions), self.participant_id)
        for pos, card in zip(positions, fresh):
            self.discarded.append(self.hand[pos])
            self.hand[pos] = card
        self.decisions.append(hold)
        self.redraws_used += 1
        self.pending_hold = None
        self.committed = False
        return positions


class ResolutionSession:
    """Aggregate root for one resolution. Owned by the caller that opened it."""

    def __init__(self, session_id: str, action_kind: str, participants: Sequence[ParticipantContext],
                 deck: WeightedDeck, rng: RandomSource, redraw_cycles: int = 1,
                 base_value: float = 1.0, threshold: Optional[float] = None,
                 created_at: float = 0.0, timeout: float = 60.0,
                 emit: Optional[Callable[..., None]] = None, difficulty: int = DEFAULT_DIFFICULTY):
        if not 1 <= len(participants) <= 2:
            raise ValueError("A session needs one or two participants")
        ids = [p.participant_id for p in participants]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate participant ids: {ids}")

        self.session_id = session_id
        self.action_kind = action_kind
        self.legs: Dict[str, HandPipeline] = {
            p.participant_id: HandPipeline(p, redraw_cycles) for p in participants
        }
        self.deck = deck
        self.rng = rng
        self.base_value = base_value
        self.threshold = threshold
        self.difficulty = difficulty
        self.created_at = created_at
        self.deadline = created_at + timeout
        self.phase = Phase.DRAW
        self.ability_log: List[Dict[str, Any]] = []
        self.reveals: List[Dict[str, Any]] = []
        self.lock = threading.RLock()
        self._emit = emit

    @property
    def seed(self) -> int:
        return self.rng.seed

    @property
    def is_pvp(self) -> bool:
        return len(self.legs) == 2

    def leg(self, participant_id: str) -> HandPipeline:
        try:
            return self.legs[participant_id]
        except KeyError:
            raise InvalidDecision(f"Participant {participant_id} is not part of session {self.session_id}") from None

    def opponent_of(self, participant_id: str) -> Optional[HandPipeline]:
        for pid, leg in self.legs.items():
            if pid != participant_id:
                return leg
        return None

    def awaiting(self) -> List[str]:
        """Participants whose decision is still outstanding in this cycle."""
        return [pid for pid, leg in self.legs.items() if leg.awaiting_decision]

    def transition(self, phase: Phase) -> None:
        if phase not in VALID_TRANSITIONS[self.phase]:
            raise WrongPhase(f"Cannot move from {self.phase.value} to {phase.value}", self.phase.value)
        previous = self.phase
        self.phase = phase
        logging.debug(f"Session {self.session_id}: {previous.value} -> {phase.value}")
        if self._emit:
            self._emit('session-phase-changed', self.session_id, {
                'phase': phase.value,
                'previous': previous.value,
                'awaiting': self.awaiting() if phase == Phase.DECISION else [],
            })

    def deal(self) -> None:
        """Deal the initial hands (in participant order) and open the decision window."""
        if self.phase != Phase.DRAW:
            raise WrongPhase("Hands are only dealt in the draw phase", self.phase.value)
        for leg in self.legs.values():
            leg.hand = self.deck.draw(HAND_SIZE, leg.participant_id)
        self._advance_after_redraw()

    def submit(self, participant_id: str, hold_indices: Any) -> Dict[str, Any]:
        if self.phase != Phase.DECISION:
            raise WrongPhase(f"Decisions are not accepted during {self.phase.value}", self.phase.value)
        leg = self.leg(participant_id)
        if leg.forfeited:
            raise InvalidDecision(f"Participant {participant_id} has forfeited")
        if not leg.awaiting_decision:
            raise InvalidDecision(f"Decision window for {participant_id} is already closed")
        hold = validate_hold(hold_indices)
        leg.commit(hold)
        logging.debug(f"Session {self.session_id}: {participant_id} holds {list(hold)}")

        if not self.awaiting():
            self.run_redraw()
        return self.phase_result(participant_id)

    def run_redraw(self) -> None:
        """Apply every buffered decision, legs in participant order."""
        self.transition(Phase.REDRAW)
        for leg in self.legs.values():
            if leg.committed and not leg.forfeited:
                leg.apply_redraw(self.deck)
        self._advance_after_redraw()

    def _advance_after_redraw(self) -> None:
        if self.awaiting():
            self.transition(Phase.DECISION)
        else:
            self.transition(Phase.RESOLUTION)

    def apply_timeout(self) -> None:
        """Auto-complete a stalled session.

        Single participant: outstanding decisions default to holding nothing.
        Contest: a participant that never committed forfeits.
        """
        if self.phase in (Phase.RESOLUTION, Phase.TERMINAL):
            return
        for leg in self.legs.values():
            if leg.awaiting_decision:
                leg.timed_out = True
                if self.is_pvp:
                    leg.forfeited = True
                else:
                    leg.commit(())
        if any(leg.committed and not leg.forfeited for leg in self.legs.values()):
            self.transition(Phase.REDRAW)
            for leg in self.legs.values():
                if leg.committed and not leg.forfeited:
                    leg.apply_redraw(self.deck)
        for leg in self.legs.values():
            leg.cycles_allowed = leg.redraws_used
        self.transition(Phase.RESOLUTION)

    def phase_result(self, participant_id: str) -> Dict[str, Any]:
        leg = self.leg(participant_id)
        return {
            'session_id': self.session_id,
            'phase': self.phase.value,
            'committed': leg.committed,
            'redraws_used': leg.redraws_used,
            'cycles_remaining': leg.cycles_remaining,
            'awaiting': self.awaiting(),
        }

    def view(self, participant_id: str) -> Dict[str, Any]:
        """What one participant may see: its own hand, never the opponent's cards."""
        leg = self.leg(participant_id)
        opponent = self.opponent_of(participant_id)
        data = {
            'session_id': self.session_id,
            'action_kind': self.action_kind,
            'phase': self.phase.value,
            'participant_id': participant_id,
            'hand': list(leg.hand),
            'committed': leg.committed,
            'redraws_used': leg.redraws_used,
            'cycles_remaining': leg.cycles_remaining,
            'abilities_used': sorted(leg.abilities_used),
            'deadline': self.deadline,
        }
        if opponent is not None:
            data['opponent'] = {
                'participant_id': opponent.participant_id,
                'committed': opponent.committed,
                'forfeited': opponent.forfeited,
            }
        return data
