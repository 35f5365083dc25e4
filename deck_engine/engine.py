"""
Resolution engine facade.

This is the contract collaborator systems (combat, crime, crafting) use:
open a session, submit hold decisions, invoke abilities, resolve or
cancel. Collaborator modifiers enter only through ParticipantContext.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from deck_engine.abilities import AbilityEngine, AbilityResult
from deck_engine.config import EngineConfig
from deck_engine.cooldowns import InMemoryCooldownStore
from deck_engine.deck import build_deck
from deck_engine.errors import SessionNotFound, SessionTimeout, WrongPhase
from deck_engine.events import (
    ABILITY_INVOKED,
    PEEK_REVEALED,
    SESSION_RESOLVED,
    EventBus,
)
from deck_engine.outcome import CANCELLED, RESOLVED, TIMEOUT, OutcomeRecord, OutcomeResolver, OutcomeSequence
from deck_engine.participant import ParticipantContext
from deck_engine.rng import RandomSource
from deck_engine.session import Phase, ResolutionSession
from deck_engine.skills import DEFAULT_DIFFICULTY


class ResolutionEngine:
    """Owns live sessions, the ability store and the sealed outcomes."""

    def __init__(self, config: Optional[EngineConfig] = None, store=None, database=None,
                 events: Optional[EventBus] = None, clock: Callable[[], float] = time.time,
                 id_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        self.config = config or EngineConfig()
        self.clock = clock
        self.id_factory = id_factory
        self.database = database
        # The database doubles as the ability store when no store is given
        self.store = store or database or InMemoryCooldownStore()
        self.events = events or EventBus(clock)
        self.abilities = AbilityEngine(self.store, self.config.cooldowns, clock)
        self.resolver = OutcomeResolver(
            self.abilities,
            per_card_bonus=self.config.per_card_bonus,
            critical_multiplier=self.config.critical_multiplier,
            mitigation_cap=self.config.mitigation_cap,
        )
        self.sequence = OutcomeSequence(database.max_sequence() if database else 0)
        self._sessions: Dict[str, ResolutionSession] = {}
        self._outcomes: Dict[str, OutcomeRecord] = {}
        self._lock = threading.Lock()

    # Session lookup

    def get_session(self, session_id: str) -> ResolutionSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    def _lookup(self, session_id: str) -> Tuple[Optional[ResolutionSession], Optional[OutcomeRecord]]:
        """Live session or sealed outcome, read in one step."""
        with self._lock:
            session = self._sessions.get(session_id)
            outcome = self._outcomes.get(session_id)
        if session is None and outcome is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return session, outcome

    def _live_session(self, session_id: str) -> ResolutionSession:
        """Fetch an active session, enforcing its deadline on access."""
        session, outcome = self._lookup(session_id)
        if session is None:
            if outcome.status == TIMEOUT:
                raise SessionTimeout(f"Session {session_id} timed out", outcome)
            raise WrongPhase(f"Session {session_id} is already terminal", Phase.TERMINAL.value)
        if session.phase != Phase.RESOLUTION and self.clock() >= session.deadline:
            outcome = self._expire(session)
            raise SessionTimeout(f"Session {session_id} timed out", outcome)
        return session

    # Public contract

    def open_session(self, action_kind: str, participants: Sequence[ParticipantContext],
                     seed: Optional[int] = None, base_value: float = 1.0,
                     threshold: Optional[float] = None, timeout: Optional[float] = None,
                     difficulty: int = DEFAULT_DIFFICULTY) -> str:
        """Create a session, deal the opening hands and return its id."""
        rng = RandomSource(seed)
        deck = build_deck(participants, rng, self.config.skill_weight)
        session_id = self.id_factory()
        session = ResolutionSession(
            session_id, action_kind, participants, deck, rng,
            redraw_cycles=self.config.cycles_for(action_kind),
            base_value=base_value,
            threshold=threshold,
            created_at=self.clock(),
            timeout=timeout if timeout is not None else self.config.session_timeout,
            emit=self.events.publish,
            difficulty=difficulty,
        )
        with self._lock:
            self._sessions[session_id] = session
        session.deal()
        logging.info(
            f"Opened {action_kind} session {session_id} for "
            f"{[p.participant_id for p in participants]} (seed={rng.seed})"
        )
        return session_id

    def submit_decision(self, session_id: str, participant_id: str, hold_indices: Iterable[int]) -> Dict[str, Any]:
        session = self._live_session(session_id)
        with session.lock:
            return session.submit(participant_id, hold_indices)

    def invoke_ability(self, session_id: str, participant_id: str, ability_id: str) -> AbilityResult:
        session = self._live_session(session_id)
        with session.lock:
            result = self.abilities.invoke(session, participant_id, ability_id)
        self.events.publish(ABILITY_INVOKED, session_id, {
            'participant_id': participant_id,
            'ability': ability_id,
            'effect': result.effect.kind.value,
        })
        if result.revealed is not None:
            self.events.publish(PEEK_REVEALED, session_id, result.revealed, recipient=participant_id)
        return result

    def resolve(self, session_id: str) -> OutcomeRecord:
        """Seal the session. Idempotent once terminal."""
        session, outcome = self._lookup(session_id)
        if outcome is not None:
            return outcome
        if session.phase != Phase.RESOLUTION and self.clock() >= session.deadline:
            return self._expire(session)
        with session.lock:
            outcome = self.get_outcome(session_id)
            if outcome is not None:
                return outcome
            if session.phase != Phase.RESOLUTION:
                raise WrongPhase(
                    f"Session {session_id} cannot resolve during {session.phase.value}", session.phase.value)
            return self._seal(session, self.resolver.resolve(
                session, self.sequence.next(), RESOLVED, resolved_at=self.clock()))

    def cancel(self, session_id: str, reason: str = 'cancelled', participant_id: Optional[str] = None) -> OutcomeRecord:
        """Force the session terminal with a forfeit-style record.

        With a participant_id only that participant forfeits (flee); otherwise
        every participant does.
        """
        session, outcome = self._lookup(session_id)
        if outcome is not None:
            return outcome
        with session.lock:
            outcome = self.get_outcome(session_id)
            if outcome is not None:
                return outcome
            forfeiting = [participant_id] if participant_id else list(session.legs)
            if participant_id:
                session.leg(participant_id)
            record = self.resolver.forfeit(
                session, self.sequence.next(), forfeiting, CANCELLED, reason, resolved_at=self.clock())
            return self._seal(session, record)

    def expire(self, session_id: str) -> OutcomeRecord:
        """Apply the timeout policy now, regardless of the deadline.

        A session already in resolution is sealed as resolved.
        """
        session, outcome = self._lookup(session_id)
        if outcome is not None:
            return outcome
        return self._expire(session)

    def expire_stale_sessions(self) -> List[OutcomeRecord]:
        """Sweep every session past its deadline.

        Sessions still waiting on decisions time out; ones already in
        resolution are resolved normally.
        """
        now = self.clock()
        with self._lock:
            stale = [s for s in self._sessions.values() if now >= s.deadline]
        return [self._expire(s) for s in stale]

    def view(self, session_id: str, participant_id: str) -> Dict[str, Any]:
        session = self._live_session(session_id)
        with session.lock:
            return session.view(participant_id)

    def awaiting(self, session_id: str) -> List[str]:
        session = self.get_session(session_id)
        with session.lock:
            return session.awaiting()

    def phase(self, session_id: str) -> Phase:
        with self._lock:
            if session_id in self._outcomes:
                return Phase.TERMINAL
        return self.get_session(session_id).phase

    def get_outcome(self, session_id: str) -> Optional[OutcomeRecord]:
        with self._lock:
            return self._outcomes.get(session_id)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            by_status: Dict[str, int] = {}
            for outcome in self._outcomes.values():
                by_status[outcome.status] = by_status.get(outcome.status, 0) + 1
            return {
                'active_sessions': len(self._sessions),
                'sealed_outcomes': len(self._outcomes),
                'outcomes_by_status': by_status,
            }

    # Internals

    def _expire(self, session: ResolutionSession) -> OutcomeRecord:
        with session.lock:
            outcome = self.get_outcome(session.session_id)
            if outcome is not None:
                return outcome
            if session.phase == Phase.RESOLUTION:
                # Every decision is already in; the deadline has nothing to default
                return self._seal(session, self.resolver.resolve(
                    session, self.sequence.next(), RESOLVED, resolved_at=self.clock()))
            logging.info(f"Session {session.session_id} timed out in {session.phase.value}; applying default decisions")
            session.apply_timeout()
            record = self.resolver.resolve(
                session, self.sequence.next(), TIMEOUT, reason='timeout', resolved_at=self.clock())
            return self._seal(session, record)

    def _seal(self, session: ResolutionSession, record: OutcomeRecord) -> OutcomeRecord:
        session.transition(Phase.TERMINAL)
        with self._lock:
            self._outcomes[session.session_id] = record
            self._sessions.pop(session.session_id, None)
        if self.database is not None:
            try:
                self.database.archive_outcome(record)
            except Exception as e:
                logging.error(f"Failed to archive outcome for session {session.session_id}: {e}")
        self.events.publish(SESSION_RESOLVED, session.session_id, {
            'sequence': record.sequence,
            'status': record.status,
            'winner': record.winner,
            'results': [
                {'participant_id': r.participant_id, 'category': r.category, 'final_value': r.final_value,
                 'forfeited': r.forfeited}
                for r in record.results
            ],
        })
        logging.info(f"Session {session.session_id} sealed as #{record.sequence} ({record.status})")
        return record
