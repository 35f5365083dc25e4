"""
Async session driver.

Each participant's actor runs as its own task; the tasks of one decision
cycle are joined at a barrier before anything is revealed. A cycle that
does not complete before the session deadline triggers the timeout
policy, so no wait is unbounded.
"""

import asyncio
import logging
from typing import Any, Dict, Set

from deck_engine.errors import AbilityError, InvalidDecision, SessionTimeout, WrongPhase
from deck_engine.outcome import OutcomeRecord
from deck_engine.session import Phase


class SessionRunner:
    """Drives a session to completion through its participants' actors."""

    def __init__(self, engine):
        self.engine = engine

    async def run(self, session_id: str) -> OutcomeRecord:
        engine = self.engine
        sealed = engine.get_outcome(session_id)
        if sealed is not None:
            return sealed
        session = engine.get_session(session_id)

        while True:
            phase = engine.phase(session_id)
            if phase in (Phase.RESOLUTION, Phase.TERMINAL):
                return engine.resolve(session_id)

            pending = engine.awaiting(session_id)
            tasks: Set[asyncio.Task] = {
                asyncio.ensure_future(self._run_leg(session_id, pid)) for pid in pending
            }
            remaining = max(0.0, session.deadline - engine.clock())
            done, not_done = await asyncio.wait(tasks, timeout=remaining)

            if not_done:
                for task in not_done:
                    task.cancel()
                await asyncio.gather(*not_done, return_exceptions=True)
                logging.info(f"Session {session_id}: {len(not_done)} decision(s) missed the deadline")
                return engine.expire(session_id)

            for task in done:
                try:
                    task.result()
                except SessionTimeout as e:
                    return e.outcome

    async def _run_leg(self, session_id: str, participant_id: str) -> Dict[str, Any]:
        engine = self.engine
        session = engine.get_session(session_id)
        participant = session.leg(participant_id).participant
        view = engine.view(session_id, participant_id)

        try:
            action = await participant.take_decision(view)
        except NotImplementedError:
            # No actor: default decision
            action = {'hold': []}
        except (AttributeError, ValueError, TypeError, KeyError) as e:
            logging.warning(f"Actor for {participant_id} failed ({e}); discarding all")
            action = {'hold': []}

        for ability in action.get('abilities', []):
            try:
                engine.invoke_ability(session_id, participant_id, ability)
            except (AbilityError, WrongPhase) as e:
                logging.info(f"{participant_id} could not use {ability}: {e.message}")

        try:
            return engine.submit_decision(session_id, participant_id, action.get('hold', []))
        except InvalidDecision as e:
            logging.warning(f"Invalid decision from {participant_id} ({e.message}); discarding all")
            return engine.submit_decision(session_id, participant_id, [])


async def run_session(engine, session_id: str) -> OutcomeRecord:
    """Convenience wrapper around SessionRunner.run."""
    return await SessionRunner(engine).run(session_id)
