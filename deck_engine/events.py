"""
Event delivery for realtime consumers (duel spectators, UIs).

Public events carry only progress data. Events addressed to a recipient
(the Peek reveal) are delivered only to listeners registered for that
participant.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Set, Tuple

PHASE_CHANGED = 'session-phase-changed'
ABILITY_INVOKED = 'ability-invoked'
SESSION_RESOLVED = 'session-resolved'
PEEK_REVEALED = 'peek-revealed'


class SessionEvent(NamedTuple):
    kind: str
    session_id: str
    data: Dict[str, Any]
    recipient: Optional[str] = None
    timestamp: float = 0.0


class EventBus:
    """Fan-out of session events to subscribed callbacks."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._listeners: List[Tuple[Callable[[SessionEvent], Any], Optional[str]]] = []
        # Async listeners run as tasks; keep them referenced until done
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(self, callback: Callable[[SessionEvent], Any], recipient: Optional[str] = None) -> None:
        """Register a listener. With a recipient it also receives that participant's private events."""
        self._listeners.append((callback, recipient))

    def unsubscribe(self, callback: Callable[[SessionEvent], Any]) -> None:
        self._listeners = [(cb, r) for cb, r in self._listeners if cb is not callback]

    def publish(self, kind: str, session_id: str, data: Dict[str, Any], recipient: Optional[str] = None) -> SessionEvent:
        event = SessionEvent(kind, session_id, data, recipient, self.clock())
        for callback, listener_recipient in list(self._listeners):
            if recipient is not None and listener_recipient != recipient:
                continue
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    self._schedule(result, kind, session_id)
            except Exception:
                # Listener errors must not break the session
                logging.exception(f"Event listener failed for {kind} in session {session_id}")
        return event

    def _schedule(self, coro, kind: str, session_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logging.error(f"Async listener for {kind} in session {session_id} dropped: no running event loop")
            return
        task = loop.create_task(coro)
        self._tasks.add(task)

        def _done(t: asyncio.Task) -> None:
            self._tasks.discard(t)
            if t.cancelled():
                return
            error = t.exception()
            if error is not None:
                logging.error(f"Async event listener failed for {kind} in session {session_id}: {error!r}")

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for async listeners still running."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class EventRecorder:
    """Listener that keeps every event it sees; handy for spectators and tests."""

    def __init__(self):
        self.events: List[SessionEvent] = []

    def __call__(self, event: SessionEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [e.kind for e in self.events]

    def of_kind(self, kind: str) -> List[SessionEvent]:
        return [e for e in self.events if e.kind == kind]
