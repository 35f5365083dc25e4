"""
In-process ability state store.

Keyed by (participant_id, ability). Cooldown check and timestamp write
happen under one lock so two near-simultaneous invocations cannot both
pass the check. The SQLite-backed store in deck_engine.database exposes
the same methods for state that must survive restarts.
"""

import threading
from typing import Dict, Optional, Tuple

Key = Tuple[str, str]


class InMemoryCooldownStore:
    """Thread-safe per-participant ability state."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last_used: Dict[Key, float] = {}
        self._armed: Dict[Key, bool] = {}

    def try_acquire(self, participant_id: str, ability: str, now: float, cooldown: float) -> Tuple[bool, float]:
        """Atomically check the cooldown and stamp a new use.

        Returns (accepted, remaining_seconds).
        """
        key = (participant_id, ability)
        with self._lock:
            last = self._last_used.get(key)
            if last is not None and now < last + cooldown:
                return False, (last + cooldown) - now
            self._last_used[key] = now
            return True, 0.0

    def get_last_used(self, participant_id: str, ability: str) -> Optional[float]:
        with self._lock:
            return self._last_used.get((participant_id, ability))

    def remaining(self, participant_id: str, ability: str, now: float, cooldown: float) -> float:
        last = self.get_last_used(participant_id, ability)
        if last is None:
            return 0.0
        return max(0.0, (last + cooldown) - now)

    def reset(self, participant_id: str, ability: str) -> None:
        with self._lock:
            self._last_used.pop((participant_id, ability), None)
            self._armed.pop((participant_id, ability), None)

    def arm(self, participant_id: str, ability: str) -> None:
        with self._lock:
            self._armed[(participant_id, ability)] = True

    def is_armed(self, participant_id: str, ability: str) -> bool:
        with self._lock:
            return self._armed.get((participant_id, ability), False)

    def disarm(self, participant_id: str, ability: str) -> bool:
        """Clear an armed flag. Returns True if it was armed."""
        with self._lock:
            return self._armed.pop((participant_id, ability), False)
