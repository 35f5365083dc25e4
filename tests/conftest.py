import itertools
from collections import deque
from typing import Any, Callable, Dict, Iterable, Optional

import pytest

from deck_engine.cards import parse_cards
from deck_engine.config import EngineConfig
from deck_engine.database import DatabaseManager
from deck_engine.engine import ResolutionEngine
from deck_engine.participant import ParticipantContext


class SequentialActor:
    """Callable helper which returns predetermined hold decisions."""

    def __init__(self, actions: Iterable[Dict[str, Any]]):
        self._queue = deque(actions)

    def next_action(self, view):
        if not self._queue:
            raise RuntimeError("No more scripted actions available")
        action = self._queue.popleft()
        if callable(action):
            return action(view)
        return action


class FakeClock:
    """Manually advanced clock so deadlines and cooldowns are testable."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_engine(clock) -> Callable[..., ResolutionEngine]:
    """Factory for engines with a fake clock and predictable session ids."""

    def _factory(config: Optional[EngineConfig] = None, **kwargs) -> ResolutionEngine:
        counter = itertools.count(1)
        kwargs.setdefault('clock', clock)
        kwargs.setdefault('id_factory', lambda: f"session-{next(counter)}")
        return ResolutionEngine(config or EngineConfig(), **kwargs)

    return _factory


@pytest.fixture
def make_participant() -> Callable[..., ParticipantContext]:
    """Factory for creating participants with deterministic actors."""

    def _factory(pid: str, level: int = 1, actions: Optional[Iterable[Dict[str, Any]]] = None, **kwargs) -> ParticipantContext:
        participant = ParticipantContext(pid, level=level, **kwargs)
        if actions is not None:
            actor = SequentialActor(actions)

            async def _actor_async(view):
                return actor.next_action(view)

            participant.actor = _actor_async
        return participant

    return _factory


@pytest.fixture
def rig_hand():
    """Swap a leg's dealt hand for known cards, keeping the deck consistent."""

    def _rig(engine: ResolutionEngine, session_id: str, participant_id: str, cards: str):
        session = engine.get_session(session_id)
        leg = session.legs[participant_id]
        wanted = parse_cards(cards)
        deck = session.deck
        for card in leg.hand:
            deck.dealt.remove(card)
            deck.cards.append(card)
        for card in wanted:
            if card in deck.cards:
                deck.cards.remove(card)
                deck.dealt.append(card)
                continue
            # Held by the opponent: hand them a replacement from the deck
            for other in session.legs.values():
                if other is not leg and card in other.hand:
                    replacement = next(c for c in deck.cards if c not in wanted)
                    deck.cards.remove(replacement)
                    deck.dealt.append(replacement)
                    other.hand[other.hand.index(card)] = replacement
        leg.hand = list(wanted)
        return wanted

    return _rig


@pytest.fixture
def database_manager(tmp_path, monkeypatch):
    """Provide isolated DatabaseManager instance with temporary SQLite file."""

    db_path = tmp_path / "test_deck.sqlite"
    manager = DatabaseManager(str(db_path))

    # Ensure module-level helpers return this instance
    monkeypatch.setattr("deck_engine.database._db_manager", manager, raising=False)

    yield manager

    manager.close()


@pytest.fixture(autouse=True)
def reset_database_singleton(monkeypatch):
    """Ensure database singleton is reset between tests."""

    monkeypatch.setattr("deck_engine.database._db_manager", None, raising=False)
