"""
Card-draw action resolution engine.

Draw five, hold or discard, redraw, and grade the final poker hand into
an outcome record for combat turns, crimes, crafting checks and duels.
"""

from deck_engine.engine import ResolutionEngine
from deck_engine.participant import ParticipantContext
from deck_engine.deck import Modifier
from deck_engine.outcome import OutcomeRecord, ParticipantResult
from deck_engine.session import Phase
from deck_engine.version import VERSION

__all__ = [
    'ResolutionEngine',
    'ParticipantContext',
    'Modifier',
    'OutcomeRecord',
    'ParticipantResult',
    'Phase',
    'VERSION',
]
