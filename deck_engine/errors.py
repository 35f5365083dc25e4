"""
Error taxonomy for the resolution engine.

Decision and ability errors are recoverable: the caller may resubmit within
the same phase. DeckExhausted is an internal invariant failure.
"""

from typing import Optional


class EngineError(Exception):
    """Base class for all resolution engine errors."""

    code = 'ENGINE_ERROR'

    def __init__(self, message: str = ''):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidDecision(EngineError):
    code = 'INVALID_DECISION'


class WrongPhase(EngineError):
    code = 'WRONG_PHASE'

    def __init__(self, message: str = '', phase: Optional[str] = None):
        super().__init__(message)
        self.phase = phase


class SessionNotFound(EngineError):
    code = 'SESSION_NOT_FOUND'


class SessionTimeout(EngineError):
    """Raised to a caller that arrives after the session was auto-resolved.

    Not a hard failure: the sealed outcome is attached.
    """

    code = 'SESSION_TIMEOUT'

    def __init__(self, message: str = '', outcome=None):
        super().__init__(message)
        self.outcome = outcome


class AbilityError(EngineError):
    code = 'ABILITY_ERROR'

    def __init__(self, message: str = '', ability: Optional[str] = None):
        super().__init__(message)
        self.ability = ability


class AbilityLocked(AbilityError):
    code = 'ABILITY_LOCKED'


class AbilityOnCooldown(AbilityError):
    code = 'ABILITY_ON_COOLDOWN'

    def __init__(self, message: str = '', ability: Optional[str] = None, remaining: float = 0.0):
        super().__init__(message, ability)
        self.remaining = remaining


class AbilityAlreadyUsed(AbilityError):
    code = 'ABILITY_ALREADY_USED'


class AbilityInvalidContext(AbilityError):
    code = 'ABILITY_INVALID_CONTEXT'


class InternalInvariantError(EngineError):
    code = 'INTERNAL_INVARIANT'


class DeckExhausted(InternalInvariantError):
    code = 'DECK_EXHAUSTED'

    def __init__(self, requested: int, remaining: int):
        super().__init__(f"Cannot draw {requested} cards from deck of {remaining}")
        self.requested = requested
        self.remaining = remaining
