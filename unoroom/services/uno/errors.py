"""Error taxonomy for the match engine.

Validation errors reject a single action without touching state. Lifecycle
errors reject requests made in the wrong phase of a match. Resource errors
come from the deck running dry.
"""


class UnoError(Exception):
    """Base class for every error raised by the match engine."""

    message = 'Match error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(UnoError):
    message = 'Invalid action'


class InvalidIndex(ValidationError):
    message = 'No card at that position'


class IllegalMove(ValidationError):
    message = 'Card does not match the current color or kind'


class NotYourTurn(ValidationError):
    message = 'It is not your turn'


class LifecycleError(UnoError):
    message = 'Action not allowed at this point of the match'


class GameAlreadyStarted(LifecycleError):
    message = 'Game already started'


class MatchFull(LifecycleError):
    message = 'Match is full'


class MatchNotInProgress(LifecycleError):
    message = 'Match is not in progress'


class RoomNotFound(LifecycleError):
    message = 'Room not found'


class ResourceExhaustion(UnoError):
    message = 'Out of cards'


class EmptyDeck(ResourceExhaustion):
    message = 'Deck is empty'
