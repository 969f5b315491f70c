"""Uno match domain: cards, players, the match engine and its timers.

Pure(ish) domain logic imported by the HTTP routes and socket handlers,
keeping transport concerns separated from the rules of play.
"""

from .cards import COLORS, Card, Deck
from .engine import GAME_OVER, HOSTING, LOBBY, PLAYING, Game, StateChanged
from .errors import (
    EmptyDeck,
    GameAlreadyStarted,
    IllegalMove,
    InvalidIndex,
    LifecycleError,
    MatchFull,
    MatchNotInProgress,
    NotYourTurn,
    ResourceExhaustion,
    RoomNotFound,
    UnoError,
    ValidationError,
)
from .player import Player
from .projection import snapshot
from .registry import MatchRegistry
from .scheduler import ManualScheduler, SocketIOScheduler, TimerScheduler
