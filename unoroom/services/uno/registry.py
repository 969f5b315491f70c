import logging
import random
import threading
from typing import Callable, Dict, List, Optional

from .engine import DEFAULT_SETTINGS, Game, StateChanged
from .errors import RoomNotFound
from .scheduler import ManualScheduler, SocketIOScheduler, TimerScheduler

logger = logging.getLogger(__name__)


def generate_match_code(rng: random.Random, taken) -> str:
    """Generate a unique 4-digit match code."""
    while True:
        code = str(rng.randint(1000, 9999))
        if code not in taken:
            return code


class MatchRegistry:
    """In-memory table of live matches keyed by their numeric code."""

    def __init__(self, scheduler: Optional[TimerScheduler] = None, rng: Optional[random.Random] = None):
        self.scheduler = scheduler or ManualScheduler()
        self.rng = rng or random.Random()
        self.logger = logger
        self.listeners: List[Callable[[StateChanged], None]] = []
        self.game_options = {}
        self._matches: Dict[str, Game] = {}
        self._lock = threading.Lock()

    def init_app(self, app, socketio=None, listeners=None) -> None:
        cfg = app.config
        self.logger = app.logger
        if cfg.get('MATCH_SCHEDULER', 'socketio') == 'manual' or socketio is None:
            self.scheduler = ManualScheduler(app.logger)
        else:
            self.scheduler = SocketIOScheduler(socketio, app.logger)
        self.listeners = list(listeners or [])
        self.game_options = {
            'settings': {
                'game_timer_enabled': bool(cfg.get('GAME_TIMER_ENABLED', DEFAULT_SETTINGS['game_timer_enabled'])),
                'game_time_seconds': int(cfg.get('GAME_TIME_SEC', DEFAULT_SETTINGS['game_time_seconds'])),
                'turn_timer_enabled': bool(cfg.get('TURN_TIMER_ENABLED', DEFAULT_SETTINGS['turn_timer_enabled'])),
                'turn_time_seconds': int(cfg.get('TURN_TIME_SEC', DEFAULT_SETTINGS['turn_time_seconds'])),
            },
            'hand_size': int(cfg.get('HAND_SIZE', 7)),
            'max_players': int(cfg.get('MAX_PLAYERS', 4)),
            'bot_move_delay': float(cfg.get('BOT_MOVE_DELAY_SEC', 1.5)),
            'recycle_discards': bool(cfg.get('RECYCLE_DISCARDS', False)),
        }
        self.clear()
        app.extensions['unoroom'] = self

    def create(self, host_name: str, is_computer: bool = False, rng: Optional[random.Random] = None) -> Game:
        with self._lock:
            code = generate_match_code(self.rng, self._matches)
            game = Game(code, self.scheduler, rng=rng, logger_=self.logger, **self.game_options)
            self._matches[code] = game
        for listener in self.listeners:
            game.subscribe(listener)
        game.host_game(host_name, is_computer=is_computer)
        return game

    def get(self, code) -> Game:
        game = self._matches.get(str(code).strip()) if code is not None else None
        if game is None:
            raise RoomNotFound()
        return game

    def delete(self, code) -> None:
        with self._lock:
            game = self._matches.pop(str(code), None)
        if game is not None:
            game.stop()
            self.logger.info(f"[match-delete] match={code}")

    def clear(self) -> None:
        with self._lock:
            games = list(self._matches.values())
            self._matches = {}
        for game in games:
            game.stop()

    def codes(self) -> List[str]:
        return list(self._matches)

    def __contains__(self, code):
        return str(code) in self._matches

    def __len__(self):
        return len(self._matches)
