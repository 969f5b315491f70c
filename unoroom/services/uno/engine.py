"""Authoritative match state machine.

A ``Game`` owns the deck, the seated players and turn order, resolves card
effects, and drives its own clocks through a :class:`TimerScheduler`. Every
public entry point and every timer callback runs under ``Game.lock`` so a
match never sees two mutations at once.

Phases: LOBBY -> HOSTING -> PLAYING -> GAME_OVER.
"""

import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .cards import (
    COLORS,
    DISCARD_ALL,
    DRAW2,
    REVERSE,
    SKIP,
    WILD4,
    WILD_DISCARD_ALL,
    Card,
    Deck,
)
from .errors import (
    GameAlreadyStarted,
    IllegalMove,
    LifecycleError,
    MatchFull,
    MatchNotInProgress,
    NotYourTurn,
    ValidationError,
)
from .player import Player
from .scheduler import TimerScheduler

LOBBY = 'LOBBY'
HOSTING = 'HOSTING'
PLAYING = 'PLAYING'
GAME_OVER = 'GAME_OVER'

GAME_CLOCK = 'game_clock'
TURN_CLOCK = 'turn_clock'
BOT_MOVE = 'bot_move'

BOT_NAMES = ('Bot 1', 'Bot 2', 'Bot 3')

DEFAULT_SETTINGS = {
    'game_timer_enabled': True,
    'game_time_seconds': 300,
    'turn_timer_enabled': True,
    'turn_time_seconds': 10,
}

PENALTY_CARDS = {DRAW2: 2, WILD4: 4}

logger = logging.getLogger(__name__)


@dataclass
class StateChanged:
    game: 'Game'


class Game:
    def __init__(
        self,
        code,
        scheduler: TimerScheduler,
        rng: Optional[random.Random] = None,
        settings: Optional[dict] = None,
        hand_size: int = 7,
        max_players: int = 4,
        bot_move_delay: float = 1.5,
        recycle_discards: bool = False,
        logger_=None,
    ):
        self.code = code
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.hand_size = hand_size
        self.max_players = max_players
        self.bot_move_delay = bot_move_delay
        self.recycle_discards = recycle_discards
        self.logger = logger_ or logger

        self.deck = Deck(self.rng)
        self.players: List[Player] = []
        self.current_player_index = 0
        self.direction = 1
        self.top_card: Optional[Card] = None
        self.current_color: Optional[str] = None
        self.discard_pile: List[Card] = []
        self.phase = LOBBY
        self.winner: Optional[Player] = None
        self.message = 'Welcome to Uno!'

        self.settings = dict(DEFAULT_SETTINGS)
        if settings:
            self.settings.update(settings)
        self.game_time_remaining = self.settings['game_time_seconds']
        self.turn_time_remaining = self.settings['turn_time_seconds']

        self.lock = threading.RLock()
        self._listeners: List[Callable[[StateChanged], None]] = []

    # ---- observers ----

    def subscribe(self, listener: Callable[[StateChanged], None]) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[StateChanged], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        event = StateChanged(self)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                self.logger.exception(f"[notify-error] match={self.code} listener={listener!r}")

    # ---- read helpers ----

    @property
    def game_over(self) -> bool:
        return self.phase == GAME_OVER

    @property
    def current_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self.current_player_index]

    def is_playable(self, card: Card) -> bool:
        return card.is_wild or card.color == self.current_color or card.kind == self.top_card.kind

    def _index_after(self, steps: int = 1) -> int:
        return (self.current_player_index + self.direction * steps) % len(self.players)

    def _require_playing(self) -> None:
        if self.phase != PLAYING:
            raise MatchNotInProgress()

    # ---- lobby ----

    def host_game(self, name: str, is_computer: bool = False) -> None:
        with self.lock:
            if self.phase not in (LOBBY, HOSTING):
                raise GameAlreadyStarted()
            self.phase = HOSTING
            self.players = [Player(name, is_computer)]
            self.message = f"Waiting for players... Room Code: {self.code}"
            self.logger.info(f"[host] match={self.code} host={name!r}")
            self._notify()

    def join(self, name: str, is_computer: bool = False) -> int:
        with self.lock:
            if self.phase not in (LOBBY, HOSTING):
                raise GameAlreadyStarted()
            if len(self.players) >= self.max_players:
                raise MatchFull()
            self.players.append(Player(name, is_computer))
            slot = len(self.players) - 1
            self.message = f"{name} joined the game"
            self.logger.info(f"[join] match={self.code} player={name!r} slot={slot}")
            self._notify()
            return slot

    def update_settings(self, patch: dict) -> None:
        with self.lock:
            merged = dict(self.settings)
            for key, value in (patch or {}).items():
                if key not in DEFAULT_SETTINGS:
                    continue
                if key.endswith('_enabled'):
                    if not isinstance(value, bool):
                        raise ValidationError(f"{key} must be true or false")
                else:
                    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                        raise ValidationError(f"{key} must be a whole number of seconds")
                    try:
                        value = int(value)
                    except (TypeError, ValueError):
                        raise ValidationError(f"{key} must be a whole number of seconds")
                    if value <= 0:
                        raise ValidationError(f"{key} must be positive")
                merged[key] = value
            self.settings = merged
            if self.phase in (LOBBY, HOSTING):
                self.game_time_remaining = merged['game_time_seconds']
                self.turn_time_remaining = merged['turn_time_seconds']
            self.logger.info(f"[settings] match={self.code} settings={merged}")
            self._notify()

    # ---- match flow ----

    def start_game(self) -> None:
        with self.lock:
            if self.phase not in (LOBBY, HOSTING):
                raise GameAlreadyStarted()
            if not self.players:
                raise LifecycleError('Nobody has joined this match')
            if len(self.players) == 1:
                for bot_name in BOT_NAMES:
                    self.players.append(Player(bot_name, is_computer=True))

            self.phase = PLAYING
            self.direction = 1
            self.current_player_index = 0
            self.winner = None
            self.discard_pile = []
            self.deck.reset()
            self.deck.shuffle()
            for player in self.players:
                player.hand = []
                player.draw(self.deck, self.hand_size)

            # Wilds flipped while looking for a starter stay out of the deck
            top = self.deck.draw()
            while top.is_wild:
                self.discard_pile.append(top)
                top = self.deck.draw()
            self.top_card = top
            self.current_color = top.color

            self.game_time_remaining = self.settings['game_time_seconds']
            self.turn_time_remaining = self.settings['turn_time_seconds']
            self.message = f"Game started! {self.current_player.name} goes first."
            self.logger.info(
                f"[match-start] match={self.code} players={len(self.players)} top={top} set_aside={len(self.discard_pile)}"
            )

            self._start_game_clock()
            self._start_turn_clock()
            self._notify()
            if self.current_player.is_computer:
                self._schedule_bot_move()

    def next_turn(self) -> None:
        with self.lock:
            if self.phase != PLAYING:
                return
            self.current_player_index = self._index_after(1)
            player = self.current_player
            self._start_turn_clock()
            self.logger.debug(f"[turn] match={self.code} slot={self.current_player_index} player={player.name!r}")
            self._notify()
            if player.is_computer:
                self._schedule_bot_move()

    def play_computer_turn(self) -> None:
        with self.lock:
            if self.phase != PLAYING:
                return
            player = self.current_player
            if not player.is_computer:
                return
            idx = player.find_playable_card(self.top_card, self.current_color)
            if idx is None:
                self.draw_card(player)
                return
            chosen = player.choose_wild_color() if player.hand[idx].is_wild else None
            self.play_card(player, idx, chosen)

    def play_card(self, player: Player, index: int, chosen_color: Optional[str] = None) -> Card:
        with self.lock:
            card = player.card_at(index)
            if card.is_wild and chosen_color not in COLORS:
                raise ValidationError('Choose red, green, blue or yellow for a wild card')

            self._end_turn()
            player.play(index)
            if self.top_card is not None:
                self.discard_pile.append(self.top_card)
            self.top_card = card
            self.current_color = chosen_color if card.is_wild else card.color
            self.message = f"{player.name} played {card}"
            self.logger.info(f"[play] match={self.code} player={player.name!r} card={card} color={self.current_color}")

            if self._check_win(player):
                return card

            skip_next = False
            if card.kind == SKIP:
                skip_next = True
            elif card.kind == REVERSE:
                self.direction *= -1
                skip_next = len(self.players) == 2
            elif card.kind in PENALTY_CARDS:
                victim = self.players[self._index_after(1)]
                drawn = self._deal(victim, PENALTY_CARDS[card.kind])
                self.message = f"{player.name} played {card}, {victim.name} draws {len(drawn)}"
                skip_next = True
            elif card.kind == WILD_DISCARD_ALL:
                self._discard_matching(player, self.current_color)
                if self._check_win(player):
                    return card
            elif card.kind == DISCARD_ALL:
                self._discard_matching(player, card.color)
                if self._check_win(player):
                    return card

            if skip_next:
                self.current_player_index = self._index_after(1)

            self._notify()
            self.next_turn()
            return card

    def draw_card(self, player: Player, timed_out: bool = False) -> List[Card]:
        with self.lock:
            self._end_turn()
            drawn = self._deal(player, 1)
            if not drawn:
                self.message = f"{player.name} could not draw, the deck is empty"
            elif timed_out:
                self.message = f"{player.name} ran out of time and drew a card"
            else:
                self.message = f"{player.name} drew a card"
            self.logger.info(f"[draw] match={self.code} player={player.name!r} drawn={len(drawn)} timed_out={timed_out}")
            self._notify()
            self.next_turn()
            return drawn

    def human_play(self, index: int, wild_color: Optional[str] = None) -> Card:
        with self.lock:
            self._require_playing()
            player = self.current_player
            if player.is_computer:
                raise NotYourTurn()
            card = player.card_at(index)
            if not self.is_playable(card):
                raise IllegalMove(f"{card} does not match {self.current_color} or {self.top_card.kind}")
            return self.play_card(player, index, wild_color)

    def human_draw(self) -> List[Card]:
        with self.lock:
            self._require_playing()
            player = self.current_player
            if player.is_computer:
                raise NotYourTurn()
            return self.draw_card(player)

    def stop(self) -> None:
        self.scheduler.cancel_match(self.code)

    # ---- effects ----

    def _deal(self, player: Player, count: int) -> List[Card]:
        if self.recycle_discards and self.deck.count < count and self.discard_pile:
            self.logger.info(f"[recycle] match={self.code} cards={len(self.discard_pile)}")
            self.deck.refill(self.discard_pile)
            self.discard_pile = []
        return player.draw(self.deck, count)

    def _discard_matching(self, player: Player, color: str) -> None:
        removed = player.discard_color(color)
        if removed:
            self.discard_pile.extend(removed)
            self.message = f"{self.message} and discarded {len(removed)} {color} card{'s' if len(removed) != 1 else ''}"

    def _check_win(self, player: Player) -> bool:
        if player.hand:
            return False
        self._finish(player, f"{player.name} Wins!")
        return True

    def _finish(self, winner: Player, message: str) -> None:
        self.phase = GAME_OVER
        self.winner = winner
        self.message = message
        self.scheduler.cancel_match(self.code)
        self.logger.info(f"[game-over] match={self.code} winner={winner.name!r}")
        self._notify()

    def end_by_time(self) -> None:
        with self.lock:
            if self.phase != PLAYING:
                return
            # min() keeps the earliest seat among equal hand sizes
            winner = min(self.players, key=lambda p: len(p.hand))
            self._finish(winner, f"Time's Up! {winner.name} wins with fewest cards!")

    # ---- clocks ----

    def _start_game_clock(self) -> None:
        key = (self.code, GAME_CLOCK)
        self.scheduler.cancel(key)
        if self.settings['game_timer_enabled']:
            self.scheduler.schedule(key, 1, self._tick_game_clock, repeat=True, lock=self.lock)

    def _start_turn_clock(self) -> None:
        key = (self.code, TURN_CLOCK)
        self.scheduler.cancel(key)
        self.turn_time_remaining = self.settings['turn_time_seconds']
        if self.settings['turn_timer_enabled']:
            self.scheduler.schedule(key, 1, self._tick_turn_clock, repeat=True, lock=self.lock)

    def _end_turn(self) -> None:
        self.scheduler.cancel((self.code, TURN_CLOCK))
        self.scheduler.cancel((self.code, BOT_MOVE))

    def _schedule_bot_move(self) -> None:
        delay = self.bot_move_delay
        if self.settings['turn_timer_enabled']:
            # a bot has to move before its own turn clock runs out
            delay = min(delay, self.settings['turn_time_seconds'] / 2)
        self.scheduler.schedule((self.code, BOT_MOVE), delay, self.play_computer_turn, lock=self.lock)

    def _tick_game_clock(self) -> None:
        with self.lock:
            if self.phase != PLAYING:
                return
            self.game_time_remaining -= 1
            if self.game_time_remaining <= 0:
                self.game_time_remaining = 0
                self.end_by_time()
                return
            self._notify()

    def _tick_turn_clock(self) -> None:
        with self.lock:
            if self.phase != PLAYING:
                return
            self.turn_time_remaining -= 1
            if self.turn_time_remaining <= 0:
                self.turn_time_remaining = 0
                player = self.current_player
                self.logger.info(f"[turn-timeout] match={self.code} player={player.name!r}")
                self.draw_card(player, timed_out=True)
                return
            if not self.settings['game_timer_enabled']:
                self._notify()
