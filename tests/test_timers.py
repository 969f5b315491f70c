import random
import threading

import pytest

from unoroom.services.uno import GAME_OVER, Game, ManualScheduler, SocketIOScheduler
from unoroom.services.uno.engine import TURN_CLOCK
from conftest import card, rig


def test_game_clock_ends_match_with_fewest_cards(make_game):
    game = make_game(humans=('Alice',), settings={'game_time_seconds': 5})
    hands = [[card('blue', str(n)) for n in range(size)] for size in (3, 1, 5, 2)]
    rig(game, hands)
    game.scheduler.advance(4)
    assert game.phase != GAME_OVER
    assert game.game_time_remaining == 1
    game.scheduler.advance(1)
    assert game.phase == GAME_OVER
    assert game.winner is game.players[1]
    assert game.game_time_remaining == 0
    assert "Time's Up!" in game.message
    assert game.scheduler.active_keys() == []


def test_game_clock_tie_goes_to_earliest_seat(make_game):
    game = make_game(humans=('Alice', 'Bob', 'Cara'))
    rig(game, [[card('blue', '1')] * 2, [card('blue', '2')], [card('blue', '3')]])
    game.end_by_time()
    assert game.winner.name == 'Bob'


def test_game_clock_counts_down_from_setting(scheduler, make_game):
    game = make_game(humans=('Alice', 'Bob'))
    scheduler.advance(3)
    assert game.game_time_remaining == 297


def test_turn_clock_forces_a_single_draw(make_game):
    game = make_game(humans=('Alice', 'Bob'))
    game.scheduler.advance(9)
    assert game.turn_time_remaining == 1
    assert len(game.players[0].hand) == 7
    game.scheduler.advance(1)
    assert len(game.players[0].hand) == 8
    assert len(game.players[1].hand) == 7
    assert game.current_player_index == 1
    assert game.turn_time_remaining == 10
    assert 'ran out of time' in game.message
    game.scheduler.advance(1)
    assert game.turn_time_remaining == 9


def test_action_resets_turn_clock(make_game):
    game = make_game(humans=('Alice', 'Bob'))
    game.scheduler.advance(5)
    game.human_draw()
    assert game.turn_time_remaining == 10
    game.scheduler.advance(6)
    # Alice's old clock would have fired at t=10
    assert game.current_player_index == 1
    assert len(game.players[1].hand) == 7
    assert game.turn_time_remaining == 4
    game.scheduler.advance(4)
    assert len(game.players[1].hand) == 8
    assert game.current_player_index == 0


def test_disabled_turn_clock_never_fires(make_game):
    game = make_game(humans=('Alice', 'Bob'))
    game.update_settings({'turn_timer_enabled': False})
    game.human_draw()
    game.scheduler.advance(60)
    assert game.current_player_index == 1
    assert len(game.players[1].hand) == 7
    assert (game.code, TURN_CLOCK) not in game.scheduler.active_keys()


def test_disabled_game_clock_never_ends_match(scheduler):
    game = Game('1234', scheduler, settings={'game_timer_enabled': False, 'turn_timer_enabled': False})
    game.host_game('Alice')
    game.join('Bob')
    game.start_game()
    scheduler.advance(1000)
    assert game.phase != GAME_OVER
    assert scheduler.active_keys() == []


def test_stop_cancels_all_match_timers(make_game):
    game = make_game(humans=('Alice',))
    game.stop()
    game.scheduler.advance(30)
    assert game.current_player_index == 0
    assert len(game.players[0].hand) == 7


# ---- scheduler ----

def test_one_shot_timer_fires_once():
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule(('m', 'x'), 2, lambda: fired.append(scheduler.now))
    scheduler.advance(1)
    assert fired == []
    scheduler.advance(5)
    assert fired == [2]


def test_repeating_timer_fires_every_interval():
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule(('m', 'x'), 1, lambda: fired.append(scheduler.now), repeat=True)
    scheduler.advance(3)
    assert fired == [1, 2, 3]


def test_rescheduling_a_key_makes_old_timer_stale():
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule(('m', 'x'), 1, lambda: fired.append('old'), repeat=True)
    scheduler.schedule(('m', 'x'), 1, lambda: fired.append('new'), repeat=True)
    scheduler.advance(2)
    assert fired == ['new', 'new']


def test_cancel_match_only_touches_that_match():
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule(('a', 'x'), 1, lambda: fired.append('a'))
    scheduler.schedule(('b', 'x'), 1, lambda: fired.append('b'))
    scheduler.cancel_match('a')
    scheduler.advance(1)
    assert fired == ['b']


def test_failing_callback_stops_only_its_timer():
    scheduler = ManualScheduler()
    fired = []

    def boom():
        raise RuntimeError('bad tick')

    scheduler.schedule(('a', 'x'), 1, boom, repeat=True)
    scheduler.schedule(('b', 'x'), 1, lambda: fired.append('b'), repeat=True)
    scheduler.advance(3)
    assert fired == ['b', 'b', 'b']


def test_step_skips_stale_entries():
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule(('m', 'x'), 1, lambda: fired.append('x'))
    scheduler.schedule(('m', 'y'), 5, lambda: fired.append('y'))
    scheduler.cancel(('m', 'x'))
    assert scheduler.pending() == 1
    assert scheduler.step() is True
    assert fired == ['y']
    assert scheduler.now == 5
    assert scheduler.step() is False


@pytest.mark.parametrize('delay', [0.5, 1.5])
def test_fractional_delays(delay):
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule(('m', 'x'), delay, lambda: fired.append(scheduler.now))
    scheduler.advance(delay)
    assert fired == [delay]


# ---- Socket.IO background tasks ----

class FakeSocketIO:
    """Stands in for flask_socketio.SocketIO: tasks queue up until run_tasks()."""

    def __init__(self):
        self.tasks = []
        self.sleeps = []

    def start_background_task(self, target, *args):
        self.tasks.append((target, args))

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run_tasks(self):
        while self.tasks:
            target, args = self.tasks.pop(0)
            target(*args)


def test_background_one_shot_fires_once():
    sio = FakeSocketIO()
    scheduler = SocketIOScheduler(sio)
    fired = []
    scheduler.schedule(('m', 'x'), 2, lambda: fired.append('x'))
    assert fired == []
    sio.run_tasks()
    assert fired == ['x']
    assert sio.sleeps == [2]


def test_background_repeating_timer_stops_after_cancel():
    sio = FakeSocketIO()
    scheduler = SocketIOScheduler(sio)
    fired = []

    def tick():
        fired.append(len(fired) + 1)
        if len(fired) == 3:
            scheduler.cancel(('m', 'x'))

    scheduler.schedule(('m', 'x'), 1, tick, repeat=True)
    sio.run_tasks()
    assert fired == [1, 2, 3]
    assert sio.sleeps == [1, 1, 1]
    assert scheduler.active_keys() == []


def test_background_worker_replaced_before_waking_is_dropped():
    sio = FakeSocketIO()
    scheduler = SocketIOScheduler(sio)
    fired = []
    scheduler.schedule(('m', 'x'), 1, lambda: fired.append('old'), repeat=True)
    scheduler.schedule(('m', 'x'), 1, lambda: fired.append('new'))
    sio.run_tasks()
    assert fired == ['new']


def test_stale_turn_tick_waiting_on_lock_does_not_penalize_next_player():
    sio = FakeSocketIO()
    scheduler = SocketIOScheduler(sio)
    game = Game('1234', scheduler, rng=random.Random(7), settings={'turn_time_seconds': 1})
    game.host_game('Alice')
    game.join('Bob')
    game.start_game()
    key = (game.code, TURN_CLOCK)
    generation = scheduler._generations[key]

    # The tick wakes while Alice's draw holds the match lock
    game.lock.acquire()
    try:
        tick = threading.Thread(target=scheduler._fire, args=(key, generation, game._tick_turn_clock, game.lock))
        tick.start()
        tick.join(0.1)
        assert tick.is_alive()
        game.human_draw()
    finally:
        game.lock.release()
    tick.join(5)

    assert not tick.is_alive()
    assert len(game.players[0].hand) == 8
    assert len(game.players[1].hand) == 7
    assert game.current_player_index == 1
    assert game.turn_time_remaining == 1
