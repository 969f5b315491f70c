import os
import random
import sys
import pytest

# Ensure the project root (containing the `unoroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from unoroom import create_app, registry, socketio
from unoroom.services.uno import Card, Game, ManualScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    ALLOWED_ORIGINS = '*'
    GAME_TIMER_ENABLED = True
    GAME_TIME_SEC = 300
    TURN_TIMER_ENABLED = True
    TURN_TIME_SEC = 10
    BOT_MOVE_DELAY_SEC = 1.5
    HAND_SIZE = 7
    MAX_PLAYERS = 4
    RECYCLE_DISCARDS = False
    MATCH_SCHEDULER = 'manual'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
        registry.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def make_game(scheduler):
    """Build a started match with the given seats, ready for hands to be rigged."""
    def _make(humans=('Alice',), bots=(), seed=7, **kwargs):
        game = Game('1234', scheduler, rng=random.Random(seed), **kwargs)
        game.host_game(humans[0])
        for name in humans[1:]:
            game.join(name)
        for name in bots:
            game.join(name, is_computer=True)
        game.start_game()
        return game
    return _make


_next_card_id = [1000]


def card(color, kind):
    """Loose card for rigged hands; ids start well above the deck's range."""
    _next_card_id[0] += 1
    number = int(kind) if kind.isdigit() else None
    return Card(_next_card_id[0], color, kind, number)


def rig(game, hands, top=None, color=None, current=0):
    for player, hand in zip(game.players, hands):
        player.hand = list(hand)
    if top is not None:
        game.top_card = top
        game.current_color = color or top.color
    game.current_player_index = current
