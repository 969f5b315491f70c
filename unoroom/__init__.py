import random

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config
from unoroom.services.uno import MatchRegistry

socketio = SocketIO(async_mode=None)
registry = MatchRegistry()


def _allowed_origins(value):
    if not value or value == '*':
        return '*'
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config.get('ALLOWED_ORIGINS'))
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from unoroom.main import main
    flask_app.register_blueprint(main)

    from unoroom.api.matches import matches
    flask_app.register_blueprint(matches, url_prefix='/api/matches')

    from unoroom.socketio_events import broadcast_state, register_socketio_handlers
    registry.init_app(flask_app, socketio=socketio, listeners=[broadcast_state])
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('simulate')
    @click.option('--players', default=4, show_default=True, type=click.IntRange(2, 4), help='Number of bots at the table.')
    @click.option('--seed', default=None, type=int, help='Seed for the shuffle and match code.')
    @click.option('--max-seconds', default=3600, show_default=True, type=int, help='Give up after this much virtual time.')
    def simulate_command(players, seed, max_seconds):
        """Plays an all-bot match on a virtual clock and prints the result."""
        from unoroom.services.uno import ManualScheduler, snapshot

        rng = random.Random(seed)
        scheduler = ManualScheduler(flask_app.logger)
        sim = MatchRegistry(scheduler=scheduler, rng=rng)
        sim.game_options = dict(registry.game_options)
        game = sim.create('Bot 1', is_computer=True, rng=rng)
        for n in range(2, players + 1):
            game.join(f"Bot {n}", is_computer=True)
        game.start_game()
        while not game.game_over and scheduler.now < max_seconds and scheduler.step():
            pass

        state = snapshot(game)
        click.echo(f"Match {state['match_code']}: {state['message']}")
        for p in state['players']:
            click.echo(f"  {p['name']}: {p['hand_size']} cards left")
        click.echo(f"Virtual time elapsed: {scheduler.now:.1f}s")
        sim.clear()

    flask_app.cli.add_command(simulate_command)

    return flask_app
