from flask import Blueprint, jsonify, request, current_app
from unoroom import registry
from unoroom.services.uno import (
    LifecycleError,
    RoomNotFound,
    UnoError,
    ValidationError,
    snapshot,
)

matches = Blueprint('matches', __name__)


@matches.errorhandler(UnoError)
def handle_uno_error(exc):
    if isinstance(exc, RoomNotFound):
        status = 404
    elif isinstance(exc, LifecycleError):
        status = 409
    elif isinstance(exc, ValidationError):
        status = 400
    else:
        status = 500
    return jsonify({'error': exc.message}), status


def _slot_from(data):
    try:
        return int(data.get('slot'))
    except (TypeError, ValueError):
        return None


@matches.route('/create', methods=['POST'])
def create_match():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Player name is required'}), 400
    game = registry.create(name)
    current_app.logger.info(f"[create] match={game.code} host={name!r}")
    return jsonify({'match_code': game.code, 'slot': 0}), 201


@matches.route('/join', methods=['POST'])
def join_match():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    code = data.get('match_code')
    if not all([code, name]):
        return jsonify({'error': 'Match code and player name are required'}), 400
    game = registry.get(code)
    slot = game.join(name)
    return jsonify({'match_code': game.code, 'slot': slot}), 201


@matches.route('/<string:code>/start', methods=['POST'])
def start_match(code):
    data = request.get_json(silent=True) or {}
    game = registry.get(code)
    if _slot_from(data) != 0:
        return jsonify({'error': 'Only the host can start the game'}), 403
    game.start_game()
    return jsonify(snapshot(game)), 200


@matches.route('/<string:code>/state', methods=['GET'])
def get_match_state(code):
    game = registry.get(code)
    with game.lock:
        return jsonify(snapshot(game)), 200


@matches.route('/<string:code>/settings', methods=['POST'])
def update_settings(code):
    data = request.get_json(silent=True) or {}
    game = registry.get(code)
    if _slot_from(data) != 0:
        return jsonify({'error': 'Only the host can change settings'}), 403
    game.update_settings(data.get('settings') or {})
    return jsonify(snapshot(game)), 200


@matches.route('/<string:code>/play', methods=['POST'])
def play_card(code):
    data = request.get_json(silent=True) or {}
    game = registry.get(code)
    with game.lock:
        if _slot_from(data) != game.current_player_index:
            return jsonify({'error': 'It is not your turn'}), 403
        game.human_play(data.get('card_index'), data.get('wild_color'))
        return jsonify(snapshot(game)), 200


@matches.route('/<string:code>/draw', methods=['POST'])
def draw_card(code):
    data = request.get_json(silent=True) or {}
    game = registry.get(code)
    with game.lock:
        if _slot_from(data) != game.current_player_index:
            return jsonify({'error': 'It is not your turn'}), 403
        game.human_draw()
        return jsonify(snapshot(game)), 200
