from flask_socketio import join_room, leave_room, emit
from flask import request, current_app
from unoroom import socketio, registry
from unoroom.services.uno import RoomNotFound, StateChanged, UnoError, snapshot
from typing import Dict, Any


# ---- Per-socket match context ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_connected_humans: Dict[str, int] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _room(match_code: str) -> str:
    return f"match:{match_code}"


def broadcast_state(event: StateChanged) -> None:
    """StateChanged listener: push the snapshot to everyone in the match room."""
    game = event.game
    # Use socketio.emit since this may be called from a background task
    socketio.emit('game_state', snapshot(game), to=_room(game.code), namespace='/ws')


def _attach(match_code: str, slot: int) -> None:
    join_room(_room(match_code))
    _sid_to_ctx[_get_sid()] = {'match_code': match_code, 'slot': slot}
    _connected_humans[match_code] = _connected_humans.get(match_code, 0) + 1


def _detach() -> None:
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    code = ctx['match_code']
    leave_room(_room(code))
    _connected_humans[code] = max(0, _connected_humans.get(code, 0) - 1)
    if _connected_humans[code] == 0:
        # No resumption: once every human is gone the match and its clocks go too
        _connected_humans.pop(code, None)
        registry.delete(code)


def _current_match():
    ctx = _sid_to_ctx.get(_get_sid())
    if not ctx:
        return None, None
    try:
        return registry.get(ctx['match_code']), ctx['slot']
    except RoomNotFound:
        return None, None


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    _detach()


def handle_create_game(data):
    name = ((data or {}).get('name') or '').strip()
    if not name:
        return {'error': 'Player name is required'}
    _detach()
    game = registry.create(name)
    _attach(game.code, 0)
    current_app.logger.info(f"[create] match={game.code} host={name!r} sid={_get_sid()}")
    emit('game_state', snapshot(game), to=_room(game.code))
    return {'match_code': game.code, 'slot': 0}


def handle_join_game(data):
    data = data or {}
    name = (data.get('name') or '').strip()
    code = data.get('match_code')
    if not code or not name:
        return {'error': 'match_code and name are required'}
    try:
        game = registry.get(code)
        ctx = _sid_to_ctx.get(_get_sid())
        if ctx and ctx['match_code'] == game.code:
            return {'error': 'Already in this match'}
        _detach()
        _attach(game.code, None)
        slot = game.join(name)
    except RoomNotFound as exc:
        return {'error': exc.message}
    except UnoError as exc:
        _detach()
        return {'error': exc.message}
    _sid_to_ctx[_get_sid()]['slot'] = slot
    return {'match_code': game.code, 'slot': slot}


def handle_start_game(*args):
    game, slot = _current_match()
    if game is None:
        return {'error': 'Not in a match'}
    if slot != 0:
        return {'error': 'Only the host can start the game'}
    try:
        game.start_game()
    except UnoError as exc:
        return {'error': exc.message}
    return {'ok': True}


def handle_play_card(data):
    data = data or {}
    game, slot = _current_match()
    if game is None:
        return
    with game.lock:
        # Out-of-turn actions are dropped, not queued
        if game.current_player_index != slot:
            return
        try:
            game.human_play(data.get('card_index'), data.get('wild_color'))
        except UnoError as exc:
            emit('error', {'message': exc.message})


def handle_draw_card(*args):
    game, slot = _current_match()
    if game is None:
        return
    with game.lock:
        if game.current_player_index != slot:
            return
        try:
            game.human_draw()
        except UnoError as exc:
            emit('error', {'message': exc.message})


def handle_update_settings(data):
    game, slot = _current_match()
    if game is None or slot != 0:
        return
    try:
        game.update_settings(data or {})
    except UnoError as exc:
        emit('error', {'message': exc.message})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'create_game': handle_create_game,
        'join_game': handle_join_game,
        'start_game': handle_start_game,
        'play_card': handle_play_card,
        'draw_card': handle_draw_card,
        'update_settings': handle_update_settings,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
