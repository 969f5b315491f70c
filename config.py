import os


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma-separated list of browser origins allowed to open the socket
    ALLOWED_ORIGINS = os.environ.get('ALLOWED_ORIGINS', '*')
    # Match clocks (seconds); hosts can change them per match before starting
    GAME_TIMER_ENABLED = _env_flag('GAME_TIMER_ENABLED', True)
    GAME_TIME_SEC = int(os.environ.get('GAME_TIME_SEC', '300'))
    TURN_TIMER_ENABLED = _env_flag('TURN_TIMER_ENABLED', True)
    TURN_TIME_SEC = int(os.environ.get('TURN_TIME_SEC', '10'))
    # Bot think time; capped at half the turn clock so bots never time out
    BOT_MOVE_DELAY_SEC = float(os.environ.get('BOT_MOVE_DELAY_SEC', '1.5'))
    HAND_SIZE = int(os.environ.get('HAND_SIZE', '7'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '4'))
    # Shuffle the discard pile back in when the deck runs dry. Off: short draws.
    RECYCLE_DISCARDS = _env_flag('RECYCLE_DISCARDS', False)
    # 'socketio' runs clocks as background tasks; 'manual' only moves when advanced
    MATCH_SCHEDULER = os.environ.get('MATCH_SCHEDULER', 'socketio')
