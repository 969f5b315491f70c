"""Wire contract: the snapshot broadcast to every client after a state change.

``snapshot`` only reads from the game, so sending the same snapshot twice
never changes anything on either side.
"""

from typing import Any, Dict

from .engine import GAME_OVER, Game


def snapshot(game: Game) -> Dict[str, Any]:
    # every hand goes to every client; the UI hides the ones that are not yours
    return {
        'match_code': game.code,
        'players': [p.to_dict() for p in game.players],
        'top_card': game.top_card.to_dict() if game.top_card else None,
        'current_color': game.current_color,
        'current_player_index': game.current_player_index,
        'direction': game.direction,
        'phase': game.phase,
        'game_over': game.phase == GAME_OVER,
        'winner': game.winner.name if game.winner else None,
        'message': game.message,
        'game_time_remaining': game.game_time_remaining,
        'turn_time_remaining': game.turn_time_remaining,
        'deck_count': game.deck.count,
        'settings': dict(game.settings),
    }
