"""Push notifications and live state updates over Socket.IO.

Players receive pushes in their personal `player:<id>` room and state
updates in the `game:<id>` room. Delivery is fire-and-forget: it always
happens after the game transaction has committed and a failure is
logged, never raised back into game logic.
"""
from flask import current_app

from cardjudge import socketio
from cardjudge.models import RANDO_CARDRISSIAN

NAMESPACE = '/ws'

PLAYER_JOINED = 'player-joined'
GAME_STARTED = 'game-started'
ALL_RESPONSES = 'all-responses'
TURN_RESET = 'turn-reset'
NEW_JUDGE = 'new-judge'
NEW_WINNER = 'new-winner'
NEW_ROUND = 'new-round'
GAME_OVER = 'game-over'
WAVE = 'wave'


def player_room(player_id):
    return f"player:{player_id}"


def game_room(game_id):
    return f"game:{game_id}"


def deliver(player_id, message):
    socketio.emit('push', message, to=player_room(player_id), namespace=NAMESPACE)


def notify(player_ids, kind, payload):
    """Send one push of `kind` to each player; the bot never gets one."""
    sent = 0
    for player_id in dict.fromkeys(player_ids):
        if not player_id or player_id == RANDO_CARDRISSIAN:
            continue
        message = {'kind': kind, **payload}
        try:
            deliver(player_id, message)
            sent += 1
        except Exception as exc:
            current_app.logger.warning(f"[push-failed] kind={kind} player={player_id} error={exc}")
    current_app.logger.info(f"[push] kind={kind} sent={sent}")
    return sent


def broadcast_state(game):
    try:
        socketio.emit('state_update', {'game_id': game.id, 'gid': game.gid, 'state': game.state},
                      to=game_room(game.id), namespace=NAMESPACE)
    except Exception as exc:
        current_app.logger.warning(f"[state-update-failed] game={game.id} error={exc}")
