from flask import current_app
from flask_login import current_user
from flask_socketio import emit, join_room, leave_room

from cardjudge import socketio
from cardjudge.services.push import NAMESPACE, game_room, player_room


def _player_id():
    if current_user and current_user.is_authenticated:
        return current_user.player_id
    return None


def handle_connect():
    # Signed-in sockets get their pushes in a personal room
    player_id = _player_id()
    if player_id:
        join_room(player_room(player_id))
    emit('connected', {'message': f"Connected to {NAMESPACE}", 'player_id': player_id})


def handle_disconnect():
    current_app.logger.debug(f"[ws-disconnect] player={_player_id()}")


def _game_id(data):
    try:
        return int((data or {}).get('game_id'))
    except (TypeError, ValueError):
        return None


def handle_join_game(data):
    game_id = _game_id(data)
    if game_id is None:
        emit('error', {'message': 'game_id is required'})
        return
    room = game_room(game_id)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_id = _game_id(data)
    if game_id is None:
        emit('error', {'message': 'game_id is required'})
        return
    room = game_room(game_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for namespace in (NAMESPACE, '/') if testing else (NAMESPACE,):
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
