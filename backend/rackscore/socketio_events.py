from flask_socketio import join_room, leave_room, emit
from rackscore import db
from rackscore.models import Game


def _room_for(data):
    game_id = (data or {}).get('game_id')
    try:
        game_id = int(game_id)
    except (TypeError, ValueError):
        emit('error', {'message': 'game_id is required'})
        return None
    return f"game:{game_id}", game_id


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_game(data):
    resolved = _room_for(data)
    if not resolved:
        return
    room, game_id = resolved
    if db.session.get(Game, game_id) is None:
        emit('error', {'message': 'Game not found'})
        return
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_game(data):
    resolved = _room_for(data)
    if not resolved:
        return
    room, _ = resolved
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio_handlers = {
        'connect': handle_connect,
        'join_game': handle_join_game,
        'leave_game': handle_leave_game,
        'ping': handle_ping,
    }
    from rackscore import socketio
    for name, handler in socketio_handlers.items():
        socketio.on_event(name, handler, namespace='/ws')
        if testing:
            # Test-only mirror on default namespace
            socketio.on_event(name, handler, namespace='/')
