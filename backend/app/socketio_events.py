from flask_socketio import join_room, leave_room, emit
from app import socketio
from app.services.game.tables import normalize_table_id

NAMESPACE = '/ws'


def table_room(table_id) -> str:
    return f"table:{normalize_table_id(table_id)}"


def notify_table(table_id, event: str, payload: dict) -> None:
    """Push an event to every client watching one table."""
    socketio.emit(event, payload, to=table_room(table_id), namespace=NAMESPACE)


def notify_all(event: str, payload: dict) -> None:
    socketio.emit(event, payload, namespace=NAMESPACE)


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_table(data):
    table_id = (data or {}).get('table_id')
    if not table_id:
        emit('error', {'message': 'table_id is required'})
        return
    room = table_room(table_id)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_table(data):
    table_id = (data or {}).get('table_id')
    if not table_id:
        emit('error', {'message': 'table_id is required'})
        return
    room = table_room(table_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('join_table', handle_join_table, namespace=NAMESPACE)
    socketio.on_event('leave_table', handle_leave_table, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('join_table', handle_join_table, namespace='/')
        socketio.on_event('leave_table', handle_leave_table, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
