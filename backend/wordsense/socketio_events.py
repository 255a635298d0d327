from flask import current_app
from flask_socketio import emit, join_room, leave_room

from wordsense import socketio
from wordsense.services.rounds import EmbeddingProviderError

NAMESPACE = '/ws'


def session_room(session_id: str) -> str:
    return f"session:{session_id}"


def broadcast_round_state(session_id, payload) -> None:
    """Push a round update to every client watching the session."""
    # Use socketio.emit since this may be called from a timer task
    socketio.emit('round_state', payload, to=session_room(session_id), namespace=NAMESPACE)


def _session_id(data):
    data = data or {}
    return data.get('sessionId') or data.get('serverId')


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_join_session(data):
    service = current_app.extensions['wordsense']
    try:
        session = service.registry.get_or_create(_session_id(data))
    except EmbeddingProviderError:
        current_app.logger.exception('[socket] session setup failed')
        emit('error', {'message': 'Embedding service unavailable', 'retryable': True})
        return
    room = session_room(session.session_id)
    join_room(room)
    emit('joined', {'room': room, 'sessionId': session.session_id})
    state = service.scheduler.describe(session)
    state['sessionId'] = session.session_id
    emit('round_state', state)


def handle_leave_session(data):
    service = current_app.extensions['wordsense']
    sid = service.registry.normalize_id(_session_id(data))
    room = session_room(sid)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('join_session', handle_join_session, namespace=NAMESPACE)
    socketio.on_event('leave_session', handle_leave_session, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
