from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from pydantic import ValidationError
from typing import Dict, Any

from bingo_hub import socketio
from bingo_hub.realtime import caller_room, player_room, session_room
from bingo_hub.services.claims import ClaimSubmission


def _arbitrator():
    return current_app.extensions['claim_arbitrator']


def _caller():
    return current_app.extensions['number_caller']


def _watcher():
    return current_app.extensions['claim_queue_watcher']


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    _sid_to_ctx.pop(_get_sid(), None)


def handle_join_session(data):
    session_id = (data or {}).get('session_id')
    player_id = (data or {}).get('player_id')
    is_caller = bool((data or {}).get('is_caller'))
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    room = session_room(session_id)
    join_room(room)
    rooms = [room]
    if player_id is not None:
        join_room(player_room(str(player_id)))
        rooms.append(player_room(str(player_id)))
    _sid_to_ctx[_get_sid()] = {'session_id': session_id, 'player_id': player_id, 'is_caller': is_caller}
    already_watched = False
    if is_caller:
        join_room(caller_room(session_id))
        rooms.append(caller_room(session_id))
        already_watched = _watcher().is_watching(session_id)
        _watcher().watch(session_id)
    emit('joined', {'room': room, 'rooms': rooms, 'game': _caller().state(session_id).to_dict()})
    if already_watched:
        # A fresh watch pushes its own snapshot; a late-joining caller needs one
        claims = _arbitrator().claims_for_session(session_id)
        emit('claim_queue', {'session_id': session_id, 'claims': [c.to_dict() for c in claims]})


def handle_leave_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    ctx = _sid_to_ctx.pop(_get_sid(), None) or {}
    leave_room(session_room(session_id))
    if ctx.get('is_caller'):
        leave_room(caller_room(session_id))
    if ctx.get('player_id') is not None:
        leave_room(player_room(str(ctx['player_id'])))
    emit('left', {'room': session_room(session_id)})


def handle_submit_claim(data):
    try:
        submission = ClaimSubmission.model_validate(data or {})
    except ValidationError as exc:
        emit('error', {'message': 'Invalid claim', 'details': exc.errors(include_url=False, include_context=False)})
        return
    session_id = submission.session_id
    if session_id:
        pattern = _caller().claim_pattern(session_id, submission.win_pattern)
        if pattern is None:
            game = _caller().state(session_id)
            emit('claim_ack', {
                'accepted': False,
                'session_id': session_id,
                'ticket_serial': submission.ticket.serial,
                'win_pattern': submission.win_pattern,
                'active_pattern': game.win_pattern,
                'game_complete': game.complete,
            })
            return
        submission = submission.model_copy(update={'win_pattern': pattern})
    accepted = _arbitrator().submit(submission)
    emit('claim_ack', {
        'accepted': accepted,
        'session_id': submission.session_id,
        'ticket_serial': submission.ticket.serial,
        'win_pattern': submission.win_pattern,
    })


def handle_process_claim(data):
    data = data or {}
    session_id = data.get('session_id')
    claim_id = data.get('claim_id')
    is_valid = data.get('is_valid')
    if not session_id or not claim_id or not isinstance(is_valid, bool):
        emit('error', {'message': 'session_id, claim_id and is_valid are required'})
        return
    settled = _caller().settle_claim(claim_id, session_id, is_valid)
    emit('claim_processed', {'claim_id': claim_id, 'settled': settled})
    if settled and is_valid:
        socketio.emit('game_state', _caller().state(session_id).to_dict(), to=session_room(session_id), namespace='/ws')


def handle_call_number(data):
    data = data or {}
    session_id = data.get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    number = data.get('number')
    if number is not None and not isinstance(number, int):
        emit('error', {'message': 'number must be an integer'})
        return
    called = _caller().call_number(session_id, number)
    if called is None:
        emit('error', {'message': 'Number already called or out of range'})
        return
    payload = _caller().state(session_id).to_dict()
    payload['number'] = called
    socketio.emit('number_called', payload, to=session_room(session_id), namespace='/ws')


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
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'submit_claim': handle_submit_claim,
        'process_claim': handle_process_claim,
        'call_number': handle_call_number,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for name, handler in handlers.items():
            socketio.on_event(name, handler, namespace=namespace)
