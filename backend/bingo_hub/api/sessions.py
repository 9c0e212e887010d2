from flask import Blueprint, jsonify, request, current_app
from pydantic import ValidationError

from bingo_hub import socketio
from bingo_hub.models import ClaimSettlement
from bingo_hub.realtime import NAMESPACE, session_room
from bingo_hub.services.claims import ClaimSubmission


sessions = Blueprint('sessions', __name__)


def _arbitrator():
    return current_app.extensions['claim_arbitrator']


def _caller():
    return current_app.extensions['number_caller']


def _watcher():
    return current_app.extensions['claim_queue_watcher']


@sessions.route('/<string:session_id>/register', methods=['POST'])
def register_session(session_id):
    data = request.get_json(silent=True) or {}
    _watcher().watch(session_id)
    game = _caller().state(session_id, data.get('game_type'))
    return jsonify({'session_id': session_id, 'registered': True, 'game': game.to_dict()})


@sessions.route('/<string:session_id>', methods=['DELETE'])
def unregister_session(session_id):
    _watcher().unwatch(session_id)
    _caller().end_session(session_id)
    return jsonify({'session_id': session_id, 'registered': False})


@sessions.route('/<string:session_id>/state', methods=['GET'])
def get_session_state(session_id):
    game = _caller().state(session_id)
    payload = game.to_dict()
    payload['registered'] = _arbitrator().is_registered(session_id)
    payload['pending_claims'] = len(_arbitrator().claims_for_session(session_id))
    return jsonify(payload)


@sessions.route('/<string:session_id>/claims', methods=['GET'])
def list_claims(session_id):
    return jsonify([c.to_dict() for c in _arbitrator().claims_for_session(session_id)])


@sessions.route('/<string:session_id>/claims', methods=['POST'])
def submit_claim(session_id):
    data = request.get_json(silent=True) or {}
    data['sessionId'] = session_id
    data.pop('session_id', None)
    try:
        submission = ClaimSubmission.model_validate(data)
    except ValidationError as exc:
        return jsonify({'error': 'Invalid claim', 'details': exc.errors(include_url=False, include_context=False)}), 400

    pattern = _caller().claim_pattern(session_id, submission.win_pattern)
    if pattern is None:
        game = _caller().state(session_id)
        return jsonify({
            'error': 'Claim does not match the active win pattern',
            'win_pattern': game.win_pattern,
            'game_complete': game.complete,
        }), 409
    submission = submission.model_copy(update={'win_pattern': pattern})

    if not _arbitrator().submit(submission):
        return jsonify({'error': 'Claim already pending for this ticket and pattern'}), 409
    return jsonify({'accepted': True}), 201


@sessions.route('/<string:session_id>/claims', methods=['DELETE'])
def clear_claims(session_id):
    _arbitrator().clear_claims_for_session(session_id)
    return jsonify({'session_id': session_id, 'pending_claims': 0})


@sessions.route('/<string:session_id>/claims/<string:claim_id>/process', methods=['POST'])
def process_claim(session_id, claim_id):
    data = request.get_json(silent=True) or {}
    is_valid = data.get('is_valid', data.get('isValid'))
    if not isinstance(is_valid, bool):
        return jsonify({'error': 'is_valid must be true or false'}), 400
    if not _caller().settle_claim(claim_id, session_id, is_valid):
        return jsonify({'error': 'Claim is not pending or could not be settled'}), 409
    game = _caller().state(session_id).to_dict()
    if is_valid:
        socketio.emit('game_state', game, to=session_room(session_id), namespace=NAMESPACE)
    return jsonify({'claim_id': claim_id, 'result': 'valid' if is_valid else 'invalid', 'game': game})


@sessions.route('/<string:session_id>/settlements', methods=['GET'])
def list_settlements(session_id):
    rows = ClaimSettlement.query.filter_by(session_id=session_id).order_by(ClaimSettlement.id).all()
    return jsonify([r.to_dict() for r in rows])


@sessions.route('/<string:session_id>/calls', methods=['POST'])
def call_number(session_id):
    data = request.get_json(silent=True) or {}
    number = data.get('number')
    if number is not None and not isinstance(number, int):
        return jsonify({'error': 'number must be an integer'}), 400
    called = _caller().call_number(session_id, number)
    if called is None:
        return jsonify({'error': 'Number already called or out of range'}), 400
    game = _caller().state(session_id)
    payload = game.to_dict()
    payload['number'] = called
    socketio.emit('number_called', payload, to=session_room(session_id), namespace=NAMESPACE)
    return jsonify(payload), 201


@sessions.route('/<string:session_id>/games/next', methods=['POST'])
def next_game(session_id):
    data = request.get_json(silent=True) or {}
    game = _caller().next_game(session_id, data.get('game_type'))
    current_app.logger.info(f"[next_game] session={session_id} game={game.game_number} type={game.game_type}")
    payload = game.to_dict()
    socketio.emit('game_reset', payload, to=session_room(session_id), namespace=NAMESPACE)
    return jsonify(payload)
