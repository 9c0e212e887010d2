from typing import List, Optional

from flask import Blueprint, jsonify, request, current_app
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from bingo_hub.services.claims import TicketPayload
from bingo_hub.services.tickets import (
    UnknownPattern,
    check_layout,
    decode,
    decode_ticket,
    grid_numbers,
    normalize_pattern,
    one_to_go,
    pattern_display_name,
    patterns_for_game_type,
    progress,
    sort_by_win_proximity,
    ticket_score,
)

tickets = Blueprint('tickets', __name__)


class TicketSortRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tickets: List[TicketPayload]
    called_numbers: List[int] = Field(default_factory=list)
    win_pattern: Optional[str] = None
    session_id: Optional[str] = None


def _read_layout(data):
    numbers = data.get('numbers')
    layout_mask = data.get('layout_mask', data.get('layoutMask'))
    if not isinstance(numbers, list) or not all(isinstance(n, int) for n in numbers):
        return None, None, 'numbers must be a list of integers'
    if not isinstance(layout_mask, int):
        return None, None, 'layout_mask must be an integer'
    return numbers, layout_mask, None


def _resolve_pattern(pattern, session_id):
    # An explicit pattern wins; otherwise use the session's active one
    if pattern:
        return pattern
    if session_id:
        active = current_app.extensions['number_caller'].active_pattern(session_id)
        if active:
            return active
    return 'oneLine'


@tickets.route('/decode', methods=['POST'])
def decode_layout():
    data = request.get_json(silent=True) or {}
    numbers, layout_mask, error = _read_layout(data)
    if error:
        return jsonify({'error': error}), 400
    mismatch = check_layout(numbers, layout_mask)
    grid = decode(numbers, layout_mask)
    if mismatch:
        current_app.logger.info(f"[decode] {mismatch.describe()}")
    return jsonify({
        'grid': grid,
        'numbers': grid_numbers(grid),
        'layout_mismatch': mismatch.describe() if mismatch else None,
    })


@tickets.route('/progress', methods=['POST'])
def ticket_progress():
    data = request.get_json(silent=True) or {}
    numbers, layout_mask, error = _read_layout(data)
    if error:
        return jsonify({'error': error}), 400
    called = data.get('called_numbers', data.get('calledNumbers')) or []
    if not isinstance(called, list) or not all(isinstance(n, int) for n in called):
        return jsonify({'error': 'called_numbers must be a list of integers'}), 400
    pattern = _resolve_pattern(data.get('win_pattern', data.get('winPattern')),
                               data.get('session_id', data.get('sessionId')))

    mismatch = check_layout(numbers, layout_mask)
    grid = decode(numbers, layout_mask)
    try:
        result = progress(grid, called, pattern)
        closing_numbers = one_to_go(grid, called, pattern)
    except UnknownPattern as exc:
        return jsonify({'error': str(exc)}), 400

    payload = result.to_dict()
    payload.update({
        'win_pattern': normalize_pattern(pattern).value,
        'pattern_name': pattern_display_name(pattern),
        'one_to_go': closing_numbers,
        'grid': grid,
        'layout_mismatch': mismatch.describe() if mismatch else None,
    })
    return jsonify(payload)


@tickets.route('/sort', methods=['POST'])
def sort_tickets():
    """Order a player's tickets by how close each is to the active pattern."""
    try:
        body = TicketSortRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({'error': 'Invalid request', 'details': exc.errors(include_url=False, include_context=False)}), 400
    pattern = _resolve_pattern(body.win_pattern, body.session_id)
    try:
        win_pattern = normalize_pattern(pattern).value
    except UnknownPattern as exc:
        return jsonify({'error': str(exc)}), 400

    ordered = sort_by_win_proximity([t.to_ticket() for t in body.tickets], body.called_numbers, win_pattern)
    results = []
    for ticket in ordered:
        grid = decode_ticket(ticket)
        result = progress(grid, body.called_numbers, win_pattern)
        results.append({
            'ticket': ticket.to_dict(),
            'score': ticket_score(grid, body.called_numbers, win_pattern),
            'is_winner': result.is_winner,
            'numbers_to_go': result.numbers_to_go,
            'one_to_go': one_to_go(grid, body.called_numbers, win_pattern),
        })
    return jsonify({'win_pattern': win_pattern, 'tickets': results})


@tickets.route('/patterns/<string:game_type>', methods=['GET'])
def list_patterns(game_type):
    return jsonify([
        {'id': p, 'name': pattern_display_name(p)} for p in patterns_for_game_type(game_type)
    ])
