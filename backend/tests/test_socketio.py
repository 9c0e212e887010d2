from bingo_hub import socketio
from conftest import TOP_ROW, claim_payload


def _events(client, name):
    return [pkt['args'][0] for pkt in client.get_received('/ws') if pkt['name'] == name]


def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    # Flush any initial events
    sio_client.get_received('/ws')

    sio_client.emit('join_session', {'session_id': 'S1', 'player_id': 'p1'}, namespace='/ws')
    joined = _events(sio_client, 'joined')
    assert joined
    assert joined[0]['room'] == 'session:S1'
    assert 'player:p1' in joined[0]['rooms']
    assert joined[0]['game']['game_number'] == 1


def test_join_requires_session(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_session', {}, namespace='/ws')
    assert _events(sio_client, 'error')


def test_caller_receives_queue_on_join(flask_app, sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_session', {'session_id': 'S1', 'is_caller': True}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'joined' in names
    queues = [pkt['args'][0] for pkt in received if pkt['name'] == 'claim_queue']
    assert queues == [{'session_id': 'S1', 'claims': []}]
    assert flask_app.extensions['claim_queue_watcher'].is_watching('S1')


def test_claim_flow_between_player_and_caller(flask_app, sio_client):
    caller = sio_client
    caller.emit('join_session', {'session_id': 'S1', 'is_caller': True}, namespace='/ws')
    caller.get_received('/ws')

    player = socketio.test_client(flask_app, namespace='/ws')
    try:
        player.emit('join_session', {'session_id': 'S1', 'player_id': 'p1'}, namespace='/ws')
        player.get_received('/ws')

        player.emit('submit_claim', claim_payload(), namespace='/ws')
        acks = _events(player, 'claim_ack')
        assert acks == [{'accepted': True, 'session_id': 'S1', 'ticket_serial': 'T-001', 'win_pattern': 'oneLine'}]

        received = caller.get_received('/ws')
        new_claims = [pkt['args'][0] for pkt in received if pkt['name'] == 'new-claim']
        assert new_claims
        assert new_claims[0]['playerId'] == 'p1'
        assert new_claims[0]['toGoCount'] == 0
        assert new_claims[0]['calledNumbers'] == TOP_ROW
        queues = [pkt['args'][0] for pkt in received if pkt['name'] == 'claim_queue']
        assert len(queues[-1]['claims']) == 1
        claim_id = queues[-1]['claims'][0]['id']
        assert new_claims[0]['claimId'] == claim_id

        # A second identical claim is refused
        player.emit('submit_claim', claim_payload(), namespace='/ws')
        assert _events(player, 'claim_ack')[0]['accepted'] is False

        caller.emit('process_claim', {'session_id': 'S1', 'claim_id': claim_id, 'is_valid': True}, namespace='/ws')
        received = caller.get_received('/ws')
        processed = [pkt['args'][0] for pkt in received if pkt['name'] == 'claim_processed']
        assert processed == [{'claim_id': claim_id, 'settled': True}]
        queues = [pkt['args'][0] for pkt in received if pkt['name'] == 'claim_queue']
        assert queues[-1]['claims'] == []

        results = _events(player, 'claim-result')
        assert results == [{'playerId': 'p1', 'result': 'valid'}]
    finally:
        player.disconnect(namespace='/ws')


def test_invalid_claim_reports_error(sio_client):
    sio_client.emit('join_session', {'session_id': 'S1', 'player_id': 'p1'}, namespace='/ws')
    sio_client.get_received('/ws')
    payload = claim_payload()
    payload.pop('ticket')
    sio_client.emit('submit_claim', payload, namespace='/ws')
    errors = _events(sio_client, 'error')
    assert errors and errors[0]['message'] == 'Invalid claim'


def test_process_claim_requires_verdict(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('process_claim', {'session_id': 'S1', 'claim_id': 'missing'}, namespace='/ws')
    assert _events(sio_client, 'error')
    sio_client.emit('process_claim', {'session_id': 'S1', 'claim_id': 'missing', 'is_valid': False}, namespace='/ws')
    assert _events(sio_client, 'claim_processed') == [{'claim_id': 'missing', 'settled': False}]


def test_call_number_broadcasts_to_session(flask_app, sio_client):
    sio_client.emit('join_session', {'session_id': 'S1', 'player_id': 'p1'}, namespace='/ws')
    sio_client.get_received('/ws')
    caller = socketio.test_client(flask_app, namespace='/ws')
    try:
        caller.emit('call_number', {'session_id': 'S1', 'number': 42}, namespace='/ws')
        called = _events(sio_client, 'number_called')
        assert called and called[0]['number'] == 42
        assert called[0]['called_numbers'] == [42]

        caller.emit('call_number', {'session_id': 'S1', 'number': 42}, namespace='/ws')
        assert _events(caller, 'error')
    finally:
        caller.disconnect(namespace='/ws')


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'t': 1}, namespace='/ws')
    assert _events(sio_client, 'pong') == [{'t': 1}]


def test_second_caller_gets_one_snapshot(flask_app, sio_client):
    sio_client.emit('join_session', {'session_id': 'S1', 'is_caller': True}, namespace='/ws')
    sio_client.get_received('/ws')
    second = socketio.test_client(flask_app, namespace='/ws')
    try:
        second.get_received('/ws')
        second.emit('join_session', {'session_id': 'S1', 'is_caller': True}, namespace='/ws')
        assert len(_events(second, 'claim_queue')) == 1
        assert _events(sio_client, 'claim_queue') == []
    finally:
        second.disconnect(namespace='/ws')


def test_stale_pattern_claim_is_refused_and_pattern_advances(flask_app, sio_client):
    caller = sio_client
    caller.emit('join_session', {'session_id': 'S1', 'is_caller': True}, namespace='/ws')
    caller.get_received('/ws')

    player = socketio.test_client(flask_app, namespace='/ws')
    try:
        player.emit('join_session', {'session_id': 'S1', 'player_id': 'p1'}, namespace='/ws')
        player.get_received('/ws')

        player.emit('submit_claim', claim_payload(pattern='twoLines'), namespace='/ws')
        ack = _events(player, 'claim_ack')[0]
        assert ack['accepted'] is False
        assert ack['active_pattern'] == 'oneLine'

        player.emit('submit_claim', claim_payload(), namespace='/ws')
        assert _events(player, 'claim_ack')[0]['accepted'] is True
        claim_id = flask_app.extensions['claim_arbitrator'].claims_for_session('S1')[0].id

        caller.emit('process_claim', {'session_id': 'S1', 'claim_id': claim_id, 'is_valid': True}, namespace='/ws')
        states = _events(player, 'game_state')
        assert states and states[-1]['win_pattern'] == 'twoLines'

        player.emit('submit_claim', claim_payload(), namespace='/ws')
        ack = _events(player, 'claim_ack')[0]
        assert ack['accepted'] is False
        assert ack['active_pattern'] == 'twoLines'
    finally:
        player.disconnect(namespace='/ws')
