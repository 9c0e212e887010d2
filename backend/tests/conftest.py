import os
import sys
import pytest

# Ensure the backend root (containing the `bingo_hub` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from bingo_hub import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    DEFAULT_GAME_TYPE = 'mainstage'
    NOTIFY_RETRY_ATTEMPTS = 1
    LOG_LEVEL = 'DEBUG'


# A 90-ball ticket: five numbers per row.
#   row 0: cols 0 2 4 6 8 -> 3 25 44 61 85
#   row 1: cols 1 3 5 7 8 -> 12 33 57 72 88
#   row 2: cols 0 1 4 6 7 -> 7 18 49 66 79
TICKET_BITS = [0, 2, 4, 6, 8, 10, 12, 14, 16, 17, 18, 19, 22, 24, 25]
TICKET_MASK = sum(1 << b for b in TICKET_BITS)
TICKET_NUMBERS = [3, 25, 44, 61, 85, 12, 33, 57, 72, 88, 7, 18, 49, 66, 79]
TOP_ROW = [3, 25, 44, 61, 85]
MIDDLE_ROW = [12, 33, 57, 72, 88]
BOTTOM_ROW = [7, 18, 49, 66, 79]


def claim_payload(session_id='S1', player_id='p1', serial='T-001', called=None, pattern='oneLine', **extra):
    payload = {
        'sessionId': session_id,
        'playerId': player_id,
        'playerName': f'Player {player_id}',
        'gameNumber': 1,
        'winPattern': pattern,
        'gameType': 'mainstage',
        'ticket': {
            'serial': serial,
            'perm': 42,
            'position': 0,
            'layoutMask': TICKET_MASK,
            'numbers': TICKET_NUMBERS,
        },
        'calledNumbers': list(TOP_ROW if called is None else called),
    }
    payload.update(extra)
    return payload


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import bingo_hub.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
