import os
import sys
import pytest
from flask import g

# Ensure the project root (containing the `assassin` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from assassin import create_app, db, socketio
from assassin.services.games.state import GameStatus


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    MIN_PLAYERS = 3
    JOIN_CODE_LENGTH = 5
    COMMIT_MAX_RETRIES = 3


class RecordingBus:
    """Bus stand-in that keeps every published event."""

    def __init__(self):
        self.published = []

    def publish(self, topic, payload):
        self.published.append((topic, payload))

    def topics(self):
        return [topic for topic, _ in self.published]


USERNAMES = ['alice', 'bob', 'carol', 'dave']


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # The app context below spans the whole test, so Flask reuses its `g` for
    # every request; drop Flask-Login's cached user so each client stays itself.
    application.teardown_request(lambda exc: g.pop('_login_user', None))
    with application.app_context():
        # Ensure models are imported so tables are created
        import assassin.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def users(flask_app):
    """Seeded users keyed by username; values are their player ids."""
    from assassin.models import User
    created = {}
    for name in USERNAMES:
        user = User(username=name)
        user.set_password('password')
        db.session.add(user)
        db.session.flush()
        created[name] = str(user.id)
    db.session.commit()
    return created


@pytest.fixture()
def recording_bus(flask_app):
    bus = RecordingBus()
    flask_app.extensions['game_bus'] = bus
    return bus


@pytest.fixture()
def login(flask_app, users):
    """Return a test client logged in as the given username."""
    def _login(username):
        test_client = flask_app.test_client()
        res = test_client.post('/login', json={'username': username, 'password': 'password'})
        assert res.status_code == 200
        return test_client
    return _login


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, login):
    """Socket.IO client on /ws sharing alice's login session."""
    http_client = login('alice')
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=http_client,
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


def assert_consistent(state):
    """Fail if a snapshot breaks a game invariant."""
    assert len(set(state.roster)) == len(state.roster), 'duplicate roster entry'
    assert state.owner in state.roster, 'owner missing from roster'
    assert set(state.eliminated) <= set(state.roster), 'eliminated player not in roster'
    assert len(set(state.eliminated)) == len(state.eliminated), 'player eliminated twice'
    if state.status is GameStatus.LOBBY:
        assert not state.targets and not state.eliminated and state.winner is None
        return
    assert state.start_time is not None, 'started game without start time'
    remaining = state.remaining
    assert set(state.targets) == set(remaining), 'targets do not cover remaining players'
    chain = list(state.iter_chain(remaining[0]))
    assert len(chain) == len(remaining), 'targets do not form a single cycle'
    assert state.targets[chain[-1]] == chain[0], 'target chain is not closed'
    if state.status is GameStatus.COMPLETED:
        assert len(remaining) == 1 and state.winner == remaining[0]
    else:
        assert len(remaining) > 1 and state.winner is None
