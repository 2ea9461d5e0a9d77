import os
import sys
import threading
import pytest

# Ensure the backend root (containing the `app` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from app import create_app, db, limiter, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    CORS_ORIGINS = ['http://localhost:5173']
    PRESENCE_TIMEOUT_MIN = 10
    LEADERBOARD_LIMIT = 10
    TV_LEADERBOARD_LIMIT = 5
    SPEED_MESSAGE_TARGET = 5
    MESSAGE_MAX_LENGTH = 500
    CHALLENGE_MAX_MINUTES = 60
    RATELIMIT_ENABLED = False


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import app.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def web_app():
    """App for HTTP and Socket.IO tests.

    No app context is held open, so every request gets its own context
    (and its own Flask-Login user).
    """
    application = create_app(TestConfig)
    with application.app_context():
        import app.models  # noqa: F401
        db.create_all()
        _add_tables()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(web_app):
    return web_app.test_client()


@pytest.fixture()
def admin_client(web_app):
    """Test client logged in as the (freshly created) admin."""
    test_client = web_app.test_client()
    res = test_client.post('/api/admin/setup', json={
        'first_name': 'Ada', 'last_name': 'Admin', 'password': 'secret123',
    })
    assert res.status_code == 201
    return test_client


@pytest.fixture()
def sio_client(web_app):
    test_client = socketio.test_client(
        web_app,
        flask_test_client=web_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


TABLES = [('A1', 'ALPHA01'), ('B2', 'BRAVO02'), ('C3', 'CHARLIE03')]


def _add_tables():
    from app.models import Table
    for table_id, code in TABLES:
        db.session.add(Table(id=table_id, code=code))
    db.session.commit()


@pytest.fixture()
def tables(flask_app):
    """A handful of game tables."""
    _add_tables()
    return [table_id for table_id, _ in TABLES]


@pytest.fixture()
def active_game(flask_app):
    from app.services.game.session import start_game
    return start_game()


@pytest.fixture()
def make_message(flask_app):
    """Insert a message directly, with an explicit timestamp and tally."""
    from app.models import Message, utcnow

    def _make(from_table, to_table='C3', at=None, broadcast=False, **reactions):
        message = Message(
            content='hello there',
            from_table_id=from_table,
            to_table_id=to_table,
            sender_name='Tester',
            public_sender_name='Tester',
            is_broadcast=broadcast,
            timestamp=at or utcnow(),
            **{f'reactions_{kind}': count for kind, count in reactions.items()}
        )
        db.session.add(message)
        db.session.commit()
        return message

    return _make


@pytest.fixture()
def file_app(tmp_path):
    """App on a file-backed SQLite database, shared by several threads."""
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'game.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'check_same_thread': False, 'timeout': 30}}

    application = create_app(FileConfig)
    with application.app_context():
        import app.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def run_in_threads(file_app):
    """Start all calls together, one thread and app context each; return what they raised."""
    def _run(calls):
        barrier = threading.Barrier(len(calls))
        raised = []

        def worker(call):
            with file_app.app_context():
                barrier.wait()
                try:
                    call()
                except Exception as exc:
                    raised.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(call,)) for call in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return raised

    return _run


@pytest.fixture()
def limited_client():
    """Test client for an app with rate limits switched on and set low."""
    class LimitedConfig(TestConfig):
        RATELIMIT_ENABLED = True
        MESSAGE_RATE_LIMIT = '3 per minute'
        LOGIN_RATE_LIMIT = '2 per minute'

    application = create_app(LimitedConfig)
    with application.app_context():
        db.create_all()
        _add_tables()
        limiter.reset()
    yield application.test_client()
    with application.app_context():
        db.session.remove()
        db.drop_all()
