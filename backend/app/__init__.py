from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)
limiter = Limiter(get_remote_address)

SEED_TABLES = [
    ('A1', 'ALPHA01'),
    ('A2', 'ALPHA02'),
    ('B1', 'BRAVO01'),
    ('B2', 'BRAVO02'),
    ('C1', 'CHARLIE01'),
]

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    limiter.init_app(flask_app)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from app.errors import GameError

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        return jsonify({'error': exc.message}), exc.status_code

    @flask_app.errorhandler(429)
    def handle_rate_limited(exc):
        return jsonify({'error': f'Too many requests ({exc.description}), try again later'}), 429

    from app.main import main
    flask_app.register_blueprint(main)

    # Mount API blueprints under /api to match frontend API client
    from app.api.messages import messages
    from app.api.challenges import challenges
    from app.api.tables import tables
    from app.api.game import game
    from app.api.admin import admin
    flask_app.register_blueprint(messages, url_prefix='/api')
    flask_app.register_blueprint(challenges, url_prefix='/api/challenges')
    flask_app.register_blueprint(tables, url_prefix='/api/tables')
    flask_app.register_blueprint(game, url_prefix='/api/game')
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from app.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login loader: ids are namespaced as "admin:<id>" or "staff:<id>"
    from app.models import Admin, Staff

    @login_manager.user_loader
    def load_user(user_id):
        role, _, raw_id = user_id.partition(':')
        if not raw_id.isdigit():
            return None
        if role == 'admin':
            return Admin.query.filter_by(id=int(raw_id)).first()
        if role == 'staff':
            staff = Staff.query.filter_by(id=int(raw_id)).first()
            return staff if staff and staff.is_active else None
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            _seed()
            print('Database has been reset and seeded!')

    @click.command('seed')
    def seed_command():
        """Creates the sample tables and the game singletons."""
        with flask_app.app_context():
            _seed()
            for table_id, code in SEED_TABLES:
                print(f'Table {table_id}: {code}')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(seed_command)

    return flask_app


def _seed():
    from app.models import Table
    from app.services.game.session import get_countdown, get_game_session

    for table_id, code in SEED_TABLES:
        if not Table.query.filter_by(id=table_id).first():
            db.session.add(Table(id=table_id, code=code))
    db.session.commit()
    get_game_session()
    get_countdown()
