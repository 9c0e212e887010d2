import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Claim arbitration and number calling live for the lifetime of this process
    from bingo_hub.realtime import ClaimQueueWatcher, SocketIONotifier, SqlSettlementStore
    from bingo_hub.services.calling import NumberCaller
    from bingo_hub.services.claims import ClaimArbitrator

    notifier = SocketIONotifier(socketio, attempts=int(flask_app.config.get('NOTIFY_RETRY_ATTEMPTS', 2)),
                                logger=flask_app.logger)
    arbitrator = ClaimArbitrator(notifier=notifier, store=SqlSettlementStore(), logger=flask_app.logger)
    flask_app.extensions['claim_arbitrator'] = arbitrator
    flask_app.extensions['claim_queue_watcher'] = ClaimQueueWatcher(socketio, arbitrator)
    flask_app.extensions['number_caller'] = NumberCaller(
        arbitrator, default_game_type=flask_app.config.get('DEFAULT_GAME_TYPE', 'mainstage'), logger=flask_app.logger)

    from bingo_hub.api.tickets import tickets
    flask_app.register_blueprint(tickets, url_prefix='/api/tickets')

    from bingo_hub.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    # Register Socket.IO event handlers
    from bingo_hub.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the settlement tables."""
        with flask_app.app_context():
            import bingo_hub.models  # noqa: F401
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
